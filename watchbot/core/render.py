"""Markdown rendering of task descriptors.

Downstream tooling greps these documents, so the heading line, the
``### Feedback N - <Kind>`` block headers and the ``---`` delimiter are
kept stable.
"""

from dataclasses import dataclass
from typing import List, Sequence

from watchbot.core.models import Entity, FeedbackItem, FeedbackKind

ITEM_DELIMITER = "---"

KIND_LABELS = {
    FeedbackKind.REVIEW: "Review",
    FeedbackKind.COMMENT: "Comment",
    FeedbackKind.INLINE_COMMENT: "Code Review",
}


@dataclass(frozen=True)
class TaskTemplate:
    """Per-watcher wording for rendered tasks and task file names."""

    name: str
    label: str
    heading: str
    section_title: str
    instructions: str


REVIEW_TEMPLATE = TaskTemplate(
    name="review",
    label="review",
    heading="PR Review Feedback",
    section_title="Review Feedback to Address",
    instructions="""## Your Task:
1. Read all the review feedback above
2. Check out the branch: {branch}
3. Address each piece of feedback by making the necessary code changes
4. Run tests to ensure the changes work correctly
5. Commit and push the changes to the same branch
6. Reply on the pull request explaining what was fixed
7. Update the linked ticket with progress

## Commands:
```bash
# Checkout the PR branch
git checkout {branch}

# After making changes
git add .
git commit -m "{label}: Address review feedback - [brief description]"
git push origin {branch}
```""",
)

TICKET_TEMPLATE = TaskTemplate(
    name="ticket",
    label="ticket",
    heading="Jira Ticket Assigned",
    section_title="Ticket Content",
    instructions="""## Your Task:
1. Read the ticket details above
2. Move the ticket to "In Progress"
3. Analyze the codebase to understand what needs to be implemented
4. Implement the change according to the acceptance criteria
5. Write tests for the change
6. Create a feature branch and open a pull request
7. Move the ticket to "In Review"

## Ticket Link:
{url}""",
)


def render_item(index: int, item: FeedbackItem) -> str:
    """
    Render one feedback block.
    
    Args:
        index: 1-based position in the task
        item: Feedback item
        
    Returns:
        Markdown block ending with the item delimiter
    """
    lines = [f"### Feedback {index} - {KIND_LABELS[item.kind]}"]
    lines.append(f"**From**: {item.author}")
    if item.kind == FeedbackKind.INLINE_COMMENT and item.file_path:
        if item.line_number is not None:
            lines.append(f"**File**: {item.file_path} (Line {item.line_number})")
        else:
            lines.append(f"**File**: {item.file_path}")
    if item.state:
        lines.append(f"**Review State**: {item.state}")
    lines.append("")
    lines.append(item.body)
    lines.append("")
    lines.append(ITEM_DELIMITER)
    return "\n".join(lines)


def render_task(
    template: TaskTemplate,
    entity: Entity,
    revision: int,
    items: Sequence[FeedbackItem],
) -> str:
    """
    Render the full task document.
    
    Args:
        template: Watcher-specific wording
        entity: Entity the task is for
        revision: Task revision number
        items: All normalized feedback items, actionable or not
        
    Returns:
        Markdown text
    """
    parts: List[str] = [
        f"# {template.heading}: {entity.label} (Revision #{revision})",
        "",
        f"**{entity.key}**: {entity.title}",
        f"**URL**: {entity.external_url}",
    ]
    if entity.branch_ref:
        parts.append(f"**Branch**: {entity.branch_ref}")
    for name, value in entity.details.items():
        if value and not name.startswith("_"):
            parts.append(f"**{name.replace('_', ' ').title()}**: {value}")

    parts.append("")
    parts.append(f"## {template.section_title}:")
    parts.append("")
    for index, item in enumerate(items, start=1):
        parts.append(render_item(index, item))
        parts.append("")

    parts.append(
        template.instructions.format(
            branch=entity.branch_ref or "<branch>",
            label=entity.label,
            url=entity.external_url,
        )
    )
    return "\n".join(parts).strip() + "\n"

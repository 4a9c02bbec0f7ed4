"""Tests for rendered task documents."""

from datetime import datetime, timezone

from watchbot.core.models import Entity, FeedbackItem, FeedbackKind, FingerprintRecord
from watchbot.core.render import ITEM_DELIMITER, REVIEW_TEMPLATE, TICKET_TEMPLATE, render_task
from watchbot.core.sequencer import TaskSequencer

PR = Entity(
    key="pr-7",
    title="[KAN-7] Add export button",
    external_url="https://github.com/acme/web/pull/7",
    branch_ref="KAN-7-export",
    display_id="KAN-7",
)

ITEMS = [
    FeedbackItem(FeedbackKind.REVIEW, "1", "bob", "Needs tests", state="CHANGES_REQUESTED"),
    FeedbackItem(FeedbackKind.COMMENT, "2", "carol", "What about CSV?"),
    FeedbackItem(FeedbackKind.INLINE_COMMENT, "3", "bob", "Unused import", file_path="src/export.py", line_number=3),
]


def test_header_lines_come_first_in_order():
    body = render_task(REVIEW_TEMPLATE, PR, 2, ITEMS)
    lines = body.splitlines()

    assert lines[0] == "# PR Review Feedback: KAN-7 (Revision #2)"
    assert lines[2] == "**pr-7**: [KAN-7] Add export button"
    assert lines[3] == "**URL**: https://github.com/acme/web/pull/7"
    assert lines[4] == "**Branch**: KAN-7-export"


def test_feedback_blocks():
    body = render_task(REVIEW_TEMPLATE, PR, 1, ITEMS)

    assert "### Feedback 1 - Review\n**From**: bob\n**Review State**: CHANGES_REQUESTED\n\nNeeds tests\n\n---" in body
    assert "### Feedback 2 - Comment\n**From**: carol\n\nWhat about CSV?\n\n---" in body
    assert "### Feedback 3 - Code Review\n**From**: bob\n**File**: src/export.py (Line 3)\n\nUnused import" in body
    assert body.count(f"\n{ITEM_DELIMITER}\n") == len(ITEMS)


def test_file_line_only_for_inline_comments():
    odd = FeedbackItem(FeedbackKind.COMMENT, "9", "x", "general", file_path="ignored.py", line_number=1)

    body = render_task(REVIEW_TEMPLATE, PR, 1, [odd])

    assert "ignored.py" not in body


def test_review_instructions_use_branch_and_label():
    body = render_task(REVIEW_TEMPLATE, PR, 1, ITEMS)

    assert "git checkout KAN-7-export" in body
    assert 'git commit -m "KAN-7: Address review feedback' in body


def test_ticket_document_shows_details_but_not_private_fields():
    ticket = Entity(
        key="KAN-12",
        title="Dark mode",
        external_url="https://acme.atlassian.net/browse/KAN-12",
        display_id="KAN-12",
        details={"status": "To Do", "priority": "High", "_description": {"type": "doc"}},
    )
    item = FeedbackItem(FeedbackKind.COMMENT, "KAN-12:description", "Dana", "Add a toggle")

    body = render_task(TICKET_TEMPLATE, ticket, 1, [item])

    assert body.startswith("# Jira Ticket Assigned: KAN-12 (Revision #1)")
    assert "**Status**: To Do" in body
    assert "**Priority**: High" in body
    assert "_description" not in body
    assert "**Branch**" not in body
    assert body.rstrip().endswith("https://acme.atlassian.net/browse/KAN-12")


def test_sequencer_numbers_from_stored_counter():
    clock = lambda: datetime(2024, 5, 1, tzinfo=timezone.utc)
    sequencer = TaskSequencer(REVIEW_TEMPLATE, clock=clock)

    fresh = sequencer.build(PR, ITEMS, "f1", None)
    later = sequencer.build(PR, ITEMS, "f2", FingerprintRecord("pr-7", "f1", last_task_revision=4))

    assert fresh.revision == 1
    assert later.revision == 5
    assert later.created_at == clock()
    assert later.fingerprint == "f2"
    assert later.entity_key == "pr-7"
    assert "(Revision #5)" in later.rendered_body

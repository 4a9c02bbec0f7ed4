"""Data models for watchbot."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class FeedbackKind(str, Enum):
    """Kind of feedback item, in fingerprint order."""

    REVIEW = "Review"
    COMMENT = "Comment"
    INLINE_COMMENT = "InlineComment"


# Fixed concatenation order used by the normalizer and the renderer.
KIND_ORDER: Tuple[FeedbackKind, ...] = (
    FeedbackKind.REVIEW,
    FeedbackKind.COMMENT,
    FeedbackKind.INLINE_COMMENT,
)


@dataclass
class Entity:
    """An open unit of work in the source system (pull request or ticket)."""

    key: str
    title: str
    external_url: str
    branch_ref: Optional[str] = None
    display_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate required fields."""
        if not self.key:
            raise ValueError("key is required")

    @property
    def label(self) -> str:
        """Human-facing identifier used in task names and headings."""
        return self.display_id or self.key


@dataclass
class RawFeedback:
    """Per-kind raw records returned by a source connector for one entity."""

    reviews: List[dict] = field(default_factory=list)
    comments: List[dict] = field(default_factory=list)
    inline_comments: List[dict] = field(default_factory=list)


@dataclass(frozen=True)
class FeedbackItem:
    """One piece of human input on an entity."""

    kind: FeedbackKind
    source_id: str
    author: str
    body: str
    state: Optional[str] = None
    file_path: Optional[str] = None
    line_number: Optional[int] = None
    timestamp: Optional[str] = None


@dataclass
class FingerprintRecord:
    """Persisted change-detection state for one entity."""

    entity_key: str
    fingerprint: str
    last_task_revision: int = 0


@dataclass
class TaskDescriptor:
    """A task emitted for new, actionable feedback on an entity."""

    entity: Entity
    revision: int
    items: List[FeedbackItem]
    rendered_body: str
    fingerprint: str
    created_at: datetime

    @property
    def entity_key(self) -> str:
        return self.entity.key

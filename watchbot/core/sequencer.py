"""Revision numbering and task descriptor construction."""

from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from watchbot.core.models import Entity, FeedbackItem, FingerprintRecord, TaskDescriptor
from watchbot.core.render import TaskTemplate, render_task


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskSequencer:
    """Assigns per-entity revisions and builds task descriptors."""

    def __init__(self, template: TaskTemplate, clock: Callable[[], datetime] = _utcnow):
        self.template = template
        self.clock = clock

    @staticmethod
    def next_revision(record: Optional[FingerprintRecord]) -> int:
        """
        Revision for the next task of an entity.

        Based only on the persisted counter, never on what task files happen
        to exist, so externally deleted tasks never cause a number to be reused.
        """
        if record is None:
            return 1
        return record.last_task_revision + 1

    def build(
        self,
        entity: Entity,
        items: Sequence[FeedbackItem],
        fingerprint: str,
        record: Optional[FingerprintRecord],
    ) -> TaskDescriptor:
        """
        Build the descriptor for new content on an entity.
        
        Args:
            entity: Entity with new content
            items: All normalized feedback items
            fingerprint: Fingerprint of items
            record: Stored record for the entity, if any
            
        Returns:
            TaskDescriptor ready for the sink
        """
        revision = self.next_revision(record)
        return TaskDescriptor(
            entity=entity,
            revision=revision,
            items=list(items),
            rendered_body=render_task(self.template, entity, revision, items),
            fingerprint=fingerprint,
            created_at=self.clock(),
        )

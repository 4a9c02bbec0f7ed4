"""Per-entity change detection and task emission."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from watchbot.connectors.base import SourceConnector
from watchbot.core.errors import EmitError
from watchbot.core.filters import ActionabilityFilter
from watchbot.core.fingerprint import compute_fingerprint
from watchbot.core.fingerprint_store import FingerprintStore
from watchbot.core.models import Entity
from watchbot.core.normalizer import normalize_feedback
from watchbot.core.sequencer import TaskSequencer
from watchbot.core.task_sink import TaskSink

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """What happened to one entity during a pass."""

    UNCHANGED = "unchanged"
    NOT_ACTIONABLE = "not_actionable"
    EMITTED = "emitted"
    # Task written but the store was not advanced; the next pass re-emits
    # the same revision to the same destination.
    EMITTED_UNRECORDED = "emitted_unrecorded"
    FAILED = "failed"


@dataclass
class EntityResult:
    entity_key: str
    outcome: Outcome
    revision: Optional[int] = None
    destination: Optional[str] = None
    error: Optional[str] = None


class WatchEngine:
    """Decides whether an entity has new actionable content and emits a task for it."""

    def __init__(
        self,
        connector: SourceConnector,
        store: FingerprintStore,
        sink: TaskSink,
        actionability: ActionabilityFilter,
        sequencer: TaskSequencer,
    ):
        self.connector = connector
        self.store = store
        self.sink = sink
        self.actionability = actionability
        self.sequencer = sequencer

    def process_entity(self, entity: Entity) -> EntityResult:
        """
        Run change detection for a single entity.

        ConnectorError and unexpected exceptions propagate to the caller,
        which owns the per-entity isolation. Sink and store failures are
        handled here because they decide whether the fingerprint advances.
        
        Args:
            entity: Entity fresh from the source connector
            
        Returns:
            EntityResult describing what happened
        """
        raw = self.connector.list_feedback(entity)
        items = normalize_feedback(raw)
        fingerprint = compute_fingerprint(items)

        record = self.store.get(entity.key)
        if record is not None and record.fingerprint == fingerprint:
            logger.debug("%s: No new feedback", entity.label)
            return EntityResult(entity.key, Outcome.UNCHANGED)

        actionable = self.actionability.actionable_items(items)
        if not actionable:
            logger.info("%s: No actionable feedback (%d item(s))", entity.label, len(items))
            return EntityResult(entity.key, Outcome.NOT_ACTIONABLE)

        descriptor = self.sequencer.build(entity, items, fingerprint, record)
        logger.info(
            "%s: Found new feedback, %d of %d item(s) actionable, emitting revision %d",
            entity.label, len(actionable), len(items), descriptor.revision,
        )

        try:
            destination = self.sink.emit_task(descriptor)
        except EmitError as e:
            logger.error(
                "%s: Failed to emit revision %d, will retry next pass: %s",
                entity.label, descriptor.revision, e,
            )
            return EntityResult(entity.key, Outcome.FAILED, descriptor.revision, error=str(e))

        try:
            self.store.put(entity.key, fingerprint, descriptor.revision)
        except (OSError, ValueError) as e:
            logger.error(
                "%s: Emitted revision %d to %s but could not record it (%s); "
                "the next pass will emit this revision again",
                entity.label, descriptor.revision, destination, e,
            )
            return EntityResult(
                entity.key,
                Outcome.EMITTED_UNRECORDED,
                descriptor.revision,
                destination,
                error=str(e),
            )

        return EntityResult(entity.key, Outcome.EMITTED, descriptor.revision, destination)

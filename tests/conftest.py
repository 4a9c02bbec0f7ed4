"""Shared fakes for watchbot tests."""

from typing import Dict, List, Optional

import pytest

from watchbot.connectors.base import SourceConnector
from watchbot.core.engine import WatchEngine
from watchbot.core.errors import EmitError
from watchbot.core.filters import ActionabilityFilter
from watchbot.core.fingerprint_store import FingerprintStore
from watchbot.core.models import Entity, RawFeedback, TaskDescriptor
from watchbot.core.render import REVIEW_TEMPLATE
from watchbot.core.sequencer import TaskSequencer
from watchbot.core.storage_json import JsonFingerprintStorage
from watchbot.core.task_sink import TaskSink


def comment(comment_id, body, login="alice", **extra):
    record = {"id": comment_id, "body": body, "user": {"login": login}, "created_at": "2024-05-01T10:00:00Z"}
    record.update(extra)
    return record


def review(review_id, body, state, login="alice"):
    return {
        "id": review_id,
        "body": body,
        "state": state,
        "user": {"login": login},
        "submitted_at": "2024-05-01T09:00:00Z",
    }


def inline(comment_id, body, path="src/app.py", line=12, login="alice"):
    return comment(comment_id, body, login=login, path=path, line=line)


class FakeConnector(SourceConnector):
    """In-memory connector; feedback per entity key can be changed between passes."""

    def __init__(self, entities: Optional[List[Entity]] = None):
        self.entities = entities if entities is not None else []
        self.feedback: Dict[str, RawFeedback] = {}
        self.failures: Dict[str, Exception] = {}
        self.listing_error: Optional[Exception] = None
        self.feedback_calls: List[str] = []

    def list_open_entities(self) -> List[Entity]:
        if self.listing_error is not None:
            raise self.listing_error
        return list(self.entities)

    def list_feedback(self, entity: Entity) -> RawFeedback:
        self.feedback_calls.append(entity.key)
        if entity.key in self.failures:
            raise self.failures[entity.key]
        return self.feedback.get(entity.key, RawFeedback())


class RecordingSink(TaskSink):
    """Keeps emitted descriptors in memory; can be told to fail."""

    def __init__(self):
        self.emitted: List[TaskDescriptor] = []
        self.fail_next = False

    def emit_task(self, descriptor: TaskDescriptor) -> str:
        if self.fail_next:
            self.fail_next = False
            raise EmitError("disk full")
        self.emitted.append(descriptor)
        return f"memory://{descriptor.entity.label}/{descriptor.revision}"

    @property
    def revisions(self) -> List[int]:
        return [d.revision for d in self.emitted]


@pytest.fixture
def entity():
    return Entity(
        key="E-1",
        title="Fix login redirect",
        external_url="https://github.com/acme/web/pull/1",
        branch_ref="feature/login",
        display_id="KAN-1",
    )


@pytest.fixture
def connector(entity):
    return FakeConnector([entity])


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def store(tmp_path):
    return FingerprintStore(JsonFingerprintStorage(tmp_path / "fingerprints.json"))


@pytest.fixture
def engine(connector, store, sink):
    return WatchEngine(
        connector=connector,
        store=store,
        sink=sink,
        actionability=ActionabilityFilter(["github-actions[bot]"], ["APPROVED"]),
        sequencer=TaskSequencer(REVIEW_TEMPLATE),
    )


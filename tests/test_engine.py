"""Engine behaviour across consecutive passes."""

import pytest
from conftest import comment, inline, review

from watchbot.core.engine import Outcome
from watchbot.core.errors import ConnectorError
from watchbot.core.models import RawFeedback


def test_scenario_new_unchanged_then_extended(engine, connector, store, sink, entity):
    connector.feedback["E-1"] = RawFeedback(comments=[comment(101, "Please rename this")])

    first = engine.process_entity(entity)
    assert first.outcome == Outcome.EMITTED
    assert first.revision == 1
    record = store.get("E-1")
    assert record.last_task_revision == 1
    f1 = record.fingerprint

    second = engine.process_entity(entity)
    assert second.outcome == Outcome.UNCHANGED
    assert len(sink.emitted) == 1

    connector.feedback["E-1"] = RawFeedback(
        comments=[comment(101, "Please rename this")],
        inline_comments=[inline(202, "Off by one here")],
    )
    third = engine.process_entity(entity)
    assert third.outcome == Outcome.EMITTED
    assert third.revision == 2
    assert store.get("E-1").fingerprint != f1

    task = sink.emitted[-1]
    assert [item.source_id for item in task.items] == ["101", "202"]
    assert "Please rename this" in task.rendered_body
    assert "Off by one here" in task.rendered_body


def test_unchanged_feedback_emits_exactly_once(engine, connector, sink, entity):
    connector.feedback["E-1"] = RawFeedback(comments=[comment(1, "Needs a test")])

    outcomes = [engine.process_entity(entity).outcome for _ in range(5)]

    assert outcomes == [Outcome.EMITTED] + [Outcome.UNCHANGED] * 4
    assert sink.revisions == [1]


def test_revisions_strictly_increase_without_gaps(engine, connector, sink, entity):
    bodies = ["first", "first", "second", "second", "second", "third"]
    for body in bodies:
        connector.feedback["E-1"] = RawFeedback(comments=[comment(1, body)])
        engine.process_entity(entity)

    assert sink.revisions == [1, 2, 3]


def test_approval_alone_is_not_actionable(engine, connector, store, sink, entity):
    connector.feedback["E-1"] = RawFeedback(reviews=[review(9, "", "APPROVED")])

    result = engine.process_entity(entity)

    assert result.outcome == Outcome.NOT_ACTIONABLE
    assert sink.emitted == []
    assert store.get("E-1") is None


def test_actionable_comment_next_to_approval_includes_both(engine, connector, sink, entity):
    connector.feedback["E-1"] = RawFeedback(
        reviews=[review(9, "", "APPROVED", login="bob")],
        comments=[comment(10, "One more nit", login="carol")],
    )

    result = engine.process_entity(entity)

    assert result.outcome == Outcome.EMITTED
    assert len(sink.emitted) == 1
    body = sink.emitted[0].rendered_body
    assert "**Review State**: APPROVED" in body
    assert "One more nit" in body
    assert "**From**: bob" in body


def test_bot_only_feedback_is_not_actionable(engine, connector, sink, entity):
    connector.feedback["E-1"] = RawFeedback(
        comments=[comment(1, "Build passed", login="github-actions[bot]")]
    )

    assert engine.process_entity(entity).outcome == Outcome.NOT_ACTIONABLE
    assert sink.emitted == []


def test_edited_comment_body_triggers_new_task(engine, connector, sink, entity):
    connector.feedback["E-1"] = RawFeedback(comments=[comment(1, "Use a constant")])
    engine.process_entity(entity)

    connector.feedback["E-1"] = RawFeedback(comments=[comment(1, "Use a constant.")])
    result = engine.process_entity(entity)

    assert result.outcome == Outcome.EMITTED
    assert sink.revisions == [1, 2]


def test_edit_reverted_between_polls_is_a_no_op(engine, connector, sink, entity):
    connector.feedback["E-1"] = RawFeedback(comments=[comment(1, "Use a constant")])
    engine.process_entity(entity)

    # Edited and reverted before the next poll: the source shows the original body.
    connector.feedback["E-1"] = RawFeedback(comments=[comment(1, "Use a constant")])
    assert engine.process_entity(entity).outcome == Outcome.UNCHANGED
    assert sink.revisions == [1]


def test_edit_observed_then_reverted_emits_again(engine, connector, sink, entity):
    connector.feedback["E-1"] = RawFeedback(comments=[comment(1, "Use a constant")])
    engine.process_entity(entity)
    connector.feedback["E-1"] = RawFeedback(comments=[comment(1, "Use an enum")])
    engine.process_entity(entity)
    connector.feedback["E-1"] = RawFeedback(comments=[comment(1, "Use a constant")])
    engine.process_entity(entity)

    assert sink.revisions == [1, 2, 3]


def test_emit_failure_leaves_store_untouched_and_retries(engine, connector, store, sink, entity):
    connector.feedback["E-1"] = RawFeedback(comments=[comment(1, "Fix typo")])
    sink.fail_next = True

    failed = engine.process_entity(entity)
    assert failed.outcome == Outcome.FAILED
    assert failed.revision == 1
    assert store.get("E-1") is None

    retried = engine.process_entity(entity)
    assert retried.outcome == Outcome.EMITTED
    assert sink.revisions == [1]


def test_store_failure_after_emit_re_emits_same_revision(engine, connector, store, sink, entity, monkeypatch):
    connector.feedback["E-1"] = RawFeedback(comments=[comment(1, "Fix typo")])

    def broken_put(record):
        raise OSError("simulated crash before store update")

    monkeypatch.setattr(store.storage, "put", broken_put)
    result = engine.process_entity(entity)
    assert result.outcome == Outcome.EMITTED_UNRECORDED
    assert result.revision == 1
    assert result.destination == "memory://KAN-1/1"
    assert store.get("E-1") is None

    monkeypatch.undo()
    again = engine.process_entity(entity)
    assert again.outcome == Outcome.EMITTED
    assert sink.revisions == [1, 1]
    assert store.get("E-1").last_task_revision == 1


def test_connector_error_propagates_to_caller(engine, connector, entity):
    connector.failures["E-1"] = ConnectorError("timed out")

    with pytest.raises(ConnectorError, match="timed out"):
        engine.process_entity(entity)

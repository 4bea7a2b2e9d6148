"""Tests for the pure sync-state transitions."""

import pytest
from src.models.activity import ActivityStatus
from src.sync import state as transitions
from src.sync.state import SyncFailure, SyncOperation, SyncState


def _activity(sample_activity, activity_id, **update):
    return sample_activity.model_copy(update=dict(update, id=activity_id))


@pytest.fixture
def loaded(sample_activity):
    rows = [_activity(sample_activity, i, task_name=f"Task {i}") for i in (3, 2, 1)]
    return transitions.load_activities(transitions.start_loading(SyncState()), rows)


@pytest.mark.unit
def test_load_clears_loading_and_error():
    state = transitions.set_load_error(transitions.start_loading(SyncState()), "offline")
    assert state.load_error == "offline"
    assert state.loading is False

    state = transitions.start_loading(state)
    assert state.loading is True
    assert state.load_error is None

    state = transitions.load_activities(state, [])
    assert state.loading is False
    assert state.activities == ()


@pytest.mark.unit
def test_apply_edit_does_not_mutate_input(loaded):
    edited = transitions.apply_edit(loaded, 2, "status", "Completed")

    assert transitions.find_activity(edited, 2).status is ActivityStatus.COMPLETED
    assert transitions.find_activity(loaded, 2).status is ActivityStatus.IN_PROGRESS
    assert edited.activity_ids() == [3, 2, 1]


@pytest.mark.unit
def test_apply_edit_clamps_and_ignores_unknown(loaded):
    edited = transitions.apply_edit(loaded, 1, "progress", 150)
    assert transitions.find_activity(edited, 1).progress == 100

    assert transitions.apply_edit(loaded, 99, "progress", 10) is loaded


@pytest.mark.unit
def test_in_flight_is_counted_per_id(loaded, sample_activity):
    state = transitions.begin_write(transitions.begin_write(loaded, 1), 1)
    assert state.is_syncing(1)

    state = transitions.reconcile(state, 1, _activity(sample_activity, 1))
    assert state.is_syncing(1)

    state = transitions.reconcile(state, 1, _activity(sample_activity, 1))
    assert not state.is_syncing(1)
    assert state.in_flight_ids == frozenset()


@pytest.mark.unit
def test_reconcile_takes_server_record_except_preserved(loaded, sample_activity):
    state = transitions.apply_edit(loaded, 1, "description", "still typing")
    state = transitions.apply_edit(state, 1, "status", "Completed")
    state = transitions.begin_write(state, 1)
    echo = _activity(
        sample_activity, 1,
        task_name="Task 1", status=ActivityStatus.COMPLETED, updated_at="2025-06-02T00:00:00+00:00",
    )

    state = transitions.reconcile(state, 1, echo, preserve=["description"])

    record = transitions.find_activity(state, 1)
    assert record.updated_at == "2025-06-02T00:00:00+00:00"
    assert record.status is ActivityStatus.COMPLETED
    assert record.description == "still typing"


@pytest.mark.unit
def test_rollback_restores_snapshot_and_records_failure(loaded):
    snapshot = transitions.find_activity(loaded, 2)
    state = transitions.apply_edit(loaded, 2, "task_name", "Oops")
    state = transitions.begin_write(state, 2)
    failure = SyncFailure(SyncOperation.UPDATE, "HTTP 500: boom", field="task_name", value="Oops")

    state = transitions.rollback(state, 2, snapshot, failure)

    assert transitions.find_activity(state, 2) == snapshot
    assert state.errors[2] is failure
    assert not state.is_syncing(2)


@pytest.mark.unit
def test_successful_write_clears_previous_error(loaded, sample_activity):
    failure = SyncFailure(SyncOperation.UPDATE, "offline", field="progress", value=10)
    state = transitions.rollback(transitions.begin_write(loaded, 1), 1, None, failure)
    assert 1 in state.errors

    state = transitions.reconcile(transitions.begin_write(state, 1), 1, _activity(sample_activity, 1))

    assert 1 not in state.errors


@pytest.mark.unit
def test_remove_and_restore_keeps_index(loaded):
    state, index, removed = transitions.remove_activity(loaded, 2)
    assert index == 1
    assert state.activity_ids() == [3, 1]

    failure = SyncFailure(SyncOperation.DELETE, "offline", index=index)
    state = transitions.restore_activity(state, index, removed, failure)

    assert state.activity_ids() == [3, 2, 1]
    assert state.errors[2].operation is SyncOperation.DELETE


@pytest.mark.unit
def test_remove_unknown_id(loaded):
    assert transitions.remove_activity(loaded, 42) == (loaded, None, None)


@pytest.mark.unit
def test_placeholder_lifecycle(loaded, sample_activity):
    placeholder = _activity(sample_activity, -1, task_name="New Task")
    state = transitions.begin_write(transitions.insert_placeholder(loaded, placeholder), -1)
    assert state.activity_ids() == [-1, 3, 2, 1]

    created = _activity(sample_activity, 4, task_name="New Task")
    replaced = transitions.replace_placeholder(state, -1, created)
    assert replaced.activity_ids() == [4, 3, 2, 1]
    assert not replaced.is_syncing(-1)

    failure = SyncFailure(SyncOperation.CREATE, "offline", payload=placeholder.to_payload())
    discarded = transitions.discard_placeholder(state, -1, failure)
    assert discarded.activity_ids() == [3, 2, 1]
    assert discarded.errors[-1] is failure


@pytest.mark.unit
def test_clear_error(loaded):
    assert transitions.clear_error(loaded, 1) is loaded

    failure = SyncFailure(SyncOperation.UPDATE, "offline", field="progress", value=1)
    state = transitions.rollback(loaded, 1, None, failure)
    assert transitions.clear_error(state, 1).errors == {}


@pytest.mark.unit
def test_state_mappings_are_read_only(loaded):
    state = transitions.begin_write(loaded, 1)

    with pytest.raises(TypeError):
        state.in_flight[2] = 1

"""Client-side sync state and the pure functions that transition it.

Every function here takes a :class:`SyncState` and returns a new one; none
of them perform I/O or mutate their input. The controller owns the single
current state and swaps it for the result of each transition.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Tuple

from src.models.activity import Activity, normalize_field


class SyncOperation(str, Enum):
    """Kind of write a failure belongs to."""
    UPDATE = "update"
    CREATE = "create"
    DELETE = "delete"


@dataclass(frozen=True)
class SyncFailure:
    """Last failed write for one activity, with what is needed to retry it."""
    operation: SyncOperation
    reason: str
    field: Optional[str] = None
    value: Any = None
    payload: Optional[dict] = None
    index: Optional[int] = None


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(mapping)


@dataclass(frozen=True)
class SyncState:
    activities: Tuple[Activity, ...] = ()
    in_flight: Mapping[int, int] = field(default_factory=lambda: _frozen({}))
    errors: Mapping[int, SyncFailure] = field(default_factory=lambda: _frozen({}))
    assignees: Tuple[str, ...] = ()
    loading: bool = False
    load_error: Optional[str] = None

    @property
    def in_flight_ids(self) -> frozenset:
        """Ids with at least one write awaiting the server."""
        return frozenset(self.in_flight)

    def is_syncing(self, activity_id: int) -> bool:
        return activity_id in self.in_flight

    def activity_ids(self) -> list[int]:
        return [a.id for a in self.activities]


def find_activity(state: SyncState, activity_id: int) -> Optional[Activity]:
    for activity in state.activities:
        if activity.id == activity_id:
            return activity
    return None


def index_of(state: SyncState, activity_id: int) -> Optional[int]:
    for idx, activity in enumerate(state.activities):
        if activity.id == activity_id:
            return idx
    return None


def _replace_at(state: SyncState, idx: int, activity: Activity) -> Tuple[Activity, ...]:
    items = list(state.activities)
    items[idx] = activity
    return tuple(items)


def _with_error(state: SyncState, activity_id: int, failure: Optional[SyncFailure]) -> Mapping:
    errors = dict(state.errors)
    if failure is None:
        errors.pop(activity_id, None)
    else:
        errors[activity_id] = failure
    return _frozen(errors)


def _end_write(state: SyncState, activity_id: int) -> Mapping:
    in_flight = dict(state.in_flight)
    remaining = in_flight.get(activity_id, 0) - 1
    if remaining > 0:
        in_flight[activity_id] = remaining
    else:
        in_flight.pop(activity_id, None)
    return _frozen(in_flight)


def start_loading(state: SyncState) -> SyncState:
    return replace(state, loading=True, load_error=None)


def load_activities(state: SyncState, activities: Iterable[Activity]) -> SyncState:
    """Replace the list with a fresh server read."""
    return replace(
        state,
        activities=tuple(activities),
        loading=False,
        load_error=None,
    )


def set_load_error(state: SyncState, reason: str) -> SyncState:
    return replace(state, loading=False, load_error=reason)


def set_assignees(state: SyncState, assignees: Iterable[str]) -> SyncState:
    return replace(state, assignees=tuple(assignees))


def apply_edit(state: SyncState, activity_id: int, field_name: str, value: Any) -> SyncState:
    """Optimistically set one field. Unknown ids leave the state unchanged."""
    idx = index_of(state, activity_id)
    if idx is None:
        return state
    current = state.activities[idx]
    updated = current.model_copy(update={field_name: normalize_field(field_name, value)})
    return replace(state, activities=_replace_at(state, idx, updated))


def begin_write(state: SyncState, activity_id: int) -> SyncState:
    in_flight = dict(state.in_flight)
    in_flight[activity_id] = in_flight.get(activity_id, 0) + 1
    return replace(state, in_flight=_frozen(in_flight))


def reconcile(
    state: SyncState,
    activity_id: int,
    record: Optional[Activity],
    preserve: Iterable[str] = (),
) -> SyncState:
    """
    Accept a successful write.

    The server's echoed record replaces the local one, except for the fields
    in ``preserve``: those have their own debounced write still pending and
    keep their optimistic value until it is sent.
    """
    idx = index_of(state, activity_id)
    activities = state.activities
    if idx is not None and record is not None:
        current = state.activities[idx]
        keep = {name: getattr(current, name) for name in preserve}
        merged = record.model_copy(update=keep) if keep else record
        activities = _replace_at(state, idx, merged)
    return replace(
        state,
        activities=activities,
        in_flight=_end_write(state, activity_id),
        errors=_with_error(state, activity_id, None),
    )


def rollback(
    state: SyncState,
    activity_id: int,
    snapshot: Optional[Activity],
    failure: SyncFailure,
) -> SyncState:
    """Restore the whole pre-edit record and remember why the write failed."""
    idx = index_of(state, activity_id)
    activities = state.activities
    if idx is not None and snapshot is not None:
        activities = _replace_at(state, idx, snapshot)
    return replace(
        state,
        activities=activities,
        in_flight=_end_write(state, activity_id),
        errors=_with_error(state, activity_id, failure),
    )


def insert_placeholder(state: SyncState, placeholder: Activity) -> SyncState:
    """Show a not-yet-created activity at the head of the list."""
    return replace(
        state,
        activities=(placeholder,) + state.activities,
        errors=_with_error(state, placeholder.id, None),
    )


def replace_placeholder(state: SyncState, temp_id: int, record: Activity) -> SyncState:
    """Swap the placeholder for the server-assigned record, in place."""
    idx = index_of(state, temp_id)
    if idx is None:
        activities = (record,) + state.activities
    else:
        activities = _replace_at(state, idx, record)
    return replace(
        state,
        activities=activities,
        in_flight=_end_write(state, temp_id),
        errors=_with_error(state, temp_id, None),
    )


def discard_placeholder(state: SyncState, temp_id: int, failure: SyncFailure) -> SyncState:
    """Creation failed: drop the placeholder, keep the failure for retry."""
    return replace(
        state,
        activities=tuple(a for a in state.activities if a.id != temp_id),
        in_flight=_end_write(state, temp_id),
        errors=_with_error(state, temp_id, failure),
    )


def remove_activity(
    state: SyncState, activity_id: int
) -> Tuple[SyncState, Optional[int], Optional[Activity]]:
    """Optimistic delete. Returns the new state plus the removed row and its index."""
    idx = index_of(state, activity_id)
    if idx is None:
        return state, None, None
    removed = state.activities[idx]
    activities = state.activities[:idx] + state.activities[idx + 1:]
    return replace(state, activities=activities), idx, removed


def confirm_removal(state: SyncState, activity_id: int) -> SyncState:
    return replace(
        state,
        in_flight=_end_write(state, activity_id),
        errors=_with_error(state, activity_id, None),
    )


def restore_activity(
    state: SyncState, index: int, record: Activity, failure: SyncFailure
) -> SyncState:
    """Deletion failed: put the row back where it was."""
    items = [a for a in state.activities if a.id != record.id]
    items.insert(min(index, len(items)), record)
    return replace(
        state,
        activities=tuple(items),
        in_flight=_end_write(state, record.id),
        errors=_with_error(state, record.id, failure),
    )


def clear_error(state: SyncState, activity_id: int) -> SyncState:
    if activity_id not in state.errors:
        return state
    return replace(state, errors=_with_error(state, activity_id, None))

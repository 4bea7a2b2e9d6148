"""Sync controller - optimistic edits, debounced autosave, rollback and retry."""

import itertools
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Protocol

from pydantic import ValidationError

from src.models.activity import Activity, EDITABLE_FIELDS, normalize_field
from src.sync import state as transitions
from src.sync.scheduler import DebounceScheduler
from src.sync.state import SyncFailure, SyncOperation, SyncState
from src.utils.config import get_settings
from src.utils.logging import correlation_context, get_structured_logger, sanitize_text

logger = get_structured_logger(__name__)

NEW_TASK_DEFAULTS = {
    "task_name": "New Task",
    "description": "Enter description",
    "status": "Not Started",
    "priority": "Medium",
    "assignee": "",
    "due_date": None,
    "progress": 0,
    "estimated_hours": 0,
    "actual_hours": 0,
    "tags": [],
}


class InputChannel(str, Enum):
    """Where an edit came from; decides between debounced and immediate writes."""
    TEXT = "text"
    SELECT = "select"
    SLIDER = "slider"
    DATE = "date"
    BLUR = "blur"

    @property
    def debounced(self) -> bool:
        return self is InputChannel.TEXT


class ActivityApi(Protocol):
    async def list_activities(self) -> list[Activity]: ...
    async def create_activity(self, fields: dict[str, Any]) -> Activity: ...
    async def replace_activity(self, activity_id: int, payload: dict[str, Any]) -> Activity: ...
    async def delete_activity(self, activity_id: int) -> dict: ...
    async def list_assignees(self) -> list[str]: ...


@dataclass
class PendingWrite:
    """Latest value for a (id, field) burst plus the record as it was before the burst."""
    value: Any
    snapshot: Activity


StateListener = Callable[[SyncState], None]


class SyncController:
    """
    Keeps an in-memory activity list in sync with the API.

    Edits are applied locally first. Free-text edits are coalesced per
    (activity id, field) and written after ``debounce_seconds`` of quiet;
    discrete edits (select, slider release, date pick, blur) cancel any
    pending timer for the same key and write at once. A failed write restores
    the record as it was before the edit and records a :class:`SyncFailure`
    that :meth:`retry` can re-issue. Write failures never propagate to the
    caller.
    """

    def __init__(
        self,
        api: ActivityApi,
        debounce_seconds: Optional[float] = None,
        scheduler: Optional[DebounceScheduler] = None,
    ):
        if debounce_seconds is None:
            debounce_seconds = get_settings().sync_debounce_seconds
        self.api = api
        self.scheduler = scheduler or DebounceScheduler(debounce_seconds)
        self._state = SyncState()
        self._pending: dict[tuple[int, str], PendingWrite] = {}
        self._listeners: list[StateListener] = []
        self._temp_ids = itertools.count(-1, -1)
        # temp ids whose POST has not returned yet
        self._creating: set[int] = set()

    # ---- state ----

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def activities(self) -> tuple[Activity, ...]:
        return self._state.activities

    def get(self, activity_id: int) -> Optional[Activity]:
        return transitions.find_activity(self._state, activity_id)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with the new state after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _set_state(self, new_state: SyncState) -> None:
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception as e:
                logger.error("State listener failed", error=str(e), exc_info=True)

    def has_pending(self, activity_id: int, field_name: str) -> bool:
        return (activity_id, field_name) in self._pending

    def _pending_fields(self, activity_id: int) -> list[str]:
        return [f for (aid, f) in self._pending if aid == activity_id]

    # ---- reads ----

    async def load(self) -> bool:
        """
        Initial read. A failure is kept as ``state.load_error`` and the view
        stays in that state until the caller loads again.
        """
        self._set_state(transitions.start_loading(self._state))
        try:
            activities = await self.api.list_activities()
        except Exception as e:
            logger.error("Failed to load activities", error=str(e))
            self._set_state(transitions.set_load_error(self._state, str(e)))
            return False
        self._set_state(transitions.load_activities(self._state, activities))
        logger.info("Activities loaded", activities=len(activities))
        return True

    async def refresh_assignees(self) -> bool:
        try:
            assignees = await self.api.list_assignees()
        except Exception as e:
            logger.warning("Failed to load assignees", error=str(e))
            return False
        self._set_state(transitions.set_assignees(self._state, assignees))
        return True

    # ---- edits ----

    async def edit(
        self,
        activity_id: int,
        field_name: str,
        value: Any,
        channel: InputChannel = InputChannel.TEXT,
    ) -> None:
        """Apply an edit locally and schedule (TEXT) or perform (other channels) the write."""
        if field_name not in EDITABLE_FIELDS:
            raise ValueError(f"Field is not editable: {field_name}")
        current = self.get(activity_id)
        if current is None:
            logger.warning("Edit for unknown activity ignored", activity_id=activity_id, field=field_name)
            return

        value = normalize_field(field_name, value)
        key = (activity_id, field_name)
        pending = self._pending.get(key)
        snapshot = pending.snapshot if pending else current
        self._pending[key] = PendingWrite(value=value, snapshot=snapshot)
        self._set_state(transitions.apply_edit(self._state, activity_id, field_name, value))

        if activity_id in self._creating:
            # Held until the POST returns the real id
            return

        if channel.debounced:
            self.scheduler.schedule(key, lambda: self._write_pending(key))
            return

        self.scheduler.cancel(key)
        await self._write_pending(key)

    async def commit(self, activity_id: int, field_name: str) -> bool:
        """Blur: send a pending debounced write now. Returns whether one was pending."""
        key = (activity_id, field_name)
        if activity_id in self._creating:
            return False
        self.scheduler.cancel(key)
        if key not in self._pending:
            return False
        await self._write_pending(key)
        return True

    async def _write_pending(self, key: tuple[int, str]) -> None:
        if key[0] in self._creating:
            return
        pending = self._pending.pop(key, None)
        if pending is None:
            return
        activity_id, field_name = key
        await self._send_update(activity_id, field_name, pending.value, pending.snapshot)

    async def _send_update(
        self, activity_id: int, field_name: str, value: Any, snapshot: Activity
    ) -> None:
        current = self.get(activity_id)
        if current is None:
            return
        payload = current.model_copy(update={field_name: value}).to_payload()

        self._set_state(transitions.begin_write(self._state, activity_id))
        with correlation_context():
            logger.info(
                "Sending activity update",
                activity_id=activity_id,
                field=field_name,
                value_preview=sanitize_text(str(value), max_length=80)
            )
            try:
                record = await self.api.replace_activity(activity_id, payload)
            except Exception as e:
                failure = SyncFailure(
                    operation=SyncOperation.UPDATE,
                    reason=str(e) or e.__class__.__name__,
                    field=field_name,
                    value=value,
                )
                logger.warning(
                    "Activity update failed, rolled back",
                    activity_id=activity_id,
                    field=field_name,
                    error=failure.reason
                )
                self._set_state(transitions.rollback(self._state, activity_id, snapshot, failure))
                return

        self._set_state(
            transitions.reconcile(
                self._state,
                activity_id,
                record,
                preserve=self._pending_fields(activity_id),
            )
        )

    # ---- create / delete ----

    async def create(self, fields: Optional[dict[str, Any]] = None) -> Optional[Activity]:
        """
        Insert a placeholder at the head of the list, POST it, then swap in the
        server record. Returns the created activity, or None on failure.
        """
        temp_id = next(self._temp_ids)
        data = dict(NEW_TASK_DEFAULTS, start_date=date.today().isoformat())
        data.update(fields or {})

        try:
            placeholder = Activity.model_validate(dict(data, id=temp_id))
        except ValidationError as e:
            failure = SyncFailure(operation=SyncOperation.CREATE, reason=str(e), payload=data)
            self._set_state(transitions.discard_placeholder(self._state, temp_id, failure))
            return None

        self._set_state(transitions.insert_placeholder(self._state, placeholder))
        return await self._send_create(temp_id, placeholder.to_payload())

    async def _send_create(self, temp_id: int, payload: dict[str, Any]) -> Optional[Activity]:
        self._creating.add(temp_id)
        self._set_state(transitions.begin_write(self._state, temp_id))
        with correlation_context():
            try:
                record = await self.api.create_activity(payload)
            except Exception as e:
                self._creating.discard(temp_id)
                # Edits typed into the placeholder go into the payload a retry re-sends
                placeholder = self.get(temp_id)
                if placeholder is not None:
                    payload = placeholder.to_payload()
                self._take_pending(temp_id)
                failure = SyncFailure(
                    operation=SyncOperation.CREATE,
                    reason=str(e) or e.__class__.__name__,
                    payload=payload,
                )
                logger.warning("Activity create failed", temp_id=temp_id, error=failure.reason)
                self._set_state(transitions.discard_placeholder(self._state, temp_id, failure))
                return None

        self._creating.discard(temp_id)
        self._set_state(transitions.replace_placeholder(self._state, temp_id, record))
        logger.info("Activity created", activity_id=record.id)
        self._adopt_pending(temp_id, record)
        return record

    def _adopt_pending(self, temp_id: int, record: Activity) -> None:
        """Move edits made while the POST was in flight onto the created record and schedule their writes."""
        held = self._take_pending(temp_id)
        if not held:
            return
        state = self._state
        for field_name, pending in held.items():
            state = transitions.apply_edit(state, record.id, field_name, pending.value)
            self._pending[(record.id, field_name)] = PendingWrite(value=pending.value, snapshot=record)
        self._set_state(state)
        self._schedule_writes(record.id, held)
        logger.info("Placeholder edits carried over", activity_id=record.id, fields=sorted(held))

    async def delete(self, activity_id: int) -> bool:
        """Remove the row at once; put it back at the same index if the server refuses."""
        if activity_id in self._creating:
            logger.warning("Delete ignored, activity is still being created", temp_id=activity_id)
            return False
        new_state, index, removed = transitions.remove_activity(self._state, activity_id)
        if removed is None:
            return False
        held = self._take_pending(activity_id)
        self._set_state(transitions.begin_write(new_state, activity_id))
        return await self._send_delete(activity_id, index, removed, held)

    async def _send_delete(
        self, activity_id: int, index: int, removed: Activity, held: dict[str, PendingWrite]
    ) -> bool:
        with correlation_context():
            try:
                await self.api.delete_activity(activity_id)
            except Exception as e:
                failure = SyncFailure(
                    operation=SyncOperation.DELETE,
                    reason=str(e) or e.__class__.__name__,
                    index=index,
                )
                logger.warning("Activity delete failed, row restored", activity_id=activity_id, error=failure.reason)
                self._set_state(transitions.restore_activity(self._state, index, removed, failure))
                # The restored row still shows these edits, so they must still be sent
                for field_name, pending in held.items():
                    self._pending[(activity_id, field_name)] = pending
                self._schedule_writes(activity_id, held)
                return False

        self._set_state(transitions.confirm_removal(self._state, activity_id))
        logger.info("Activity deleted", activity_id=activity_id)
        return True

    def _take_pending(self, activity_id: int) -> dict[str, PendingWrite]:
        """Cancel and remove the pending writes for one activity, returning them by field."""
        held = {}
        for field_name in self._pending_fields(activity_id):
            self.scheduler.cancel((activity_id, field_name))
            held[field_name] = self._pending.pop((activity_id, field_name))
        return held

    def _schedule_writes(self, activity_id: int, fields: Iterable[str]) -> None:
        for field_name in fields:
            key = (activity_id, field_name)
            self.scheduler.schedule(key, lambda key=key: self._write_pending(key))

    # ---- failures ----

    async def retry(self, activity_id: int) -> bool:
        """Re-issue the failed write recorded for ``activity_id`` with the same value."""
        failure = self._state.errors.get(activity_id)
        if failure is None:
            return False

        if failure.operation is SyncOperation.CREATE:
            try:
                placeholder = Activity.model_validate(dict(failure.payload or {}, id=activity_id))
            except ValidationError:
                logger.warning("Failed create is not retryable, payload is invalid", temp_id=activity_id)
                return False
        elif self.get(activity_id) is None:
            return False

        self._set_state(transitions.clear_error(self._state, activity_id))
        logger.info("Retrying failed write", activity_id=activity_id, operation=failure.operation.value)

        if failure.operation is SyncOperation.UPDATE:
            await self.edit(activity_id, failure.field, failure.value, channel=InputChannel.BLUR)
        elif failure.operation is SyncOperation.CREATE:
            self._set_state(transitions.insert_placeholder(self._state, placeholder))
            await self._send_create(activity_id, placeholder.to_payload())
        else:
            return await self.delete(activity_id)

        return activity_id not in self._state.errors

    def dismiss_error(self, activity_id: int) -> None:
        self._set_state(transitions.clear_error(self._state, activity_id))

    # ---- lifecycle ----

    async def flush_all(self) -> None:
        """Send every pending debounced write now."""
        for key in list(self._pending):
            self.scheduler.cancel(key)
            await self._write_pending(key)

    async def aclose(self, flush: bool = True) -> None:
        if flush:
            await self.flush_all()
        self.scheduler.cancel_all()
        self._pending.clear()

"""Fake collaborators for sync controller tests."""

import asyncio
from typing import Any, Optional

from src.models.activity import Activity
from src.utils.errors import ActivityNotFoundError, SyncTransportError


class FakeActivityApi:
    """
    In-memory stand-in for ActivityApiClient.

    - Records every write as (method, id, payload) in ``calls``
    - ``fail_next(n)`` makes the next n writes raise SyncTransportError
    - ``hold()`` parks writes until ``release()`` so in-flight state can be observed
    - Echoes records the way the server would (id, timestamps, clamping via the model)
    """

    def __init__(self, activities: Optional[list[Activity]] = None):
        self.records: dict[int, Activity] = {a.id: a for a in activities or []}
        self.calls: list[tuple[str, Optional[int], Any]] = []
        self.assignees: list[str] = ["Jane Smith", "John Doe"]
        self.fail_list = False
        self._failures_left = 0
        self._gate: Optional[asyncio.Event] = None
        self._next_id = max(self.records, default=0) + 1
        self._clock = 0

    def fail_next(self, count: int = 1) -> None:
        self._failures_left = count

    def hold(self) -> None:
        self._gate = asyncio.Event()

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()
            self._gate = None

    def writes(self, method: str) -> list[tuple[str, Optional[int], Any]]:
        return [c for c in self.calls if c[0] == method]

    def _stamp(self) -> str:
        self._clock += 1
        return f"2025-06-01T12:00:{self._clock:02d}+00:00"

    async def _write(self, method: str, activity_id: Optional[int], payload: Any) -> None:
        self.calls.append((method, activity_id, payload))
        if self._gate is not None:
            await self._gate.wait()
        if self._failures_left:
            self._failures_left -= 1
            raise SyncTransportError(f"{method} failed: connection refused")

    async def list_activities(self) -> list[Activity]:
        if self.fail_list:
            raise SyncTransportError("GET /api/activities failed: connection refused")
        return sorted(self.records.values(), key=lambda a: a.id, reverse=True)

    async def list_assignees(self) -> list[str]:
        return list(self.assignees)

    async def create_activity(self, fields: dict[str, Any]) -> Activity:
        await self._write("POST", None, fields)
        now = self._stamp()
        record = Activity.model_validate(dict(fields, id=self._next_id, created_at=now, updated_at=now))
        self._next_id += 1
        self.records[record.id] = record
        return record

    async def replace_activity(self, activity_id: int, payload: dict[str, Any]) -> Activity:
        await self._write("PUT", activity_id, payload)
        if activity_id not in self.records:
            raise ActivityNotFoundError(activity_id)
        existing = self.records[activity_id]
        record = Activity.model_validate(
            dict(payload, id=activity_id, created_at=existing.created_at, updated_at=self._stamp())
        )
        self.records[activity_id] = record
        return record

    async def delete_activity(self, activity_id: int) -> dict:
        await self._write("DELETE", activity_id, None)
        if self.records.pop(activity_id, None) is None:
            raise ActivityNotFoundError(activity_id)
        return {"message": "Activity deleted successfully", "id": activity_id}

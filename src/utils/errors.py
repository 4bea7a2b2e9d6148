"""Error handling utilities."""

from typing import Any, Optional


class TaskTrackerError(Exception):
    """Base exception for the task tracker."""
    pass


class StoreError(TaskTrackerError):
    """Storage backend operation error."""
    pass


class SupabaseError(StoreError):
    """Supabase operation error."""
    pass


class ActivityNotFoundError(TaskTrackerError):
    """Activity does not exist (or no longer exists)."""

    def __init__(self, activity_id: Any):
        super().__init__(f"Activity not found: {activity_id}")
        self.activity_id = activity_id


class ActivityValidationError(TaskTrackerError):
    """Request body rejected by validation."""

    def __init__(self, message: str, details: Optional[list[dict]] = None):
        super().__init__(message)
        self.details = details or []


class SyncError(TaskTrackerError):
    """Client-side synchronization error."""
    pass


class SyncTransportError(SyncError):
    """Network/transport failure talking to the API."""
    pass


class ApiResponseError(SyncError):
    """API answered with a non-success status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code

"""Activity model - the single task record tracked by the service."""

import math
from enum import Enum
from typing import Any, Optional
from datetime import date
from pydantic import BaseModel, Field, field_validator

TAG_SEPARATOR = ","

PROGRESS_MIN = 0
PROGRESS_MAX = 100

HOUR_FIELDS = ("estimated_hours", "actual_hours")

# Columns written by clients; id and timestamps belong to the server
EDITABLE_FIELDS = (
    "task_name",
    "description",
    "status",
    "priority",
    "assignee",
    "start_date",
    "due_date",
    "progress",
    "estimated_hours",
    "actual_hours",
    "tags",
)


class ActivityStatus(str, Enum):
    """Activity status values."""
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    ON_HOLD = "On Hold"
    CANCELLED = "Cancelled"


class ActivityPriority(str, Enum):
    """Activity priority values."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


def clamp_progress(value: Any) -> int:
    """Coerce progress to an int in [0, 100]."""
    if value is None or value == "":
        return PROGRESS_MIN
    progress = float(value)
    if not math.isfinite(progress):
        raise ValueError("progress must be a finite number")
    return max(PROGRESS_MIN, min(PROGRESS_MAX, int(progress)))


def clamp_hours(value: Any) -> Optional[float]:
    """Coerce an hour figure to a non-negative float (None stays None)."""
    if value is None or value == "":
        return None
    hours = float(value)
    if not math.isfinite(hours):
        raise ValueError("hours must be a finite number")
    return max(0.0, hours)


def parse_tags(raw: Any) -> list[str]:
    """Turn the stored delimited string (or a list) into an ordered, de-duplicated tag list."""
    if not raw:
        return []
    if isinstance(raw, str):
        parts = raw.split(TAG_SEPARATOR)
    else:
        parts = []
        for item in raw:
            parts.extend(str(item).split(TAG_SEPARATOR))

    tags: list[str] = []
    for part in parts:
        tag = part.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def format_tags(tags: Any) -> str:
    """Serialize a tag list for storage. Anything that is not a list stores as ''."""
    if not isinstance(tags, (list, tuple)):
        return ""
    return TAG_SEPARATOR.join(parse_tags(tags))


def normalize_field(field: str, value: Any) -> Any:
    """
    Apply the write-side clamps for a single field edit.

    Used for optimistic edits on the client, where the record is updated
    without full model validation (a half-typed task name is still a valid
    intermediate state). Values that cannot be coerced are returned as-is
    and left for the server to reject.
    """
    if field == "progress" or field in HOUR_FIELDS:
        clamp = clamp_progress if field == "progress" else clamp_hours
        try:
            return clamp(value)
        except (TypeError, ValueError, OverflowError):
            return value
    if field == "tags":
        return parse_tags(value)
    if field == "status" and value in ActivityStatus._value2member_map_:
        return ActivityStatus(value)
    if field == "priority" and value in ActivityPriority._value2member_map_:
        return ActivityPriority(value)
    if field in ("start_date", "due_date") and isinstance(value, str):
        if not value:
            return None
        try:
            return date.fromisoformat(value)
        except ValueError:
            return value
    return value


class ActivityFields(BaseModel):
    """Client-writable activity fields with server defaults."""
    task_name: str = Field(..., min_length=1, description="Task name")
    description: Optional[str] = Field(None, description="Task description")
    status: ActivityStatus = Field(default=ActivityStatus.NOT_STARTED, description="Workflow status")
    priority: ActivityPriority = Field(default=ActivityPriority.MEDIUM, description="Priority")
    assignee: Optional[str] = Field(None, description="Free-text assignee name")
    start_date: Optional[date] = Field(None, description="Start date")
    due_date: Optional[date] = Field(None, description="Due date")
    progress: int = Field(default=0, description="Percent complete (0-100)")
    estimated_hours: Optional[float] = Field(None, description="Estimated effort in hours")
    actual_hours: Optional[float] = Field(None, description="Logged effort in hours")
    tags: list[str] = Field(default_factory=list, description="Ordered tag set")

    @field_validator("task_name", mode="before")
    @classmethod
    def _strip_task_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("start_date", "due_date", mode="before")
    @classmethod
    def _blank_date_is_none(cls, value: Any) -> Any:
        return None if value == "" else value

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp_progress(cls, value: Any) -> int:
        try:
            return clamp_progress(value)
        except (TypeError, ValueError, OverflowError):
            raise ValueError("progress must be a finite number")

    @field_validator("estimated_hours", "actual_hours", mode="before")
    @classmethod
    def _clamp_hours(cls, value: Any) -> Optional[float]:
        try:
            return clamp_hours(value)
        except (TypeError, ValueError, OverflowError):
            raise ValueError("hours must be a finite number")

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            # Accept the storage form too
            return parse_tags(value)
        if not isinstance(value, (list, tuple)):
            raise ValueError("tags must be a list of strings")
        return parse_tags(value)

    def to_row(self) -> dict[str, Any]:
        """Storage row: enums as values, dates as ISO strings, tags joined."""
        row = self.model_dump(mode="json")
        row["tags"] = format_tags(self.tags)
        return row


class ActivityCreate(ActivityFields):
    """POST body: a partial activity, server fills defaults."""
    pass


class ActivityUpdate(ActivityFields):
    """PUT body: full replacement; omitted fields revert to their defaults."""
    pass


class Activity(ActivityFields):
    """Stored activity as returned by the API."""
    id: int = Field(..., description="Server-assigned identifier")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Activity":
        """Build from a storage row, where tags are a delimited string."""
        data = dict(row)
        data["tags"] = parse_tags(data.get("tags"))
        return cls.model_validate(data)

    def to_payload(self) -> dict[str, Any]:
        """JSON body for a full-record PUT."""
        return self.model_dump(mode="json", include=set(EDITABLE_FIELDS))

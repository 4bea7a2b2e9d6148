"""Activity data service - CRUD over the activities table."""

from datetime import datetime, timezone
from typing import Any, Optional
from pydantic import ValidationError

from src.models.activity import Activity, ActivityCreate, ActivityUpdate
from src.services.activity_store import ActivityStore, SqliteActivityStore
from src.utils.config import Settings, get_settings
from src.utils.errors import ActivityNotFoundError, ActivityValidationError
from src.utils.logging import get_structured_logger, log_timing, sanitize_text

logger = get_structured_logger(__name__)


def _validation_details(error: ValidationError) -> list[dict]:
    return [
        {
            "field": ".".join(str(p) for p in err.get("loc", ())),
            "message": err.get("msg", ""),
        }
        for err in error.errors()
    ]


class ActivityService:
    """Validates requests and maps between API models and storage rows."""

    def __init__(self, store: ActivityStore):
        self.store = store

    def list_activities(self) -> list[Activity]:
        """All activities, newest first."""
        with log_timing("list_activities", logger=logger):
            rows = self.store.list_activities()
        return [Activity.from_row(r) for r in rows]

    def get_activity(self, activity_id: int) -> Activity:
        row = self.store.get_activity(activity_id)
        if row is None:
            raise ActivityNotFoundError(activity_id)
        return Activity.from_row(row)

    def create_activity(self, payload: Any) -> Activity:
        """
        Create an activity from a partial body.

        Omitted fields get their defaults (status Not Started, priority
        Medium, progress 0, no tags); the store assigns id and timestamps.
        """
        data = self._validate(ActivityCreate, payload)
        with log_timing("create_activity", logger=logger):
            row = self.store.insert_activity(data.to_row())
        activity = Activity.from_row(row)
        logger.info(
            "Activity created",
            activity_id=activity.id,
            task_name=sanitize_text(activity.task_name, max_length=80)
        )
        return activity

    def replace_activity(self, activity_id: int, payload: Any) -> Activity:
        """Full-record replace; fields missing from the body revert to defaults."""
        data = self._validate(ActivityUpdate, payload)
        with log_timing("replace_activity", logger=logger, activity_id=activity_id):
            row = self.store.replace_activity(activity_id, data.to_row())
        if row is None:
            logger.info("Replace for unknown activity", activity_id=activity_id)
            raise ActivityNotFoundError(activity_id)
        logger.info("Activity updated", activity_id=activity_id)
        return Activity.from_row(row)

    def delete_activity(self, activity_id: int) -> dict:
        with log_timing("delete_activity", logger=logger, activity_id=activity_id):
            deleted = self.store.delete_activity(activity_id)
        if not deleted:
            raise ActivityNotFoundError(activity_id)
        logger.info("Activity deleted", activity_id=activity_id)
        return {"message": "Activity deleted successfully", "id": activity_id}

    def list_assignees(self) -> list[str]:
        return self.store.list_assignees()

    def health(self) -> dict:
        return {
            "status": "OK",
            "database": self.store.backend_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "activities": self.store.count_activities(),
        }

    @staticmethod
    def _validate(model: type, payload: Any):
        if not isinstance(payload, dict):
            raise ActivityValidationError("Request body must be a JSON object")
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            details = _validation_details(e)
            logger.info("Activity payload rejected", errors=details)
            raise ActivityValidationError("Invalid activity payload", details=details)


def create_activity_store(settings: Settings) -> ActivityStore:
    """Build the store selected by DATABASE_BACKEND."""
    if settings.database_backend == "supabase":
        from src.services.supabase_client import SupabaseActivityStore
        return SupabaseActivityStore()
    return SqliteActivityStore(settings.database_path)


# Global service instance
_service: Optional[ActivityService] = None


def get_activity_service() -> ActivityService:
    """Get or create the global service, seeding sample data on first use when enabled."""
    global _service
    if _service is None:
        settings = get_settings()
        store = create_activity_store(settings)
        if settings.seed_sample_data:
            from src.services.sample_data import seed_sample_data
            seed_sample_data(store)
        _service = ActivityService(store)
    return _service


def reset_activity_service() -> None:
    """Close and forget the global service."""
    global _service
    if _service is not None:
        _service.store.close()
    _service = None

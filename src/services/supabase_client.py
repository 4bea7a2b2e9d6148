"""Supabase client wrapper and the Postgres-backed activity store."""

from typing import Any, Optional
from supabase import create_client, Client
from supabase.client import ClientOptions

from src.services.activity_store import ActivityStore, COLUMNS, utc_now_iso
from src.utils.config import get_settings
from src.utils.errors import SupabaseError
import logging

logger = logging.getLogger(__name__)

ACTIVITIES_TABLE = "activities"

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        settings = get_settings()
        url = settings.supabase_url
        key = settings.supabase_service_role_key

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"url": url})

    return _client


def close_supabase_client() -> None:
    """Drop the client singleton (supabase-py has no explicit close)."""
    global _client
    if _client:
        _client = None
        logger.info("Supabase client closed")


class SupabaseClient:
    """Context manager around the client that logs failed operations."""

    def __init__(self, client: Optional[Client] = None):
        self._override = client
        self.client: Optional[Client] = None

    def __enter__(self) -> Client:
        self.client = self._override or get_supabase_client()
        return self.client

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


class SupabaseActivityStore(ActivityStore):
    """
    Activity store on a Supabase (Postgres) ``activities`` table.

    Expects the same columns as the SQLite schema, with ``tags`` as TEXT.
    """

    backend_name = "PostgreSQL (Supabase)"

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    def _table(self, client: Client):
        return client.table(ACTIVITIES_TABLE)

    def list_activities(self) -> list[dict]:
        with SupabaseClient(self._client) as client:
            try:
                result = (
                    self._table(client)
                    .select("*")
                    .order("created_at", desc=True)
                    .order("id", desc=True)
                    .execute()
                )
                return result.data if result.data else []
            except Exception as e:
                raise SupabaseError(f"Failed to list activities: {e}")

    def get_activity(self, activity_id: int) -> Optional[dict]:
        with SupabaseClient(self._client) as client:
            try:
                result = self._table(client).select("*").eq("id", activity_id).limit(1).execute()
                return result.data[0] if result.data else None
            except Exception as e:
                raise SupabaseError(f"Failed to get activity {activity_id}: {e}")

    def insert_activity(self, row: dict[str, Any]) -> dict:
        now = utc_now_iso()
        record = {c: row.get(c) for c in COLUMNS}
        record.update(created_at=now, updated_at=now)
        with SupabaseClient(self._client) as client:
            try:
                result = self._table(client).insert(record).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to create activity: {e}")
            if result.data:
                return result.data[0]
            raise SupabaseError("Failed to create activity: no data returned")

    def replace_activity(self, activity_id: int, row: dict[str, Any]) -> Optional[dict]:
        record = {c: row.get(c) for c in COLUMNS}
        record["updated_at"] = utc_now_iso()
        with SupabaseClient(self._client) as client:
            try:
                result = self._table(client).update(record).eq("id", activity_id).execute()
                return result.data[0] if result.data else None
            except Exception as e:
                raise SupabaseError(f"Failed to update activity {activity_id}: {e}")

    def delete_activity(self, activity_id: int) -> bool:
        with SupabaseClient(self._client) as client:
            try:
                result = self._table(client).delete().eq("id", activity_id).execute()
                return bool(result.data)
            except Exception as e:
                raise SupabaseError(f"Failed to delete activity {activity_id}: {e}")

    def list_assignees(self) -> list[str]:
        with SupabaseClient(self._client) as client:
            try:
                result = (
                    self._table(client)
                    .select("assignee")
                    .not_.is_("assignee", "null")
                    .order("assignee")
                    .execute()
                )
            except Exception as e:
                raise SupabaseError(f"Failed to list assignees: {e}")
        names = {r["assignee"] for r in (result.data or []) if (r.get("assignee") or "").strip()}
        return sorted(names)

    def count_activities(self) -> int:
        with SupabaseClient(self._client) as client:
            try:
                result = self._table(client).select("id", count="exact").execute()
                return result.count or 0
            except Exception as e:
                raise SupabaseError(f"Failed to count activities: {e}")

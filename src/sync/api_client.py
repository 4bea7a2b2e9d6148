"""Async HTTP client for the activities API."""

from typing import Any, Optional

import httpx

from src.models.activity import Activity
from src.utils.config import get_settings
from src.utils.errors import ActivityNotFoundError, ApiResponseError, SyncTransportError
from src.utils.logging import get_correlation_id, get_structured_logger, timed
from src.utils.logging_config import LoggingConfig

logger = get_structured_logger(__name__)


class ActivityApiClient:
    """
    Thin wrapper over ``httpx.AsyncClient``.

    Raises :class:`SyncTransportError` when the server cannot be reached,
    :class:`ActivityNotFoundError` on 404 and :class:`ApiResponseError` for
    any other non-2xx answer. No retries and no timeout beyond the client
    default configured by API_TIMEOUT_SECONDS.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.api_timeout_seconds,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "ActivityApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        headers = {}
        correlation_id = get_correlation_id()
        if correlation_id:
            headers[LoggingConfig.LOG_CORRELATION_ID_HEADER] = correlation_id

        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("API request failed", method=method, path=path, error=str(e))
            raise SyncTransportError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404:
            raise ActivityNotFoundError(path.rsplit("/", 1)[-1])
        if response.is_error:
            raise ApiResponseError(response.status_code, self._error_message(response))

        try:
            return response.json()
        except ValueError as e:
            raise ApiResponseError(response.status_code, "Response is not valid JSON") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return response.reason_phrase

    @timed("api.list_activities")
    async def list_activities(self) -> list[Activity]:
        data = await self._request("GET", "/api/activities")
        return [Activity.model_validate(item) for item in data]

    async def get_activity(self, activity_id: int) -> Activity:
        data = await self._request("GET", f"/api/activities/{activity_id}")
        return Activity.model_validate(data)

    async def create_activity(self, fields: dict[str, Any]) -> Activity:
        data = await self._request("POST", "/api/activities", json=fields)
        return Activity.model_validate(data)

    async def replace_activity(self, activity_id: int, payload: dict[str, Any]) -> Activity:
        data = await self._request("PUT", f"/api/activities/{activity_id}", json=payload)
        return Activity.model_validate(data)

    async def delete_activity(self, activity_id: int) -> dict:
        return await self._request("DELETE", f"/api/activities/{activity_id}")

    async def list_assignees(self) -> list[str]:
        return await self._request("GET", "/api/assignees")

    async def health(self) -> dict:
        return await self._request("GET", "/api/health")

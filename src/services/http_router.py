"""Route REST requests to the activity service.

``route_request`` is transport-agnostic: the serverless handlers under
``api/`` and the local dev server both feed it a method, a path and a parsed
JSON body, and write back whatever status and payload it returns.
"""

import re
from typing import Any, Optional, Tuple
from urllib.parse import urlsplit

from src.services.activity_service import ActivityService
from src.utils.errors import ActivityNotFoundError, ActivityValidationError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

_ACTIVITY_ITEM = re.compile(r"^/api/activities/(?P<id>[^/]+)$")

ENDPOINTS = [
    "/api/activities",
    "/api/activities/:id",
    "/api/assignees",
    "/api/health",
]


class MalformedBody:
    """Marker for a request body that could not be parsed as JSON."""
    pass


MALFORMED_BODY = MalformedBody()


def _error(status: int, message: str, **extra: Any) -> Tuple[int, dict]:
    body = {"error": message}
    body.update(extra)
    return status, body


def _parse_id(raw: str) -> Optional[int]:
    try:
        return int(raw)
    except ValueError:
        return None


def route_request(
    method: str,
    path: str,
    body: Any,
    service: ActivityService,
) -> Tuple[int, Any]:
    """Dispatch one request; returns (status code, JSON-serializable payload)."""
    method = method.upper()
    path = urlsplit(path).path.rstrip("/") or "/"

    if body is MALFORMED_BODY:
        return _error(400, "Request body is not valid JSON")

    try:
        if path == "/":
            if method != "GET":
                return _error(405, "Method not allowed")
            return 200, {
                "message": "Task Management API is running",
                "endpoints": ENDPOINTS,
            }

        if path == "/api/health":
            if method not in ("GET", "POST"):
                return _error(405, "Method not allowed")
            return 200, service.health()

        if path == "/api/assignees":
            if method != "GET":
                return _error(405, "Method not allowed")
            return 200, service.list_assignees()

        if path == "/api/activities":
            if method == "GET":
                return 200, [a.model_dump(mode="json") for a in service.list_activities()]
            if method == "POST":
                return 201, service.create_activity(body).model_dump(mode="json")
            return _error(405, "Method not allowed")

        match = _ACTIVITY_ITEM.match(path)
        if match:
            activity_id = _parse_id(match.group("id"))
            if activity_id is None:
                return _error(404, "Activity not found")
            if method == "GET":
                return 200, service.get_activity(activity_id).model_dump(mode="json")
            if method == "PUT":
                return 200, service.replace_activity(activity_id, body).model_dump(mode="json")
            if method == "DELETE":
                return 200, service.delete_activity(activity_id)
            return _error(405, "Method not allowed")

        return _error(404, "Not found")

    except ActivityNotFoundError:
        return _error(404, "Activity not found")
    except ActivityValidationError as e:
        return _error(400, str(e), details=e.details)
    except Exception as e:
        logger.error(
            "Unhandled error routing request",
            method=method,
            path=path,
            error=str(e),
            exc_info=True
        )
        return _error(500, "Internal server error")

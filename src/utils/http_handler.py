"""JSON request handler shared by the serverless functions and the dev server."""

from http.server import BaseHTTPRequestHandler
import json
from typing import Any

from src.services.activity_service import get_activity_service
from src.services.http_router import MALFORMED_BODY, route_request
from src.utils.config import get_settings
from src.utils.logging import correlation_context, get_structured_logger
from src.utils.logging_config import LoggingConfig

logger = get_structured_logger(__name__)


class JsonRequestHandler(BaseHTTPRequestHandler):
    """Reads a JSON body, routes it, writes a JSON response with CORS headers."""

    server_version = "TaskTracker/1.0"

    def _read_body(self) -> Any:
        content_length = int(self.headers.get('Content-Length', 0) or 0)
        if content_length <= 0:
            return None
        try:
            raw_body = self.rfile.read(content_length).decode('utf-8')
        except UnicodeDecodeError:
            return MALFORMED_BODY
        if not raw_body.strip():
            return None
        try:
            return json.loads(raw_body)
        except json.JSONDecodeError:
            return MALFORMED_BODY

    def _send_cors_headers(self) -> None:
        self.send_header('Access-Control-Allow-Origin', get_settings().cors_allow_origin)
        self.send_header('Access-Control-Allow-Methods', 'GET, POST, PUT, DELETE, OPTIONS')
        self.send_header(
            'Access-Control-Allow-Headers',
            f"Content-Type, Authorization, X-Requested-With, {LoggingConfig.LOG_CORRELATION_ID_HEADER}"
        )

    def send_json(self, status: int, payload: Any, correlation_id: str = "") -> None:
        body = json.dumps(payload).encode('utf-8')
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Content-Length', str(len(body)))
        if correlation_id:
            self.send_header(LoggingConfig.LOG_CORRELATION_ID_HEADER, correlation_id)
        self._send_cors_headers()
        self.end_headers()
        self.wfile.write(body)

    def _handle(self, method: str) -> None:
        incoming_id = self.headers.get(LoggingConfig.LOG_CORRELATION_ID_HEADER) if self.headers else None
        with correlation_context(incoming_id or None) as correlation_id:
            request_logger = logger.bind(method=method, path=self.path)
            try:
                body = self._read_body() if method in ("POST", "PUT") else None
                status, payload = route_request(method, self.path, body, get_activity_service())
            except Exception as e:
                request_logger.error("Error handling request", error=str(e), exc_info=True)
                status, payload = 500, {"error": "Internal server error"}
            request_logger.info("Request handled", status_code=status)
            self.send_json(status, payload, correlation_id)

    def do_GET(self):
        self._handle("GET")

    def do_POST(self):
        self._handle("POST")

    def do_PUT(self):
        self._handle("PUT")

    def do_DELETE(self):
        self._handle("DELETE")

    def do_OPTIONS(self):
        """CORS preflight."""
        self.send_response(204)
        self._send_cors_headers()
        self.send_header('Content-Length', '0')
        self.end_headers()

    def log_message(self, format: str, *args: Any) -> None:
        # Access logging goes through the structured logger in _handle
        return

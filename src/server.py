"""Local development server for the task tracker API."""

import argparse
from http.server import ThreadingHTTPServer
from typing import Optional

from src.services.activity_service import get_activity_service, reset_activity_service
from src.utils.config import get_settings
from src.utils.http_handler import JsonRequestHandler
from src.utils.logging import get_structured_logger
from src.utils.logging_config import LoggingConfig

logger = get_structured_logger(__name__)


def build_server(host: str, port: int) -> ThreadingHTTPServer:
    """Create the HTTP server; the activity service is initialized eagerly."""
    get_activity_service()
    return ThreadingHTTPServer((host, port), JsonRequestHandler)


def run_server(host: Optional[str] = None, port: Optional[int] = None) -> None:
    settings = get_settings()
    host = host or settings.host
    port = port or settings.port

    server = build_server(host, port)
    service = get_activity_service()
    logger.info(
        "Server running",
        host=host,
        port=port,
        api_url=f"http://localhost:{port}/api",
        database=service.store.backend_name,
        cors_allow_origin=settings.cors_allow_origin
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down server")
    finally:
        server.server_close()
        reset_activity_service()
        logger.info("Database connection closed")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Task tracker API server")
    parser.add_argument("--host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port (default: PORT or 3001)")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--log-format", choices=("json", "text"), default=None, help="Override LOG_FORMAT")
    args = parser.parse_args(argv)

    LoggingConfig.setup_logging(level=args.log_level, log_format=args.log_format)
    run_server(args.host, args.port)


if __name__ == "__main__":
    main()

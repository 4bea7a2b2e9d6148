"""Centralized logging configuration with environment variable support."""

import os
import logging
import sys
from typing import Optional
from pythonjsonlogger import jsonlogger

SERVICE_NAME = "task-tracker"

# Third-party loggers that drown out request logs at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "supabase", "hpack")


class LoggingConfig:
    """Centralized logging configuration."""

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json").lower()
    LOG_MESSAGE_CONTENT = os.environ.get("LOG_MESSAGE_CONTENT", "true").lower() == "true"
    LOG_MASK_SENSITIVE = os.environ.get("LOG_MASK_SENSITIVE", "true").lower() == "true"
    LOG_CORRELATION_ID_HEADER = os.environ.get("LOG_CORRELATION_ID_HEADER", "X-Correlation-ID")
    LOG_SLOW_OPERATION_THRESHOLD_MS = int(os.environ.get("LOG_SLOW_OPERATION_THRESHOLD_MS", "1000"))

    _configured = False

    @classmethod
    def setup_logging(cls, level: Optional[str] = None, log_format: Optional[str] = None) -> None:
        """
        Install a single stdout handler on the root logger.

        ``level`` and ``log_format`` override LOG_LEVEL / LOG_FORMAT, which is
        how the dev server's command line flags reach this function.
        """
        level_name = (level or cls.LOG_LEVEL).upper()
        fmt = (log_format or cls.LOG_FORMAT).lower()
        numeric_level = getattr(logging, level_name, logging.INFO)

        root_logger = logging.getLogger()
        root_logger.setLevel(numeric_level)
        root_logger.handlers.clear()

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(numeric_level)

        if fmt == "json":
            formatter = jsonlogger.JsonFormatter(
                "%(timestamp)s %(levelname)s %(name)s %(message)s",
                rename_fields={"levelname": "level"},
                static_fields={"service": SERVICE_NAME},
                timestamp=True
            )
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )

        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        cls._configured = True

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)

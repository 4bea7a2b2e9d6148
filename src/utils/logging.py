"""Structured logging helpers: correlation IDs, bound context fields, timing and masking."""

import inspect
import logging
import re
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional

from src.utils.logging_config import LoggingConfig, get_logger


_correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

_EMAIL_RE = re.compile(r'[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}', re.IGNORECASE)
_PHONE_RE = re.compile(r'\b\+?\d[\d\s().-]{7,}\b')
_CREDENTIAL_RE = re.compile(r'(?i)(api[_-]?key|token|secret|password|auth)[\s:=]+([A-Za-z0-9_-]{20,})')


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing."""
    return f"req_{uuid.uuid4().hex[:12]}"


def get_correlation_id() -> Optional[str]:
    return _correlation_id_var.get()


@contextmanager
def correlation_context(correlation_id: Optional[str] = None):
    """
    Run a block under a correlation ID (a fresh one when none is given).

    The API client forwards the current ID as a request header and the request
    handler adopts an incoming one, so a client write and the server log lines
    it causes share the same ID.
    """
    token = _correlation_id_var.set(correlation_id or generate_correlation_id())
    try:
        yield _correlation_id_var.get()
    finally:
        _correlation_id_var.reset(token)


def mask_sensitive_data(text: str) -> str:
    """Redact e-mail addresses, phone numbers and credentials found in free text."""
    if not text or not LoggingConfig.LOG_MASK_SENSITIVE:
        return text
    text = _EMAIL_RE.sub('[REDACTED_EMAIL]', text)
    text = _PHONE_RE.sub('[REDACTED_PHONE]', text)
    return _CREDENTIAL_RE.sub(r'\1=[REDACTED]', text)


def sanitize_text(text: Optional[str], max_length: int = 200) -> Optional[str]:
    """Truncate and mask user-entered text (task names, descriptions) before it is logged.

    Returns None when LOG_MESSAGE_CONTENT is off, so the field is dropped.
    """
    if not LoggingConfig.LOG_MESSAGE_CONTENT or not text:
        return None
    if len(text) > max_length:
        text = text[:max_length] + "..."
    return mask_sensitive_data(text)


class StructuredLogger:
    """
    Logger wrapper that turns keyword arguments into structured fields.

    Fields passed to :meth:`bind` are attached to every record the returned
    logger emits, alongside the timestamp and the current correlation ID.
    """

    def __init__(self, logger: logging.Logger, **bound: Any):
        self.logger = logger
        self._bound = bound

    def bind(self, **fields: Any) -> "StructuredLogger":
        return StructuredLogger(self.logger, **{**self._bound, **fields})

    def _fields(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        fields: Dict[str, Any] = {"timestamp": datetime.now(timezone.utc).isoformat()}
        correlation_id = get_correlation_id()
        if correlation_id:
            fields["correlation_id"] = correlation_id
        fields.update(self._bound)
        fields.update(kwargs)
        return fields

    def _log(self, level: int, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        if self.logger.isEnabledFor(level):
            self.logger.log(level, message, extra=self._fields(kwargs), exc_info=exc_info)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)


def get_structured_logger(name: str) -> StructuredLogger:
    return StructuredLogger(get_logger(name))


@contextmanager
def log_timing(operation_name: str, logger: Optional[StructuredLogger] = None, **context: Any):
    """Time a block; completion is logged at debug, anything over the slow threshold at warning."""
    log = logger or get_structured_logger(__name__)
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        log.debug(f"Completed {operation_name}", operation=operation_name, processing_time_ms=elapsed_ms, **context)
        if elapsed_ms > LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS:
            log.warning(
                f"Slow operation detected: {operation_name}",
                operation=operation_name,
                processing_time_ms=elapsed_ms,
                threshold_ms=LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS,
                **context
            )


def timed(operation_name: Optional[str] = None, logger: Optional[StructuredLogger] = None):
    """Decorator form of :func:`log_timing` for plain and async functions."""
    def decorator(func: Callable) -> Callable:
        op_name = operation_name or f"{func.__module__}.{func.__name__}"
        log = logger or get_structured_logger(func.__module__)

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                with log_timing(op_name, logger=log):
                    return await func(*args, **kwargs)
            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            with log_timing(op_name, logger=log):
                return func(*args, **kwargs)
        return wrapper

    return decorator

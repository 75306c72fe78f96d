from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# Per-request values stamped on every record
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | user=%(user_id)s | %(message)s"

# Libraries that log every request or statement at INFO
NOISY_LOGGERS = ("uvicorn.access", "multipart.multipart", "passlib")


class RequestContextFilter(logging.Filter):
    """Copy the request's correlation id and user id onto the record ('-' outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        record.user_id = user_id_var.get() or "-"
        return True


# PUBLIC_INTERFACE
@contextmanager
def request_log_context(correlation_id: str, user_id: Optional[str] = None) -> Iterator[None]:
    """Bind correlation and user ids for the duration of one request."""
    corr_token = correlation_id_var.set(correlation_id)
    user_token = user_id_var.set(user_id)
    try:
        yield
    finally:
        correlation_id_var.reset(corr_token)
        user_id_var.reset(user_token)


# PUBLIC_INTERFACE
def configure_logging(level: int | str = logging.INFO) -> None:
    """
    Route all logging to stdout with the request-aware format.

    Replaces handlers installed earlier (basicConfig, uvicorn defaults on the root logger)
    so each record is written once.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

from __future__ import annotations

import json
import logging
import logging.config
import os
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

# Per-task so concurrent uploads log their own owner.
_CURRENT_OWNER_ID: ContextVar[str] = ContextVar("stowage_owner_id", default="-")
_STANDARD_LOGRECORD_ATTRS = {
    "name",
    "msg",
    "message",
    "asctime",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
}


class _OwnerIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "owner_id", None) in (None, ""):
            record.owner_id = _CURRENT_OWNER_ID.get()
        return True


class _JsonExtraFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = _extract_extras(record)
        if not extras:
            return base
        extras_json = json.dumps(extras, indent=2, default=str, sort_keys=True)
        return f"{base}\n{extras_json}"


def _extract_extras(record: logging.LogRecord) -> dict[str, object]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_LOGRECORD_ATTRS and key != "owner_id"
    }


def set_owner_id(owner_id: str | None) -> None:
    """Set the `owner_id` value injected into log records."""
    _CURRENT_OWNER_ID.set(owner_id or "-")


@contextmanager
def owner_scope(owner_id: str | None) -> Iterator[None]:
    """Tag log records emitted inside the block with owner_id."""
    token = _CURRENT_OWNER_ID.set(owner_id or "-")
    try:
        yield
    finally:
        _CURRENT_OWNER_ID.reset(token)


def _install_owner_filter() -> None:
    root = logging.getLogger()
    for handler in root.handlers:
        if any(isinstance(f, _OwnerIdFilter) for f in handler.filters):
            continue
        handler.addFilter(_OwnerIdFilter())


def configure_logging(*, log_level: str = "INFO", owner_id: str | None = None) -> None:
    """Configure root logging with a consistent format.

    Format includes `owner_id` plus `module:lineno`. Record extras passed via
    `extra=` are appended as JSON.
    """
    console_level_name = str(log_level).upper()
    default_console_fmt = (
        "%(asctime)s %(levelname)s [%(owner_id)s] %(module)s:%(lineno)d %(message)s"
    )
    console_fmt = os.getenv("CONSOLE_LOG_FORMAT", default_console_fmt)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "()": "stowage.logging_setup._JsonExtraFormatter",
                    "format": console_fmt,
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": console_level_name,
                    "formatter": "default",
                    "stream": "ext://sys.stderr",
                }
            },
            "root": {"level": "DEBUG", "handlers": ["console"]},
        }
    )

    _install_owner_filter()
    set_owner_id(owner_id)
    logging.captureWarnings(True)

    # Reduce noisy third-party logs by default.
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)

"""Logging helpers for serialized attributes.

Library modules log through ``logging.getLogger(__name__)`` using event-style
messages and structured ``extra`` payloads built with :func:`log_context`.
Nothing is emitted unless the host application configures logging, either
itself or through :func:`setup_logging`, which supports two formats:

* human-readable console lines with ``key=value`` extras, and
* one JSON object per line.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from .settings import Settings, get_settings

PACKAGE_LOGGER = "serialize_attributes"

# Attributes that are already handled by logging and should not be copied into
# the extra key=value list.
_STANDARD_ATTRS: set[str] = {
    "name",
    "msg",
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
    "message",
    "asctime",
    "taskName",
}

_CONFIGURED_FLAG = "_serialize_attributes_configured"


class ConsoleLogFormatter(logging.Formatter):
    """Render log records as single-line console output.

    Example line:

        2026-10-18T09:12:03.114Z DEBUG serialize_attributes.store
        serialize_attributes.store.frozen column=data model=Order
    """

    _time_format = "%Y-%m-%dT%H:%M:%S"

    def __init__(self) -> None:
        fmt = "%(asctime)s %(levelname)-5s %(name)s %(message)s"
        super().__init__(fmt=fmt, datefmt=self._time_format)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=UTC)
        base = dt.strftime(datefmt or self._time_format)
        return f"{base}.{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - std signature
        base = super().format(record)
        extras = [
            f"{key}={_format_extra_value(value)}"
            for key, value in sorted(_record_extras(record).items())
        ]
        if extras:
            return f"{base} " + " ".join(extras)
        return base


class JsonLogFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    _time_format = "%Y-%m-%dT%H:%M:%S"

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=UTC)
        base = dt.strftime(datefmt or self._time_format)
        return f"{base}.{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - std signature
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self._time_format),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_record_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default, separators=(",", ":"))


def setup_logging(settings: Settings | None = None) -> logging.Logger:
    """Attach a single handler to the package logger.

    The root logger is left alone; records still propagate to it so host
    applications that already configure logging keep receiving them.
    """
    settings = settings or get_settings()
    logger = logging.getLogger(PACKAGE_LOGGER)

    if not getattr(logger, _CONFIGURED_FLAG, False) or not logger.handlers:
        logger.handlers = [logging.StreamHandler()]
        setattr(logger, _CONFIGURED_FLAG, True)
    else:
        logger.handlers = [logger.handlers[0]]

    logger.handlers[0].setFormatter(_build_formatter(settings.log_format))
    logger.setLevel(getattr(logging, settings.effective_log_level))
    return logger


def log_context(
    *,
    model: type | str | None = None,
    column: str | None = None,
    attribute: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a consistent ``extra`` payload for structured logs.

    Example:
        logger.debug(
            "serialize_attributes.column.registered",
            extra=log_context(model=Order, column="data", phase="immediate"),
        )
    """
    ctx: dict[str, Any] = {}

    if model is not None:
        ctx["model"] = model if isinstance(model, str) else model.__name__
    if column is not None:
        ctx["column"] = str(column)
    if attribute is not None:
        ctx["attribute"] = str(attribute)

    for key, value in extra.items():
        ctx[key] = value

    return ctx


def _format_extra_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return str(value)


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    extras: dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_ATTRS or key.startswith("_"):
            continue
        extras[key] = value
    return extras


def _json_default(value: Any) -> str:
    return str(value)


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return JsonLogFormatter()
    return ConsoleLogFormatter()


__all__ = [
    "ConsoleLogFormatter",
    "JsonLogFormatter",
    "PACKAGE_LOGGER",
    "log_context",
    "setup_logging",
]

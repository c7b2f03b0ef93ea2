"""
Structured logging for intelbridge.

Provides JSON-structured log output (one object per line) for log
aggregation, or a plain text format for interactive use. Bridge-specific
context passed through ``extra=`` (``node_count``, ``entity_kind``,
``analysis_state``) is lifted into top-level fields.
"""

import json
import logging
import socket
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from intelbridge.__version__ import __version__

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# LogRecord attributes that are never copied as extra fields
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class StructuredFormatter(logging.Formatter):
    """JSON log formatter for structured output.

    Example output:
    {"timestamp":"2026-10-18T12:00:00+00:00","level":"INFO",
     "logger":"intelbridge.scan_orchestrator","message":"Scan pass 1: ...",
     "service":"intelbridge","node_count":12}
    """

    def __init__(
        self,
        service_name: str = "intelbridge",
        include_timestamp: bool = True,
        include_hostname: bool = True,
        include_caller: bool = False,
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Args:
            service_name: value of the ``service`` field
            include_timestamp: add an ISO8601 UTC ``timestamp``
            include_hostname: add the local ``hostname``
            include_caller: add a ``caller`` object (file, line, function)
            extra_fields: static fields merged into every line
        """
        super().__init__()
        self.service_name = service_name
        self.include_timestamp = include_timestamp
        self.include_caller = include_caller
        self.extra_fields = dict(extra_fields or {})
        self.hostname = socket.gethostname() if include_hostname else None

    def _entry(self, record: logging.LogRecord) -> Dict[str, Any]:
        entry: Dict[str, Any] = {}
        if self.include_timestamp:
            created = datetime.fromtimestamp(record.created, tz=timezone.utc)
            entry["timestamp"] = created.isoformat()
        entry.update(
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
            service=self.service_name,
        )
        if self.hostname:
            entry["hostname"] = self.hostname
        if self.include_caller:
            entry["caller"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        return entry

    def _exception(self, record: logging.LogRecord) -> Optional[Dict[str, str]]:
        if not record.exc_info or record.exc_info[0] is None:
            return None
        exc_type, exc, _ = record.exc_info
        return {
            "type": exc_type.__name__,
            "message": str(exc),
            "traceback": self.formatException(record.exc_info),
        }

    def format(self, record: logging.LogRecord) -> str:
        entry = self._entry(record)

        exception = self._exception(record)
        if exception:
            entry["exception"] = exception
        if record.stack_info:
            entry["stack_info"] = record.stack_info

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                entry[key] = _jsonable(value)
        entry.update(self.extra_fields)

        try:
            return json.dumps(entry, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            return json.dumps({
                "level": record.levelname,
                "message": record.getMessage(),
                "service": self.service_name,
                "format_error": True,
            })


class StructuredLogHandler(logging.StreamHandler):
    """Stream handler preconfigured with a StructuredFormatter."""

    def __init__(self, stream=None,
                 formatter: Optional[StructuredFormatter] = None,
                 **kwargs) -> None:
        super().__init__(stream or sys.stderr)
        self.setFormatter(formatter or StructuredFormatter(**kwargs))


def setup_structured_logging(
    level: int = logging.INFO,
    json_output: bool = False,
    stream=None,
    version: str = "unknown",
) -> logging.Logger:
    """Configure the ``intelbridge`` logger.

    Installs exactly one handler on the package logger: a
    StructuredLogHandler when *json_output* is set, otherwise a plain
    StreamHandler using TEXT_FORMAT. Calling it again replaces the handler
    instead of stacking a second one.

    Args:
        level: Minimum log level
        json_output: If True, use JSON structured output
        stream: Target stream (defaults to stderr)
        version: Package version added to every JSON line

    Returns:
        Configured logger
    """
    logger = logging.getLogger("intelbridge")
    stream = stream or sys.stderr

    for existing in list(logger.handlers):
        if getattr(existing, "_intelbridge", False):
            logger.removeHandler(existing)

    if json_output:
        handler: logging.Handler = StructuredLogHandler(
            stream=stream,
            formatter=StructuredFormatter(
                include_caller=level <= logging.DEBUG,
                extra_fields={"version": version},
            ),
        )
    else:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    handler._intelbridge = True  # type: ignore[attr-defined]
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def setup_logging(config, stream=None) -> logging.Logger:
    """Configure logging from a :class:`~intelbridge.app_config.BridgeConfig`."""
    level = logging.getLevelName(config.logging.level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    return setup_structured_logging(
        level=level,
        json_output=config.logging.json_output,
        stream=stream,
        version=__version__,
    )

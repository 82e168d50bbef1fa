"""Log setup for the kiosk search service.

Production runs emit one orjson-encoded object per line, enriched with the
request's trace ids and, once resolved, the chain and store it is serving.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
import logging
from pathlib import Path
import sys
from typing import Any

import orjson

from product_locator.observability.context import current_context


_PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Keys present on a bare LogRecord; the rest arrived through ``extra=``.
_RESERVED = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime", "taskName"}


def _encode_fallback(value: Any) -> Any:
    match value:
        case set() | frozenset():
            return sorted(value, key=str)
        case Decimal():
            return float(value)
        case Path() | BaseException():
            return str(value)
        case _:
            return repr(value)


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    MAX_MESSAGE_LEN = 2000
    MAX_EXTRA_LEN = 500
    SENSITIVE_FIELDS = frozenset({"api_key", "authorization", "password", "secret", "token", "verification_code"})

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _clip(record.getMessage(), self.MAX_MESSAGE_LEN),
        }
        _, _, component = record.name.rpartition(".")
        if component != record.name:
            entry["component"] = component
        entry.update(current_context().log_fields())

        entry.update(
            (key, self._scrub(key, value))
            for key, value in vars(record).items()
            if key not in _RESERVED and not key.startswith("_")
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return orjson.dumps(entry, default=_encode_fallback).decode()

    def _scrub(self, key: str, value: Any) -> Any:
        if key.lower() in self.SENSITIVE_FIELDS:
            return "[REDACTED]"
        if isinstance(value, str):
            return _clip(value, self.MAX_EXTRA_LEN)
        return value


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _level(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    *,
    logger_levels: dict[str, str] | None = None,
    access_log: bool = False,
) -> None:
    """Replace the root handlers with a single stdout handler.

    ``logger_levels`` maps logger names to level names for targeted overrides.
    Uvicorn's per-request access lines are raised to WARNING unless
    ``access_log`` is set, since request spans already cover them.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(_PLAIN_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(_level(level))

    overrides = dict(logger_levels or {})
    if not access_log:
        overrides.setdefault("uvicorn.access", "WARNING")
    for name, override in overrides.items():
        logging.getLogger(name).setLevel(_level(override))

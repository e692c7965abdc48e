"""
Structured JSON logging for the fee calculation kernel.

Every record is written as one JSON object::

    {"ts": "...", "level": "WARNING",
     "logger": "fee_kernel.engines.fee_scale", "component": "engines.fee_scale",
     "message": "fee_scale_fallback_rate_used",
     "proposal_id": "prop-1", "reference_set_id": "default",
     "total_construction_cost": "0", ...}

The envelope comes first, then the calculation scope held by
``LogContext`` (which proposal, structure and reference set the record
belongs to), then the record's ``extra`` fields.  Scope wins over an extra
field of the same name.  Decimal amounts are written as strings so no
precision is lost.

Failure modes:
    - ``LogContext.set`` / ``bind`` raise ValueError for field names that
      are not part of the calculation scope.
"""

from __future__ import annotations

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

_LOGGER_PREFIX = "fee_kernel"

CONTEXT_FIELDS = ("proposal_id", "structure_id", "reference_set_id")

_EMPTY_SCOPE: Mapping[str, str] = MappingProxyType({})
_scope: ContextVar[Mapping[str, str]] = ContextVar("fee_log_scope", default=_EMPTY_SCOPE)


def _merged_scope(fields: dict[str, str | None]) -> Mapping[str, str]:
    unknown = sorted(set(fields) - set(CONTEXT_FIELDS))
    if unknown:
        raise ValueError(f"Unknown log context field(s): {', '.join(unknown)}")
    scope = dict(_scope.get())
    scope.update((k, v) for k, v in fields.items() if v is not None)
    return MappingProxyType(scope)


class LogContext:
    """
    Calculation scope attached to every record.

    Backed by a single ContextVar holding a read-only mapping, so it is
    safe across threads and asyncio tasks.  ``None`` values are ignored.
    """

    @staticmethod
    def set(**fields: str | None) -> None:
        _scope.set(_merged_scope(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_scope.get())

    @staticmethod
    def clear() -> None:
        _scope.set(_EMPTY_SCOPE)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[type[LogContext]]:
        """Narrow the scope for a block; the previous scope is restored on exit."""
        token = _scope.set(_merged_scope(fields))
        try:
            yield LogContext
        finally:
            _scope.reset(token)


# Attributes every LogRecord has; anything else on a record came from ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    return str(obj)


def _component(logger_name: str) -> str:
    return logger_name.removeprefix(f"{_LOGGER_PREFIX}.")


def _error_fields(exc: BaseException) -> dict[str, Any]:
    """``exc_type``, ``exc_message``, ``exc_code`` and each public attribute."""
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    fields.update(
        (f"exc_{k}", v) for k, v in vars(exc).items()
        if not k.startswith("_") and k != "code"
    )
    return fields


class StructuredFormatter(logging.Formatter):
    """Formats each record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "component": _component(record.name),
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, val in vars(record).items():
            if key not in _RECORD_ATTRS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_error_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger under the fee_kernel namespace, e.g. ``engines.fee_scale``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_HANDLER_FLAG = "_fee_kernel_handler"
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``fee_kernel`` logger.

    Idempotent: once a handler is installed, later calls change nothing
    until ``reset_logging``.
    """
    root = logging.getLogger(_LOGGER_PREFIX)
    with _lock:
        if any(getattr(h, _HANDLER_FLAG, False) for h in root.handlers):
            return
        h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        h.setFormatter(StructuredFormatter())
        setattr(h, _HANDLER_FLAG, True)
        root.setLevel(level)
        root.propagate = False
        root.addHandler(h)


def reset_logging() -> None:
    """Remove every fee_kernel handler and restore stdlib defaults. Tests only."""
    root = logging.getLogger(_LOGGER_PREFIX)
    with _lock:
        for h in list(root.handlers):
            root.removeHandler(h)
        root.setLevel(logging.WARNING)
        root.propagate = True

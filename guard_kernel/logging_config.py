"""
Structured logging (``guard_kernel.logging_config``).

Every record under the ``guard_kernel`` logger namespace is rendered as
one JSON object per line.  A record carries:

* the envelope: ``ts`` (UTC ISO-8601), ``level``, ``logger``, ``message``
* the fields bound in ``LogContext`` for the update being validated
  (``correlation_id``, ``record_type``, ``record_id``, ``actor_id``)
* whatever the call site passed through ``extra=``
* for ``exc_info`` records: ``exc_type``, ``exc_message``, ``exc_code``,
  one ``exc_<attr>`` per public attribute of the exception, ``traceback``

Context is held in a single ``ContextVar`` so that each thread and each
asyncio task sees only the record it is working on.
"""

__all__ = [
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
from enum import Enum
from types import MappingProxyType
from typing import Any

_LOGGER_PREFIX = "guard_kernel"

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "record_type",
    "record_id",
    "actor_id",
)

_EMPTY_CONTEXT: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar(
    "guard_log_context", default=_EMPTY_CONTEXT
)


def _merged(updates: Mapping[str, Any]) -> Mapping[str, str]:
    """Current context plus the known, non-None ``updates``."""
    merged = dict(_context.get())
    for name, value in updates.items():
        if name in CONTEXT_FIELDS and value is not None:
            merged[name] = str(value)
    return MappingProxyType(merged)


class LogContext:
    """Update-scoped fields stamped onto every log record.

    Usage::

        with LogContext.bind(record_type="Invoice", record_id="42"):
            machine.validate_update(changeset)

    Unknown field names and ``None`` values are ignored, so callers can
    pass optional identifiers straight through.
    """

    @staticmethod
    def set(**fields: Any) -> None:
        """Merge ``fields`` into the current context until cleared."""
        _context.set(_merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY_CONTEXT)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Merge ``fields`` for the duration of the block, then restore."""
        token = _context.set(_merged(fields))
        try:
            yield
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON rendering
# ---------------------------------------------------------------------------

_RESERVED: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(str(item) for item in obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    # UUID and anything else: textual form
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a ``LogRecord`` as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger ``guard_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_setup_lock = threading.Lock()
_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``guard_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``.  Records
    do not propagate to the root logger.
    """
    global _installed_handler
    with _setup_lock:
        if _installed_handler is not None:
            return
        _installed_handler = (
            handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        )

    _installed_handler.setFormatter(StructuredFormatter())
    base = logging.getLogger(_LOGGER_PREFIX)
    base.setLevel(level)
    base.propagate = False
    base.addHandler(_installed_handler)


def reset_logging() -> None:
    """Remove all ``guard_kernel`` handlers. Test use only."""
    global _installed_handler
    with _setup_lock:
        _installed_handler = None
    base = logging.getLogger(_LOGGER_PREFIX)
    base.handlers.clear()
    base.setLevel(logging.WARNING)

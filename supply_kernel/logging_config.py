"""
Structured JSON logging for the supply ledger.

Every log call in the tree passes a snake_case event name as the message
(``srn_submitted``, ``inventory_blocked``) plus its facts as ``extra``.
The formatter writes one JSON object per line:

    {"ts": ..., "level": "INFO", "logger": "supply_kernel.modules.srn",
     "event": "srn_submitted", "actor_id": ..., "actor_role": "RETAILER",
     "document_type": "SRN", "document_id": ..., "srn_number": ...}

The actor and document keys come from ``LogContext``; module services
bind them once per use case so individual log calls never repeat them.
"""

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
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any
from uuid import UUID

ROOT_LOGGER = "supply_kernel"

# Keys a use case may put on every line it logs
CONTEXT_FIELDS = (
    "use_case",
    "actor_id",
    "actor_role",
    "document_type",
    "document_id",
)

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("supply_log_context", default=_EMPTY)


def _merged(fields: Mapping[str, Any]) -> Mapping[str, str]:
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise ValueError(f"unknown log context field(s): {sorted(unknown)}")
    current = dict(_context.get())
    for key, value in fields.items():
        if value is None:
            continue
        current[key] = value.value if isinstance(value, Enum) else str(value)
    return MappingProxyType(current)


class LogContext:
    """Per-task log fields, safe across threads and asyncio tasks."""

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Add fields to the current context.  ``None`` values are skipped."""
        _context.set(_merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set(_EMPTY)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """
        Add fields for the duration of a ``with`` block.

        Anything set inside the block, through ``bind`` or ``set``, is
        dropped on exit and the outer context comes back unchanged.
        """
        token = _context.set(_merged(fields))
        try:
            yield cls
        finally:
            _context.reset(token)

    @classmethod
    def document(cls, document_type: str, document_id: UUID | str) -> None:
        """Tag the rest of the current use case with the document it acts on."""
        cls.set(document_type=document_type, document_id=document_id)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _jsonable(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return [_jsonable(v) for v in value]
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, context, then extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        payload.update(_context.get())
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in payload
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record))
        return json.dumps(payload, default=_jsonable)

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
            "traceback": self.formatException(record.exc_info),
        }
        # SupplyKernelError subclasses carry a code and the quantities or
        # ids that explain the refusal
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
            for key, value in vars(exc).items():
                if not key.startswith("_") and key not in ("args", "code"):
                    fields[f"exc_{key}"] = value
        return fields


def get_logger(name: str) -> logging.Logger:
    """``get_logger("modules.srn")`` -> the ``supply_kernel.modules.srn`` logger."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_lock = threading.Lock()
_HANDLER_MARK = "_supply_json_handler"


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> bool:
    """
    Attach the JSON handler to the ``supply_kernel`` logger.

    ``level`` takes a number or a name (``"DEBUG"``), so a ``logging.level``
    value from the config file can be passed straight through.  Returns
    False and changes nothing when a handler from an earlier call is still
    attached.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    with _lock:
        if any(getattr(h, _HANDLER_MARK, False) for h in logger.handlers):
            return False
        h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        h.setFormatter(StructuredFormatter())
        setattr(h, _HANDLER_MARK, True)
        logger.addHandler(h)
        logger.setLevel(level)
        logger.propagate = False
    return True


def reset_logging() -> None:
    """Detach handlers added by ``configure_logging``.  Used by tests."""
    logger = logging.getLogger(ROOT_LOGGER)
    with _lock:
        for h in [h for h in logger.handlers if getattr(h, _HANDLER_MARK, False)]:
            logger.removeHandler(h)
        logger.setLevel(logging.WARNING)

"""Logging setup with per-operation context propagation.

Every record emitted while a sign, verify or key operation is running carries
the operation name and the file it works on, so a batch run that verifies
many files produces greppable output. Secret material is never logged.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime


@dataclass(frozen=True, slots=True)
class OperationContext:
    operation: str | None = None
    path: str | None = None


_EMPTY_CONTEXT = OperationContext()
_OPERATION_CONTEXT: contextvars.ContextVar[OperationContext | None] = contextvars.ContextVar(
    "sigil_operation_context",
    default=None,
)


def get_operation_context() -> OperationContext:
    """Return the operation context active in the current thread or task."""

    context = _OPERATION_CONTEXT.get()
    if context is None:
        return _EMPTY_CONTEXT
    return context


class OperationFilter(logging.Filter):
    """Inject operation fields into every ``LogRecord`` before formatting."""

    def filter(self, record: logging.LogRecord) -> bool:
        context: OperationContext = get_operation_context()
        record.operation = context.operation
        record.path = context.path
        return True


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object | None] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "operation": getattr(record, "operation", None),
            "path": getattr(record, "path", None),
        }
        if record.exc_info is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def setup_logging(level: int | str = logging.WARNING, json_output: bool = False) -> None:
    """Configure root logging once; stderr keeps stdout free for command output."""

    root_logger: logging.Logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.filters.clear()

    handler = logging.StreamHandler(stream=sys.stderr)
    if json_output:
        formatter: logging.Formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s operation=%(operation)s path=%(path)s %(message)s",
        )
    handler.setFormatter(formatter)

    operation_filter = OperationFilter()
    handler.addFilter(operation_filter)
    root_logger.addFilter(operation_filter)
    root_logger.addHandler(handler)


@contextmanager
def operation_scope(*, operation: str | None = None, path: str | None = None) -> Iterator[None]:
    """Temporarily tag log records with an operation name and file path.

    Nested scopes inherit the outer values unless overridden.
    """

    current: OperationContext = get_operation_context()
    updated = OperationContext(
        operation=current.operation if operation is None else operation,
        path=current.path if path is None else path,
    )
    token: contextvars.Token[OperationContext | None] = _OPERATION_CONTEXT.set(updated)
    try:
        yield
    finally:
        _OPERATION_CONTEXT.reset(token)


__all__ = [
    "OperationContext",
    "OperationFilter",
    "get_operation_context",
    "operation_scope",
    "setup_logging",
]

"""Logging for the keychain, signer and verifiers.

Records go to stderr; stdout carries only signatures, inscriptions and
verdicts. Core calls run inside ``operation_scope`` so every record names the
operation (``sign``, ``anchor``, ``verify``...) and, when one is involved,
the key it used.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

_NO_VALUE = "-"
_TEXT_FORMAT = "%(asctime)s %(levelname)s [%(operation)s key=%(key_name)s] %(name)s: %(message)s"

_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar("signr_operation", default=None)
_key_name: contextvars.ContextVar[str | None] = contextvars.ContextVar("signr_key_name", default=None)


def current_operation() -> tuple[str | None, str | None]:
    """Return ``(operation, key_name)`` of the innermost active scope."""
    return _operation.get(), _key_name.get()


@contextmanager
def operation_scope(operation: str, *, key_name: str | None = None) -> Iterator[None]:
    """Tag log records emitted inside the block with ``operation`` and ``key_name``."""
    operation_token = _operation.set(operation)
    key_token = _key_name.set(key_name)
    try:
        yield
    finally:
        _key_name.reset(key_token)
        _operation.reset(operation_token)


class OperationFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        operation, key_name = current_operation()
        record.operation = operation or _NO_VALUE
        record.key_name = key_name or _NO_VALUE
        return True


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record; unset operation fields are left out."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in ("operation", "key_name"):
            value = getattr(record, field, _NO_VALUE)
            if value != _NO_VALUE:
                payload[field] = value
        if record.exc_info is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def setup_logging(level: int | str = logging.INFO, json_output: bool = False) -> None:
    """Replace root handlers with a single stderr handler."""
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.addFilter(OperationFilter())
    handler.setFormatter(JsonLineFormatter() if json_output else logging.Formatter(_TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)


__all__ = [
    "JsonLineFormatter",
    "OperationFilter",
    "current_operation",
    "operation_scope",
    "setup_logging",
]

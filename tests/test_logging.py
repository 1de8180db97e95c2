from __future__ import annotations

import json
import logging

import pytest
from signr.core.identity import generate_identity
from signr.core.keystore import KeyStore
from signr.core.logging import (
    JsonLineFormatter,
    OperationFilter,
    current_operation,
    operation_scope,
    setup_logging,
)


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_operation_filter_injects_fields() -> None:
    record = _record()

    with operation_scope("sign", key_name="alice"):
        assert OperationFilter().filter(record) is True

    assert record.operation == "sign"
    assert record.key_name == "alice"


def test_operation_filter_outside_scope_uses_placeholder() -> None:
    record = _record()
    OperationFilter().filter(record)
    assert record.operation == "-"
    assert record.key_name == "-"


def test_inner_scope_replaces_and_restores() -> None:
    with operation_scope("sign", key_name="alice"):
        with operation_scope("verify"):
            assert current_operation() == ("verify", None)
        assert current_operation() == ("sign", "alice")

    assert current_operation() == (None, None)


def test_scope_is_reset_when_the_call_fails() -> None:
    with pytest.raises(RuntimeError):
        with operation_scope("anchor", key_name="alice"):
            raise RuntimeError("boom")
    assert current_operation() == (None, None)


def test_json_formatter() -> None:
    record = _record("signing on message: x")
    with operation_scope("anchor", key_name="alice"):
        OperationFilter().filter(record)

    payload = json.loads(JsonLineFormatter().format(record))

    assert payload["message"] == "signing on message: x"
    assert payload["operation"] == "anchor"
    assert payload["key_name"] == "alice"
    assert payload["level"] == "INFO"


def test_json_formatter_omits_unset_fields() -> None:
    record = _record()
    OperationFilter().filter(record)

    payload = json.loads(JsonLineFormatter().format(record))

    assert "operation" not in payload
    assert "key_name" not in payload


def test_setup_logging_installs_single_handler() -> None:
    setup_logging(logging.DEBUG)
    setup_logging(logging.WARNING, json_output=True)

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JsonLineFormatter)
    assert root.level == logging.WARNING


def test_generate_logs_carry_operation(store: KeyStore, caplog: pytest.LogCaptureFixture) -> None:
    caplog.handler.addFilter(OperationFilter())
    with caplog.at_level(logging.INFO):
        generate_identity(store, "alice")

    tagged = [r for r in caplog.records if getattr(r, "operation", None) == "generate"]
    assert tagged
    assert all(r.key_name == "alice" for r in tagged)

"""JSON log output and request-context injection.

Log shippers parse one JSON object per line; a plain-text line or a
missing request_id silently breaks search by request or by identity.
"""

from __future__ import annotations

import json
import logging
import sys

from credservice.core.logging import (
    RequestContextFilter,
    _ContainerFormatter,
    _JsonFormatter,
    identity_id_var,
    request_id_var,
)


def _record(name: str = "credservice.services.credential_service", **kwargs) -> logging.LogRecord:
    fields = dict(
        name=name,
        level=logging.INFO,
        pathname="credential_service.py",
        lineno=7,
        msg="Credential revoked  credential_id=%s",
        args=("c-1",),
        exc_info=None,
    )
    fields.update(kwargs)
    return logging.LogRecord(**fields)


def test_json_line_has_core_keys() -> None:
    parsed = json.loads(_JsonFormatter().format(_record()))
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "credservice.services.credential_service"
    assert parsed["message"] == "Credential revoked  credential_id=c-1"
    assert "timestamp" in parsed


def test_request_summary_fields_become_top_level_keys() -> None:
    record = _record(name="credservice.middleware.request_context", msg="GET /credentials", args=())
    record.request_id = "req-9"  # type: ignore[attr-defined]
    record.identity_id = "id-1"  # type: ignore[attr-defined]
    record.status_code = 200  # type: ignore[attr-defined]
    record.duration_ms = 3.2  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "req-9"
    assert parsed["identity_id"] == "id-1"
    assert parsed["status_code"] == 200
    assert parsed["duration_ms"] == 3.2
    assert "method" not in parsed


def test_exception_text_is_one_json_field() -> None:
    try:
        raise RuntimeError("store unavailable")
    except RuntimeError:
        record = _record(level=logging.ERROR, msg="Unhandled error", args=(), exc_info=sys.exc_info())
    parsed = json.loads(_JsonFormatter().format(record))
    assert "RuntimeError: store unavailable" in parsed["exception"]


def test_context_filter_copies_current_request() -> None:
    request_token = request_id_var.set("req-ctx")
    identity_token = identity_id_var.set("holder-7")
    try:
        record = _record()
        assert RequestContextFilter().filter(record) is True
    finally:
        identity_id_var.reset(identity_token)
        request_id_var.reset(request_token)
    assert record.request_id == "req-ctx"  # type: ignore[attr-defined]
    assert record.identity_id == "holder-7"  # type: ignore[attr-defined]


def test_context_filter_outside_a_request() -> None:
    record = _record()
    RequestContextFilter().filter(record)
    assert record.request_id == "-"  # type: ignore[attr-defined]
    assert record.identity_id is None  # type: ignore[attr-defined]


def test_context_filter_sees_records_from_child_loggers() -> None:
    """Records propagated from module loggers still get the request id."""
    captured: list[logging.LogRecord] = []

    class _Collect(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            captured.append(record)

    handler = _Collect()
    handler.addFilter(RequestContextFilter())
    root = logging.getLogger()
    root.addHandler(handler)
    token = request_id_var.set("req-child")
    try:
        logging.getLogger("credservice.services.proof_service").error("late response")
    finally:
        request_id_var.reset(token)
        root.removeHandler(handler)

    assert captured[-1].request_id == "req-child"  # type: ignore[attr-defined]


def test_container_line_is_not_json() -> None:
    output = _ContainerFormatter().format(_record())
    assert "INFO" in output
    assert "Credential revoked  credential_id=c-1" in output
    assert not output.lstrip().startswith("{")

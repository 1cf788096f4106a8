# tests/test_logging.py — Structured log output and credential scrubbing
import json
import logging

from logging_system import (
    JsonFormatter, RedactingFilter, RequestContextFilter, REDACTED,
    redact, set_request_id, reset_request_id,
)


def _record(msg="hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("devthon.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_redact_nested():
    cleaned = redact({
        "email": "a@b.test",
        "password": "hunter2",
        "tokens": {"accessToken": "abc"},
        "items": [{"refresh_token": "xyz", "keep": 1}],
    })
    assert cleaned == {
        "email": "a@b.test",
        "password": REDACTED,
        "tokens": REDACTED,
        "items": [{"refresh_token": REDACTED, "keep": 1}],
    }


def test_redacting_filter_scrubs_extras():
    record = _record(jwt_secret="s3cret", body={"password": "x", "email": "a@b.test"}, user_id="u1")
    RedactingFilter().filter(record)
    assert record.jwt_secret == REDACTED
    assert record.body == {"password": REDACTED, "email": "a@b.test"}
    assert record.user_id == "u1"


def test_json_formatter_carries_request_id_and_metadata():
    token = set_request_id("req-123")
    try:
        record = _record(user_id="u1")
        RequestContextFilter().filter(record)
        entry = json.loads(JsonFormatter().format(record))
    finally:
        reset_request_id(token)

    assert entry["request_id"] == "req-123"
    assert entry["logger"] == "devthon.test"
    assert entry["level"] == "info"
    assert entry["message"] == "hello"
    assert entry["metadata"] == {"user_id": "u1"}


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        import sys
        record = logging.LogRecord("devthon.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
    entry = json.loads(JsonFormatter().format(record))
    assert entry["error"] == {"type": "RuntimeError", "message": "boom"}
    assert "Traceback" in entry["stack_trace"]

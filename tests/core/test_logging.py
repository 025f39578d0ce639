import json
import logging

from app.core.logging import JsonFormatter, request_id_var


def _record(**extra):
    record = logging.LogRecord("app.access", logging.WARNING, __file__, 1, "access_request_failed", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_whitelisted_extras_only():
    line = JsonFormatter().format(_record(course_id="C", stage="CHECKING_ENTITLEMENT", password="x"))
    payload = json.loads(line)
    assert payload["message"] == "access_request_failed"
    assert payload["level"] == "WARNING"
    assert payload["course_id"] == "C"
    assert payload["stage"] == "CHECKING_ENTITLEMENT"
    assert "password" not in payload


def test_request_id_from_context():
    token = request_id_var.set("req-42")
    try:
        payload = json.loads(JsonFormatter().format(_record()))
    finally:
        request_id_var.reset(token)
    assert payload["request_id"] == "req-42"
    assert "request_id" not in json.loads(JsonFormatter().format(_record()))

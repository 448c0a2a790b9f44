"""Tests for observability utilities."""

import json
import logging
from datetime import date, datetime, timezone

from staybook.observability.correlation import (
    correlation_scope,
    get_correlation_id,
)
from staybook.observability.logging import JsonFormatter, get_logger
from staybook.observability.redaction import (
    redact_string,
    redact_value,
    safe_log_context,
)


class TestRedaction:
    """Tests for redaction helpers."""

    def test_redact_phone_number(self):
        result = redact_string("Call me at +55 11 99999-8888")
        assert "99999" not in result
        assert "[REDACTED]" in result

    def test_redact_email(self):
        result = redact_string("Email: user@example.com")
        assert "user@example.com" not in result
        assert "[REDACTED]" in result

    def test_redact_value_dict_only_keys(self):
        result = redact_value({"guest_name": "Alice", "unit_id": "U1"})
        assert "Alice" not in result
        assert "guest_name" in result

    def test_redact_value_dates_as_iso(self):
        assert redact_value(date(2024, 1, 4)) == "2024-01-04"
        assert redact_value(datetime(2024, 1, 4, 12, 0, tzinfo=timezone.utc)).startswith(
            "2024-01-04T12:00"
        )

    def test_safe_log_context_drops_guest_name(self):
        ctx = safe_log_context(guest_name="Alice Smith", unit_id="U1", nights=3)
        assert ctx["guest_name"] == "[REDACTED]"
        assert ctx["unit_id"] == "U1"
        assert ctx["nights"] == "3"


class TestCorrelation:
    def test_scope_binds_and_restores(self):
        assert get_correlation_id() == ""
        with correlation_scope("abc") as cid:
            assert cid == "abc"
            assert get_correlation_id() == "abc"
        assert get_correlation_id() == ""

    def test_scope_generates_id(self):
        with correlation_scope() as cid:
            assert len(cid) == 36

    def test_scope_restores_on_error(self):
        try:
            with correlation_scope("boom"):
                raise RuntimeError("x")
        except RuntimeError:
            pass
        assert get_correlation_id() == ""


class TestJsonFormatter:
    def _record(self, msg: str) -> logging.LogRecord:
        return logging.LogRecord("staybook.test", logging.INFO, __file__, 1, msg, None, None)

    def test_formats_json_with_extra_fields(self):
        record = self._record("booking created")
        record.extra_fields = {"booking_id": "b-1"}

        payload = json.loads(JsonFormatter().format(record))

        assert payload["message"] == "booking created"
        assert payload["level"] == "INFO"
        assert payload["service"] == "staybook"
        assert payload["booking_id"] == "b-1"
        assert "correlationId" not in payload

    def test_includes_correlation_id(self):
        with correlation_scope("cid-1"):
            payload = json.loads(JsonFormatter().format(self._record("x")))
        assert payload["correlationId"] == "cid-1"


class TestGetLogger:
    def test_single_handler(self):
        logger = get_logger("staybook.test.single")
        get_logger("staybook.test.single")
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        logger = get_logger("staybook.test.level")
        assert logger.level == logging.WARNING

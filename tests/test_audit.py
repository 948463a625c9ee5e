"""Tests for src/logging/audit.py — JSON audit logging."""

import json
import logging
import sys

from src.logging.audit import (
    JSONFormatter,
    RequestTimer,
    bind_request_context,
    generate_request_id,
    get_audit_logger,
    request_context_var,
    request_id_var,
    setup_logging,
)


def _record(msg="test"):
    return logging.LogRecord(
        name="test", level=logging.INFO, pathname="",
        lineno=0, msg=msg, args=(), exc_info=None,
    )


class TestJSONFormatter:

    def test_output_is_valid_json(self):
        parsed = json.loads(JSONFormatter().format(_record("hello")))
        assert parsed["message"] == "hello"
        assert parsed["level"] == "INFO"
        assert "timestamp" in parsed

    def test_includes_request_id(self):
        token = request_id_var.set("req-abc123")
        try:
            parsed = json.loads(JSONFormatter().format(_record()))
            assert parsed["request_id"] == "req-abc123"
        finally:
            request_id_var.reset(token)

    def test_includes_request_context(self):
        token = request_context_var.set(None)
        try:
            bind_request_context(client_key="105.0.0.9:curl/8", tier="api")
            bind_request_context(cache="HIT")
            parsed = json.loads(JSONFormatter().format(_record()))
            assert parsed["client_key"] == "105.0.0.9:curl/8"
            assert parsed["tier"] == "api"
            assert parsed["cache"] == "HIT"
        finally:
            request_context_var.reset(token)

    def test_no_request_context_outside_requests(self):
        token = request_context_var.set(None)
        try:
            parsed = json.loads(JSONFormatter().format(_record()))
            assert "client_key" not in parsed
        finally:
            request_context_var.reset(token)

    def test_includes_audit_data(self):
        record = _record()
        record.audit_data = {"client_ip": "196.21.0.1", "city": "Durban"}
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed["client_ip"] == "196.21.0.1"
        assert parsed["city"] == "Durban"

    def test_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                name="test", level=logging.ERROR, pathname="",
                lineno=0, msg="failed", args=(), exc_info=sys.exc_info(),
            )
        parsed = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in parsed["exception"]


class TestGenerateRequestId:

    def test_length(self):
        assert len(generate_request_id()) == 12

    def test_uniqueness(self):
        ids = {generate_request_id() for _ in range(100)}
        assert len(ids) == 100


class TestRequestTimer:

    def test_measures_elapsed(self):
        with RequestTimer() as timer:
            _ = sum(range(1000))
        assert timer.elapsed_ms >= 0
        assert isinstance(timer.elapsed_ms, float)


class TestSetupLogging:

    def test_creates_stdout_handler(self, make_settings):
        setup_logging(make_settings(log_level="DEBUG"))
        logger = get_audit_logger()
        assert any(isinstance(h, logging.StreamHandler) for h in logger.handlers)
        assert logger.level == logging.DEBUG
        assert logger.propagate is False

    def test_file_handler(self, make_settings, tmp_path):
        path = tmp_path / "audit.log"
        setup_logging(make_settings(audit_log_file=str(path)))
        logger = get_audit_logger()
        assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)

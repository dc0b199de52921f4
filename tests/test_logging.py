"""Tests for log formatting and correlation ids."""

import json
import logging

from interview_engine.utils.logging import (
    CorrelationIdFilter,
    HumanReadableFormatter,
    StructuredFormatter,
    get_correlation_id,
    set_correlation_id,
    setup_logging,
)


def make_record(message="Evaluated answer", **extra):
    record = logging.LogRecord("interview_engine.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_filter_stamps_current_correlation_id():
    set_correlation_id("session-123")
    record = make_record()

    assert CorrelationIdFilter().filter(record)
    assert record.correlation_id == "session-123"
    assert get_correlation_id() == "session-123"


def test_structured_formatter_includes_extra_fields():
    record = make_record(correlation_id="session-123", operation="ai_gateway.evaluate_answer", score=7)

    entry = json.loads(StructuredFormatter().format(record))

    assert entry["message"] == "Evaluated answer"
    assert entry["level"] == "INFO"
    assert entry["correlation_id"] == "session-123"
    assert entry["operation"] == "ai_gateway.evaluate_answer"
    assert entry["score"] == 7
    assert "lineno" not in entry


def test_human_formatter_shows_short_session_id():
    record = make_record(correlation_id="0123456789abcdef")

    line = HumanReadableFormatter().format(record)

    assert "[01234567]" in line
    assert line.endswith("Evaluated answer")


def test_setup_logging_writes_json_lines(tmp_path):
    log_file = tmp_path / "logs" / "engine.log"
    setup_logging("INFO", log_file=str(log_file), enable_console=False, enable_file=True, structured=True)
    set_correlation_id("session-abc")

    logging.getLogger("interview_engine.test").info("Session saved", extra={"version": 2})
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    saved = [line for line in lines if line["message"] == "Session saved"]
    assert saved[0]["correlation_id"] == "session-abc"
    assert saved[0]["version"] == 2

    setup_logging("WARNING", enable_console=False)

"""Tests for log formatting and external call logging."""
from __future__ import annotations

import json
import logging

from core.logging_config import (
    JSONFormatter,
    TextFormatter,
    get_context_logger,
    log_external_call,
)

LOGGER_NAME = "tests.logging"


def make_record(message: str = "hello", **attributes) -> logging.LogRecord:
    record = logging.LogRecord(LOGGER_NAME, logging.INFO, __file__, 10, message, None, None)
    for key, value in attributes.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_context_fields_are_top_level(self):
        record = make_record(sender="233200000001", lead_id="lead-1", extra_data={"attempt": 2})

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["sender"] == "233200000001"
        assert data["lead_id"] == "lead-1"
        assert data["extra"] == {"attempt": 2}
        assert data["timestamp"].endswith("+00:00")

    def test_context_read_from_extra_data(self):
        record = make_record(extra_data={"lead_id": "lead-9", "tag": "reply"})

        data = json.loads(JSONFormatter().format(record))

        assert data["lead_id"] == "lead-9"
        assert "sender" not in data

    def test_plain_record_has_no_context_or_extra(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert "sender" not in data
        assert "lead_id" not in data
        assert "extra" not in data


class TestTextFormatter:
    """Tests for TextFormatter."""

    def test_context_suffix(self):
        line = TextFormatter().format(make_record(sender="233200000001", lead_id="lead-1"))

        assert line.endswith("hello [sender=233200000001 lead_id=lead-1]")

    def test_no_suffix_without_context(self):
        assert TextFormatter().format(make_record()).endswith(" - INFO - hello")


class TestLogExternalCall:
    """Tests for log_external_call."""

    def test_success_logs_info_with_lead_id(self, caplog):
        caplog.set_level(logging.INFO, logger=LOGGER_NAME)

        log_external_call(
            logging.getLogger(LOGGER_NAME),
            service="crm",
            operation="sync_lead",
            success=True,
            duration_ms=12.5,
            lead_id="lead-1",
            attempt=1,
        )

        [record] = caplog.records
        assert record.levelno == logging.INFO
        assert record.lead_id == "lead-1"
        assert "crm.sync_lead for lead lead-1 completed" in record.getMessage()
        assert record.extra_data == {
            "service": "crm",
            "operation": "sync_lead",
            "success": True,
            "duration_ms": 12.5,
            "attempt": 1,
        }

    def test_failure_logs_warning_with_sender(self, caplog):
        caplog.set_level(logging.INFO, logger=LOGGER_NAME)

        log_external_call(
            logging.getLogger(LOGGER_NAME),
            service="whatsapp",
            operation="send_message",
            success=False,
            duration_ms=5,
            sender="233200000001",
            tag="reply",
        )

        [record] = caplog.records
        assert record.levelno == logging.WARNING
        assert record.sender == "233200000001"
        assert not hasattr(record, "lead_id")
        assert record.extra_data["tag"] == "reply"


def test_context_logger_binds_sender(caplog):
    caplog.set_level(logging.INFO, logger=LOGGER_NAME)
    log = get_context_logger(LOGGER_NAME, sender="233200000001")

    log.info("Inbound message")
    log.info("Override", extra={"sender": "233200000002"})

    first, second = caplog.records
    assert first.sender == "233200000001"
    assert second.sender == "233200000002"

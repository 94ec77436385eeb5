"""
Tests for structured logging configuration.
"""

import json
import logging

import pytest
import structlog

from apple_mail_mcp.logging import (
    MAX_FIELD_LENGTH,
    build_processors,
    clip_long_values,
    configure_logging,
    get_logger,
)


class CapturingHandler(logging.Handler):
    """A logging handler that captures formatted records."""

    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(self.format(record))


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def capturing_handler():
    handler = CapturingHandler()
    yield handler
    logging.getLogger().removeHandler(handler)


def test_long_values_are_clipped():
    event = clip_long_values(None, "info", {"event": "e" * 600, "stderr": "x" * 600, "count": 3})

    assert event["event"] == "e" * 600
    assert event["stderr"] == "x" * MAX_FIELD_LENGTH + "... (600 chars)"
    assert event["count"] == 3


def test_short_values_untouched():
    event = {"event": "AppleScript executed", "operation": "get_emails"}
    assert clip_long_values(None, "debug", dict(event)) == event


def test_renderer_choice():
    assert isinstance(build_processors(True)[-1], structlog.processors.JSONRenderer)
    assert isinstance(build_processors(False)[-1], structlog.dev.ConsoleRenderer)


def test_json_lines_carry_service_and_context(capturing_handler):
    configure_logging(service_name="mail-test", enable_json=True)
    logging.getLogger().addHandler(capturing_handler)

    get_logger("test").warning("Mail reported failure", operation="delete_email", message="z" * 1000)

    payload = json.loads(capturing_handler.records[-1])
    assert payload["event"] == "Mail reported failure"
    assert payload["service"] == "mail-test"
    assert payload["operation"] == "delete_email"
    assert payload["level"] == "warning"
    assert payload["message"].endswith("... (1000 chars)")


def test_level_filters_debug(capturing_handler):
    configure_logging(log_level="INFO", enable_json=True)
    logging.getLogger().addHandler(capturing_handler)

    get_logger("test").debug("AppleScript executed", operation="list_accounts")

    assert capturing_handler.records == []


def test_noisy_libraries_stay_at_warning():
    configure_logging(log_level="DEBUG")

    assert logging.getLogger("httpx").level == logging.WARNING

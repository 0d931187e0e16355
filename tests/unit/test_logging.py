"""Unit tests for the structlog setup."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from lexbrief.utils.logging import configure_logging, get_logger, redact_api_keys


@pytest.fixture(autouse=True)
def _reset_structlog():  # noqa: ANN202
    yield
    structlog.reset_defaults()


class TestRedaction:
    def test_masks_keys_in_string_values(self) -> None:
        event = {
            "event": "openai_embedding_failed",
            "error": "Incorrect API key provided: sk-proj-abcdef123456XYZ.",
            "chunks": 3,
        }

        result = redact_api_keys(None, "warning", event)

        assert result["error"] == "Incorrect API key provided: sk-***."
        assert result["chunks"] == 3

    def test_short_prefixes_untouched(self) -> None:
        event = {"event": "x", "title": "task-sk-1"}
        assert redact_api_keys(None, "info", event)["title"] == "task-sk-1"


class TestConfigureLogging:
    def test_json_output_is_redacted(self, capsys: pytest.CaptureFixture) -> None:
        configure_logging("INFO", json_output=True)

        get_logger("lexbrief.test").warning("provider_failed", error="bad key sk-abcdefghijklmnop")

        line = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert line["event"] == "provider_failed"
        assert line["error"] == "bad key sk-***"
        assert line["level"] == "warning"

    def test_level_filters(self, capsys: pytest.CaptureFixture) -> None:
        configure_logging("WARNING", json_output=True)

        get_logger("lexbrief.test").info("hidden")

        assert "hidden" not in capsys.readouterr().out

    def test_library_loggers_quieted(self) -> None:
        configure_logging("INFO", json_output=True)
        assert logging.getLogger("httpx").level == logging.WARNING

        configure_logging("DEBUG", json_output=True)
        assert logging.getLogger("httpx").level == logging.DEBUG

"""Tests for migra.core.logging."""

import json

import pytest
import structlog

from migra.core.logging import LogContext, configure_logging, get_logger


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_json_lines_to_stderr(self, capsys):
        configure_logging(level="info", json_format=True)
        get_logger("test").info("engine.service.start", service="billing")

        captured = capsys.readouterr()
        assert captured.out == ""
        event = json.loads(captured.err.strip().splitlines()[-1])
        assert event["event"] == "engine.service.start"
        assert event["service"] == "billing"
        assert event["level"] == "info"
        assert event["service.name"] == "migra"

    def test_level_filters(self, capsys):
        configure_logging(level="error", json_format=True)
        get_logger("test").info("hidden")
        assert capsys.readouterr().err == ""

    def test_warn_alias(self, capsys):
        configure_logging(level="warn", json_format=True)
        log = get_logger("test")
        log.info("hidden")
        log.warning("shown")
        assert "shown" in capsys.readouterr().err

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            configure_logging(level="chatty")

    def test_log_file(self, tmp_path, capsys):
        path = tmp_path / "migra.log"
        configure_logging(level="info", json_format=True, log_file=str(path))
        get_logger("test").info("to.file")
        assert capsys.readouterr().err == ""
        assert "to.file" in path.read_text()


class TestLogContext:
    def test_binds_and_unbinds(self, capsys):
        configure_logging(level="info", json_format=True)
        log = get_logger("test")
        with LogContext(tenant="acme"):
            log.info("inside")
        log.info("outside")

        lines = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
        assert lines[0]["tenant"] == "acme"
        assert "tenant" not in lines[1]

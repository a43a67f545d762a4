"""Tests for centralized logging system."""

from __future__ import annotations

import json
from typing import Any

from sharedir.core.events import get_event_bus
from sharedir.core.logging import (
    LOG_RECORD_EVENT,
    LogRecord,
    VerbosityLevel,
    apply_logging_level,
    get_logger,
    get_verbosity,
    set_colors,
    set_json_output,
    set_verbosity,
)


class TestVerbosityLevel:
    """Test VerbosityLevel enum."""

    def test_verbosity_values(self):
        """Test verbosity level values."""
        assert VerbosityLevel.QUIET == 0
        assert VerbosityLevel.NORMAL == 1
        assert VerbosityLevel.VERBOSE == 2
        assert VerbosityLevel.DEBUG == 3

    def test_verbosity_ordering(self):
        """Test verbosity level ordering."""
        assert VerbosityLevel.QUIET < VerbosityLevel.NORMAL
        assert VerbosityLevel.NORMAL < VerbosityLevel.VERBOSE
        assert VerbosityLevel.VERBOSE < VerbosityLevel.DEBUG


class TestLoggingSetup:
    """Test logging setup functions."""

    def test_set_get_verbosity(self):
        """Test setting and getting verbosity."""
        set_verbosity(2)
        assert get_verbosity() == VerbosityLevel.VERBOSE

        set_verbosity(VerbosityLevel.DEBUG)
        assert get_verbosity() == VerbosityLevel.DEBUG

    def test_apply_logging_level(self):
        apply_logging_level("quiet")
        assert get_verbosity() == VerbosityLevel.QUIET

        apply_logging_level("debug")
        assert get_verbosity() == VerbosityLevel.DEBUG

    def test_set_colors(self):
        """Test setting colors."""
        set_colors(False)
        logger = get_logger("test")
        logger.info("test")

        set_colors(True)


def test_quiet_drops_info(capsys) -> None:
    set_verbosity(VerbosityLevel.QUIET)
    logger = get_logger("quiet_test")

    logger.info("not shown")
    logger.warning("shown")

    err = capsys.readouterr().err
    assert "not shown" not in err
    assert "[warning] shown" in err


def test_text_output_carries_fields(capsys) -> None:
    get_logger("fields_test").info("started http server", port=8001)

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "[info] started http server port=8001" in captured.err


def test_json_output(capsys) -> None:
    set_json_output(True)

    get_logger("json_test").error("zip failed", path="/srv/share")

    line = capsys.readouterr().err.strip()
    payload = json.loads(line)
    assert payload["level"] == "error"
    assert payload["logger"] == "json_test"
    assert payload["message"] == "zip failed"
    assert payload["path"] == "/srv/share"
    assert payload["time"].endswith("Z")


def test_records_published_without_subscribers_no_crash() -> None:
    get_event_bus().clear()

    logger = get_logger("logbus_test")
    logger.info("hello")


def test_records_published_on_event_bus() -> None:
    collected: list[dict[str, Any]] = []
    get_event_bus().subscribe(LOG_RECORD_EVENT, collected.append)

    logger = get_logger("logbus_test")
    logger.info("hello", extra=1)

    assert len(collected) == 1
    record = LogRecord(**collected[0])
    assert record.plain == "[info] hello"
    assert record.logger_name == "logbus_test"
    assert record.fields == {"extra": 1}


def test_filtered_records_are_not_published() -> None:
    collected: list[dict[str, Any]] = []
    get_event_bus().subscribe(LOG_RECORD_EVENT, collected.append)
    set_verbosity(VerbosityLevel.QUIET)

    get_logger("logbus_test").info("dropped")

    assert collected == []


def test_failing_record_subscriber_does_not_recurse(capsys) -> None:
    calls: list[str] = []

    def _boom(event: str, data: dict[str, Any]) -> None:
        calls.append(event)
        raise RuntimeError("subscriber broke")

    get_event_bus().subscribe_all(_boom)
    get_logger("logbus_test").warning("still logged")

    err = capsys.readouterr().err
    assert calls == [LOG_RECORD_EVENT]
    assert "subscriber broke" in err
    assert "[warning] still logged" in err

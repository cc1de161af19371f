"""Tests for JSON structured logging."""
import json
import logging
import sys

from storybook.core.logging import JSONFormatter, setup_logging


def _record(**kwargs: object) -> logging.LogRecord:
    defaults: dict = {
        "name": "test-service",
        "level": logging.INFO,
        "pathname": "",
        "lineno": 0,
        "msg": "test message",
        "args": (),
        "exc_info": None,
    }
    defaults.update(kwargs)
    return logging.LogRecord(**defaults)


def test_json_formatter_outputs_valid_json() -> None:
    """JSONFormatter should produce valid JSON output."""
    output = JSONFormatter().format(_record())
    assert isinstance(json.loads(output), dict)


def test_json_formatter_has_required_fields() -> None:
    """Log output must contain timestamp, level, service, message fields."""
    parsed = json.loads(
        JSONFormatter().format(
            _record(name="my-service", level=logging.WARNING, msg="something happened")
        )
    )

    assert "timestamp" in parsed
    assert parsed["level"] == "WARNING"
    assert parsed["service"] == "my-service"
    assert parsed["message"] == "something happened"


def test_json_formatter_interpolates_args() -> None:
    parsed = json.loads(
        JSONFormatter().format(_record(msg="page %d of %d", args=(2, 5)))
    )
    assert parsed["message"] == "page 2 of 5"


def test_json_formatter_copies_pipeline_extras() -> None:
    """story_id, page_number and tier passed via extra= should appear in the output."""
    record = _record()
    record.story_id = "story-abc"
    record.page_number = 3
    record.tier = "simulated"

    parsed = json.loads(JSONFormatter().format(record))

    assert parsed["story_id"] == "story-abc"
    assert parsed["page_number"] == 3
    assert parsed["tier"] == "simulated"
    assert "character_id" not in parsed


def test_json_formatter_keeps_non_ascii_text() -> None:
    parsed_line = JSONFormatter().format(_record(msg="坚韧的"))
    assert "坚韧的" in parsed_line


def test_json_formatter_includes_error_type_on_exception() -> None:
    """Log output should include error_type when an exception is attached."""
    try:
        raise ValueError("test error")
    except ValueError:
        exc_info = sys.exc_info()

    parsed = json.loads(
        JSONFormatter().format(_record(level=logging.ERROR, exc_info=exc_info))
    )

    assert parsed["error_type"] == "ValueError"
    assert "test error" in parsed["error_detail"]


def test_setup_logging_returns_logger() -> None:
    """setup_logging() should return a configured Logger instance."""
    logger = setup_logging("test-app")
    assert isinstance(logger, logging.Logger)
    assert logger.name == "test-app"


def test_setup_logging_does_not_duplicate_handlers() -> None:
    first = setup_logging("test-dup")
    count = len(first.handlers)
    second = setup_logging("test-dup")
    assert second is first
    assert len(second.handlers) == count


def test_service_loggers_emit_json() -> None:
    from storybook.services import cache, character, image, story

    for module in (cache, character, image, story):
        assert module.logger.handlers
        assert isinstance(module.logger.handlers[0].formatter, JSONFormatter)

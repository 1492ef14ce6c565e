"""Tests for the JSON log formatter and setup_logging."""

import logging
import sys

import orjson
import pytest

from utils.logging import TEXT_FORMAT, JsonFormatter, get_logger, setup_logging


def make_record(**extra):
    record = logging.LogRecord("orders", logging.INFO, __file__, 10, "Order created", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields():
    payload = orjson.loads(JsonFormatter().format(make_record(order_id="o-1", amount=12.5)))
    assert payload["message"] == "Order created"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "orders"
    assert payload["order_id"] == "o-1"
    assert payload["amount"] == 12.5
    assert "lineno" not in payload


def test_json_formatter_renders_exceptions():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
    payload = orjson.loads(JsonFormatter().format(record))
    assert "RuntimeError: boom" in payload["exc_info"]


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_setup_logging_to_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "api.log"
    setup_logging(level="debug", format_type="json", output=str(log_file))

    get_logger("services.orders").debug("Order deleted", extra={"order_id": "o-9"})
    for handler in restore_root_logger.handlers:
        handler.flush()

    line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
    assert orjson.loads(line)["order_id"] == "o-9"
    assert restore_root_logger.level == logging.DEBUG


def test_setup_logging_text_format(restore_root_logger):
    setup_logging(level="WARNING", format_type="text")
    (handler,) = restore_root_logger.handlers
    assert handler.formatter._fmt == TEXT_FORMAT
    assert restore_root_logger.level == logging.WARNING

import json
import logging
import sys

import pytest

from order_service.observability import JSONFormatter, setup_logging


@pytest.fixture
def restore_root_logger():
    handlers = list(logging.root.handlers)
    level = logging.root.level
    yield
    logging.root.handlers = handlers
    logging.root.setLevel(level)


def _record(msg, exc_info=None, **extra):
    record = logging.LogRecord(
        "order_service.ingest", logging.INFO, __file__, 1, msg, (), exc_info
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_surfaces_extra_fields():
    line = JSONFormatter().format(
        _record("order A1 saved successfully", sequence=3, order_uid="A1", error_code=None)
    )
    log = json.loads(line)
    assert log["level"] == "INFO"
    assert log["logger"] == "order_service.ingest"
    assert log["message"] == "order A1 saved successfully"
    assert log["sequence"] == 3
    assert log["order_uid"] == "A1"
    assert "error_code" not in log
    assert "timestamp" in log


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("store down")
    except RuntimeError:
        record = _record("save failed", exc_info=sys.exc_info(), error_code="PERSISTENCE_ERROR")
    log = json.loads(JSONFormatter().format(record))
    assert log["error_code"] == "PERSISTENCE_ERROR"
    assert "RuntimeError: store down" in log["exception"]


def test_setup_logging_json(restore_root_logger):
    setup_logging("warning", "json")
    handler = logging.root.handlers[-1]
    assert isinstance(handler.formatter, JSONFormatter)
    assert logging.root.level == logging.WARNING


def test_setup_logging_text(restore_root_logger):
    setup_logging("debug", "text")
    handler = logging.root.handlers[-1]
    assert not isinstance(handler.formatter, JSONFormatter)
    assert logging.root.level == logging.DEBUG

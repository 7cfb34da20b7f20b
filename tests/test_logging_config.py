"""Tests for root logger setup (login_server.logging_config)."""

import json
import logging

import pytest

from login_server.config import LoggingSettings
from login_server.logging_config import JsonFormatter, build_formatter, configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.mark.unit
def test_configure_logging_does_not_stack_handlers(restore_root_logger):
    root = restore_root_logger

    configure_logging(LoggingSettings(level="DEBUG", format="simple"))
    configure_logging(LoggingSettings(level="WARNING", format="detailed"))

    ours = [h for h in root.handlers if getattr(h, "_login_server_handler", False)]
    assert len(ours) == 1
    assert root.level == logging.WARNING


@pytest.mark.unit
def test_unknown_level_falls_back_to_info(restore_root_logger):
    configure_logging(LoggingSettings(level="chatty"))
    assert restore_root_logger.level == logging.INFO


@pytest.mark.unit
def test_json_formatter_emits_one_object():
    record = logging.LogRecord(
        "login_server.x", logging.INFO, __file__, 1, "hi %s", ("there",), None
    )

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "login_server.x"
    assert payload["message"] == "hi there"


@pytest.mark.unit
def test_build_formatter_variants():
    assert isinstance(build_formatter("json"), JsonFormatter)
    assert not isinstance(build_formatter("simple"), JsonFormatter)
    assert not isinstance(build_formatter("detailed"), JsonFormatter)

"""Tests for logging configuration."""

import logging

import pytest

from valet.config import Config
from valet.logger import ROOT_LOGGER, configure_logging, get_logger, reset_logging


@pytest.fixture(autouse=True)
def clean_logging(monkeypatch):
    monkeypatch.delenv("VALET_LOG_FILE_ONLY", raising=False)
    reset_logging()
    yield
    reset_logging()


def test_file_logging_from_config(tmp_path):
    log_file = tmp_path / "logs" / "valet.log"
    config = Config({"logging": {"level": "DEBUG", "file": str(log_file), "console": False}}, env={})

    logger = get_logger("router", config)
    logger.debug("routed show next actions")
    for handler in logging.getLogger(ROOT_LOGGER).handlers:
        handler.flush()

    assert logger.name == "valet.router"
    assert "valet.router - DEBUG - routed show next actions" in log_file.read_text()


def test_configure_is_idempotent():
    root = configure_logging(None)
    handlers = list(root.handlers)

    configure_logging(None)

    assert root.handlers == handlers
    assert len(handlers) == 1
    assert root.propagate is False


def test_qualified_names_are_kept():
    assert get_logger("valet.llm").name == "valet.llm"
    assert get_logger("valet").name == "valet"


def test_file_only_mode_disables_console(monkeypatch, tmp_path):
    monkeypatch.setenv("VALET_LOG_FILE_ONLY", "1")
    monkeypatch.setattr("valet.logger.CONSOLE_LOG_FILE", tmp_path / "console.log")

    root = configure_logging(Config(env={}))

    assert [type(h) for h in root.handlers] == [logging.FileHandler]
    assert root.handlers[0].baseFilename == str(tmp_path / "console.log")

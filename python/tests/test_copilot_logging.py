from __future__ import annotations

import logging
from pathlib import Path

import pytest

from copilot_logging import LOG_LEVEL_ENV, configure_logging, get_logger, resolve_level


@pytest.fixture
def package_logger():
    logger = get_logger()
    yield logger
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def test_get_logger_nests_under_package_logger() -> None:
    assert get_logger().name == "ollama_copilot"
    assert get_logger("engine").name == "ollama_copilot.engine"


def test_level_comes_from_verbose_flag_then_environment() -> None:
    assert resolve_level(verbose=True, env={LOG_LEVEL_ENV: "error"}) == logging.DEBUG
    assert resolve_level(env={LOG_LEVEL_ENV: "info"}) == logging.INFO
    assert resolve_level(env={LOG_LEVEL_ENV: "chatty"}) == logging.WARNING
    assert resolve_level(env={}) == logging.WARNING


def test_reconfiguring_replaces_only_own_handlers(package_logger, tmp_path: Path) -> None:
    host_handler = logging.NullHandler()
    package_logger.addHandler(host_handler)

    configure_logging(verbose=True, env={})
    log_file = tmp_path / "copilot.log"
    logger = configure_logging(verbose=True, log_file=log_file, env={})

    assert logger is package_logger
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 3
    assert host_handler in logger.handlers

    get_logger("engine").debug("prompt built")
    for handler in logger.handlers:
        handler.flush()
    assert "DEBUG ollama_copilot.engine: prompt built" in log_file.read_text(encoding="utf-8")


def test_stderr_output_respects_level(package_logger, capsys) -> None:
    configure_logging(env={LOG_LEVEL_ENV: "WARNING"})
    get_logger("engine").info("hidden")
    get_logger("engine").warning("shown")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "hidden" not in captured.err
    assert "[ollama-copilot] WARNING ollama_copilot.engine: shown" in captured.err

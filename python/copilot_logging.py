"""Logger setup for the ``ollama_copilot`` hierarchy."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Optional, Union

ROOT_LOGGER = "ollama_copilot"
LOG_LEVEL_ENV = "OLLAMA_COPILOT_LOG_LEVEL"

STDERR_FORMAT = "[ollama-copilot] %(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Marks handlers installed here, so reconfiguring leaves host-added handlers alone.
_OWNED = "_ollama_copilot_handler"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """``ollama_copilot`` or ``ollama_copilot.<name>``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def resolve_level(verbose: bool = False, env: Optional[Mapping[str, str]] = None) -> int:
    """DEBUG when verbose, else the level named in OLLAMA_COPILOT_LOG_LEVEL, else WARNING."""
    if verbose:
        return logging.DEBUG
    env = os.environ if env is None else env
    name = env.get(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else logging.WARNING
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> logging.Logger:
    """Send engine logs to stderr, and to ``log_file`` when given.

    stdout is left alone: editor hosts may speak their protocol over it.
    Safe to call repeatedly; earlier handlers from this function are replaced.
    """
    level = resolve_level(verbose, env)
    logger = get_logger()
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        if getattr(handler, _OWNED, False):
            logger.removeHandler(handler)
            handler.close()

    handlers = [logging.StreamHandler(sys.stderr)]
    handlers[0].setFormatter(logging.Formatter(STDERR_FORMAT))
    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    for handler in handlers:
        setattr(handler, _OWNED, True)
        logger.addHandler(handler)
    return logger


__all__ = ["LOG_LEVEL_ENV", "configure_logging", "get_logger", "resolve_level"]

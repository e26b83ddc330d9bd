"""
Logger factory shared by every package under ``src``.

Loggers are cached per module name and carry a single stderr handler so that
repeated imports never stack handlers. Library code only emits; scripts
choose the level with set_log_level().
"""

from __future__ import annotations

import logging
import sys

_ROOT_NAME: str = "easy21"
_DEFAULT_LEVEL: int = logging.WARNING
_FORMAT: str = "[%(levelname)s] %(name)s: %(message)s"

_loggers: dict[str, logging.Logger] = {}


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the cached logger for a module (normally ``__name__``).

    Examples:
        >>> get_logger("src.autodiff.tape").name
        'easy21.src.autodiff.tape'
    """
    logger_name = _ROOT_NAME if name is None else f"{_ROOT_NAME}.{name}"
    if logger_name in _loggers:
        return _loggers[logger_name]

    logger = logging.getLogger(logger_name)
    if not logger.handlers:
        logger.setLevel(_DEFAULT_LEVEL)
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    _loggers[logger_name] = logger
    return logger


def set_log_level(level: int | str) -> None:
    """Set the level on every logger created so far and on future ones.

    Args:
        level: A logging level constant or its name ('DEBUG', 'INFO', ...).
    """
    global _DEFAULT_LEVEL
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)
    for logger in _loggers.values():
        logger.setLevel(level)
    _DEFAULT_LEVEL = level

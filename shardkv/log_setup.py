"""Logging configuration for the package's commands."""

import logging

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOGGER_NAME = "shardkv"

_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": TRACE,
}

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_installed_handler = None


def init_logging(level: str = "INFO", log_file=None) -> logging.Logger:
    """Configure the package logger and return it.

    ``level`` is one of error, warn, info, debug or trace (any case); an
    unknown name leaves the current level unchanged. When ``log_file`` is
    given, records are appended to it instead of going to standard error.
    """
    global _installed_handler

    logger = logging.getLogger(LOGGER_NAME)
    chosen = _LEVELS.get(level.lower())
    if chosen is not None:
        logger.setLevel(chosen)

    if log_file:
        handler: logging.Handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))

    if _installed_handler is not None:
        logger.removeHandler(_installed_handler)
        _installed_handler.close()
    logger.addHandler(handler)
    _installed_handler = handler
    return logger
"""Logging setup for the connector service.

Console output always goes to stderr (container logs). When `log_dir` is set, a
second handler writes `ldap_connector.log` there, rolled over at UTC midnight with
`retention_days` old files kept.
"""
from __future__ import annotations

import logging
import os
from logging.handlers import TimedRotatingFileHandler

LOG_FILE_NAME = "ldap_connector.log"
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers that stay at WARNING unless we run more verbose than that.
_NOISY_LOGGERS = ("ldap3", "uvicorn.access")

_console_handler: logging.Handler | None = None
_file_handler: logging.Handler | None = None


def parse_level(level: str) -> int:
    name = (level or "").strip().upper()
    return getattr(logging, name) if name in LEVELS else logging.INFO


def _drop_installed(root: logging.Logger) -> None:
    global _console_handler, _file_handler
    for handler in (_console_handler, _file_handler):
        if handler is not None and handler in root.handlers:
            root.removeHandler(handler)
            handler.close()
    _console_handler = _file_handler = None


def setup_logging(level: str = "INFO", log_dir: str = "", retention_days: int = 30) -> None:
    """(Re)configure the root logger. Safe to call more than once."""
    global _console_handler, _file_handler

    log_level = parse_level(level)
    keep_days = max(1, min(365, int(retention_days or 30)))
    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT)

    root = logging.getLogger()
    _drop_installed(root)

    _console_handler = logging.StreamHandler()
    handlers = [_console_handler]
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        _file_handler = TimedRotatingFileHandler(
            os.path.join(log_dir, LOG_FILE_NAME),
            when="midnight",
            backupCount=keep_days,
            encoding="utf-8",
            utc=True,
        )
        _file_handler.suffix = "%Y-%m-%d"
        handlers.append(_file_handler)

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logging.getLogger(__name__).info(
        "Logging configured: level=%s, dir=%s, retention=%d days",
        logging.getLevelName(log_level),
        log_dir or "-",
        keep_days,
    )

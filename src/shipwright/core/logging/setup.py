from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .json_formatter import JSONFormatter

_LOGGER_NAME = "shipwright"
_CONFIGURED_ATTR = "_shipwright_json_logging"
_LOG_MAX_BYTES = 5_000_000
_LOG_BACKUP_COUNT = 5


def _parse_level(raw: str) -> int:
    return getattr(logging, raw.strip().upper(), logging.INFO)


def log_file_name(service: str | None) -> str:
    """API and worker run as separate processes and must not rotate the same file."""
    return f"shipwright-{service}.log" if service else "shipwright.log"


def configure_logging(state_dir: Path, service: str | None = None) -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(_parse_level(os.getenv("SHIPWRIGHT_LOG_LEVEL", "INFO")))
    logger.propagate = False

    formatter = JSONFormatter(service=service)

    if not any(
        getattr(handler, _CONFIGURED_ATTR, False) and not isinstance(handler, RotatingFileHandler)
        for handler in logger.handlers
    ):
        stdout_handler = logging.StreamHandler(stream=sys.stdout)
        stdout_handler.setFormatter(formatter)
        setattr(stdout_handler, _CONFIGURED_ATTR, True)
        logger.addHandler(stdout_handler)

    if os.getenv("SHIPWRIGHT_LOG_TO_FILE", "on").strip().casefold() != "on":
        return logger

    log_dir = Path(os.getenv("SHIPWRIGHT_LOG_DIR") or (state_dir / "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / log_file_name(service)

    already_attached = any(
        isinstance(handler, RotatingFileHandler)
        and getattr(handler, _CONFIGURED_ATTR, False)
        and Path(handler.baseFilename) == log_path
        for handler in logger.handlers
    )
    if not already_attached:
        file_handler = RotatingFileHandler(
            filename=log_path,
            maxBytes=_LOG_MAX_BYTES,
            backupCount=_LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        setattr(file_handler, _CONFIGURED_ATTR, True)
        logger.addHandler(file_handler)

    return logger

"""Centralized logging utilities for Link Weaver."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from .config import CONFIG

_LOGGER: Optional[logging.Logger] = None

# Structured fields passed through ``extra=`` and rendered after the message.
_EXTRA_FIELDS = (
    ("provider", "provider"),
    ("mode", "mode"),
    ("path", "path"),
    ("status_code", "status"),
    ("elapsed_ms", "elapsed_ms"),
    ("candidates", "candidates"),
    ("suggestions", "suggestions"),
    ("dropped", "dropped"),
    ("sources", "sources"),
    ("error_kind", "error"),
)


class ExtraFormatter(logging.Formatter):
    """Formatter that appends known ``extra`` fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for attr, label in _EXTRA_FIELDS:
            if hasattr(record, attr):
                extras.append(f"{label}={getattr(record, attr)}")
        message = super().format(record)
        if extras:
            message = f"{message} [{', '.join(extras)}]"
        return message


def setup_logging(level: str | int = "INFO") -> logging.Logger:
    """Configure application-wide logging and return the package logger."""

    global _LOGGER
    if _LOGGER is not None:
        return _LOGGER

    log_dir = CONFIG.paths.state_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "link_weaver.log"

    logger = logging.getLogger("link_weaver")
    logger.setLevel(level if isinstance(level, int) else getattr(logging, str(level).upper(), logging.INFO))

    formatter = ExtraFormatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    file_handler = RotatingFileHandler(log_path, maxBytes=5 * 1024 * 1024, backupCount=5)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if os.environ.get("WEAVER_LOG_TO_STDOUT", "0") == "1":
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    logger.debug("Logging initialized at %s", log_path)
    _LOGGER = logger
    return logger

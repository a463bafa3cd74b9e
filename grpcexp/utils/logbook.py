"""Rotating structured logger emitting one JSON object per line."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

LOGGER_NAME = "grpcexp.events"
STATE_DIR_ENV = "GRPCEXP_STATE_DIR"


def state_dir() -> Path:
    """Directory holding grpcexp's logs, ``~/.grpcexp`` unless ``GRPCEXP_STATE_DIR`` is set."""

    override = os.environ.get(STATE_DIR_ENV)
    if override:
        return Path(override).expanduser().resolve()
    return Path.home() / ".grpcexp"


def log_file() -> Path:
    """Return the path of the rotating event log."""

    return state_dir() / "logs" / "grpcexp.log"


def _file_handler(logger: logging.Logger) -> Optional[RotatingFileHandler]:
    for handler in logger.handlers:
        if isinstance(handler, RotatingFileHandler):
            return handler
    return None


def _get_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    # other handlers (pytest's capture, an embedding app) do not count as ours
    if _file_handler(logger) is not None:
        return logger

    path = log_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=5, encoding="utf-8")
    formatter = logging.Formatter("%(message)s")

    logger.setLevel(logging.INFO)
    logger.propagate = False
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


def reset() -> None:
    """Close the log file so the next record reopens it under the current state dir."""

    logger = logging.getLogger(LOGGER_NAME)
    handler = _file_handler(logger)
    while handler is not None:
        logger.removeHandler(handler)
        handler.close()
        handler = _file_handler(logger)


def _serialize(value: object) -> object:
    """Make ``value`` JSON-serialisable."""

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _serialize(item) for key, item in value.items()}
    return str(value)


def event(channel: str, action: str, **fields: object) -> Dict[str, object]:
    """Build and write a structured ``channel``/``action`` record."""

    timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
    payload = {key: _serialize(value) for key, value in fields.items()}
    details = " ".join(f"{key}={payload[key]}" for key in sorted(payload))
    message = f"[{channel}] {action}"
    if details:
        message = f"{message} {details}"
    record: Dict[str, object] = {
        "timestamp": timestamp,
        "channel": channel,
        "action": action,
        **payload,
        "message": message,
    }
    info(record)
    return record


def info(record: Dict[str, object]) -> None:
    """Write a JSON record to the rotating log."""

    logger = _get_logger()
    logger.info(json.dumps(record, sort_keys=True))

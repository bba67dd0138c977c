"""Build logging: one JSON object per line on stderr.

Records emitted through :func:`canister_logger` carry the canister being
built, so interleaved output from a multi-canister build stays attributable.
The level comes from ``CANISTER_BUILDER_LOG`` (default ``INFO``).
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from typing import Any

LOG_LEVEL_ENV = "CANISTER_BUILDER_LOG"

_CONTEXT_FIELDS = ("canister", "network")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is at emit time."""

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, _value) -> None:
        pass


def get_logger(name: str = "canister_builder") -> logging.Logger:
    logger = logging.getLogger(name)
    if not any(isinstance(h, _StderrHandler) for h in logger.handlers):
        handler = _StderrHandler()
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        level = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
        logger.setLevel(level if level in logging.getLevelNamesMapping() else logging.INFO)
        logger.propagate = False
    return logger


def canister_logger(logger: logging.Logger | None, canister: str) -> logging.LoggerAdapter:
    """Wrap *logger* so every record carries ``canister``."""
    return logging.LoggerAdapter(logger or get_logger(), {"canister": canister})

# floor_manager/utils/loggers.py
"""
Logging helpers.

Public API
----------
- get_logger(name) -> logging.Logger
- log_event(logger, op, phase, message, extra: dict = None)
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

__all__ = ["get_logger", "log_event"]

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name: str = "floor_manager") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(ch)
    return logger


class JsonLineFormatter(logging.Formatter):
    """
    Minimal JSON-lines formatter:
      {"ts":"2026-01-16T12:00:01.123Z","level":"INFO","name":"floor_manager.store","msg":"...","extra":{...}}
    """
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "extra_payload") and isinstance(record.extra_payload, dict):
            payload["extra"] = record.extra_payload
        return json.dumps(payload, ensure_ascii=False, default=str)


def log_event(
    logger: logging.Logger,
    op: str,
    phase: str,
    message: str,
    extra: Optional[Dict[str, object]] = None,
    level: int = logging.INFO,
) -> None:
    """
    Log a structured event line (storage writes, imports, settlements).

    Args:
        logger: Any logger; attach JsonLineFormatter to a handler to get JSON lines.
        op: Operation name, e.g. "save", "import", "settle".
        phase: Phase within the operation, e.g. "start", "done".
        message: Short human-readable message.
        extra: Optional key/values (ids, counts, amounts).
        level: Logging level (default INFO).
    """
    payload = {"op": op, "phase": phase}
    if extra:
        payload.update(extra)
    logger.log(level, message, extra={"extra_payload": payload})

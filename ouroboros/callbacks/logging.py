"""Structured JSON logging callback for engine lifecycle events."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from ouroboros.callbacks.base import BaseCallback, ERROR

logger = logging.getLogger("ouroboros.audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _compact(value: Any) -> Any:
    if isinstance(value, (int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return len(value)
    return str(value)[:200]


class LoggingCallback(BaseCallback):
    """Emits one self-contained JSON log line per engine event.

    Each line carries:
      - event: event type name
      - ts: ISO-8601 UTC timestamp
      - the event's fields, strings truncated to 200 chars, lists as counts

    Log level: INFO for normal events, ERROR for ``error``.
    Logger name: ouroboros.audit (configure in your logging setup)
    """

    async def __call__(self, event: str, data: dict) -> None:
        line = json.dumps({"event": event, "ts": _now(), **{k: _compact(v) for k, v in data.items()}})
        if event == ERROR:
            logger.error(line)
        else:
            logger.info(line)

from __future__ import annotations

import json
import logging
import traceback
from datetime import datetime, timezone

from .context import get_log_context


class JSONFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, the bound task
    context, ``extra_fields`` and, when set, the emitting service (``api`` or ``worker``)."""

    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts_iso_utc": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if self.service:
            payload["service"] = self.service
        payload.update(get_log_context())

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            payload.update(extra_fields)

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            payload["exc_type"] = exc_type.__name__ if exc_type else "Exception"
            payload["exc_msg"] = str(exc_value) if exc_value else ""
            payload["stack"] = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))

        # pydantic models and enums end up in extra_fields
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)

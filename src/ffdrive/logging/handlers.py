"""JSON log formatting for ffdrive."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord carries; anything else came from extra={...}
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.NOTSET, "", 0, "", (), None).__dict__
) | {"message", "asctime", "run_id", "run_target", "run_tag"}


class JSONFormatter(logging.Formatter):
    """Render each record as one JSON object per line.

    Keys: ``time`` (ISO-8601 UTC), ``level``, ``logger``, ``message``,
    ``run`` (id and target of the ffmpeg run in progress, when the record
    was emitted inside run_context), ``fields`` (values passed through
    ``extra``) and ``exception``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Set by RunContextFilter; a caller's extra cannot override them
        run_id = getattr(record, "run_id", None)
        if run_id:
            entry["run"] = {"id": run_id, "target": getattr(record, "run_target", None)}

        fields = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if fields:
            entry["fields"] = fields

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)

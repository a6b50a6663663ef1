from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from typing import Any

from pythonjsonlogger import jsonlogger


class RelayJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with an ISO-8601 UTC `ts` and the level name."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        if not log_record.get("ts"):
            log_record["ts"] = datetime.now(UTC).isoformat(timespec="milliseconds")
        log_record["level"] = record.levelname


def setup_logging(log_level: str = "INFO") -> None:
    """
    Send all logs to stdout as JSON lines.

    Uvicorn's loggers are pointed at the same handler so the output stays uniform.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(RelayJsonFormatter("%(ts)s %(level)s %(name)s %(message)s"))

    root = logging.getLogger()
    root.setLevel(log_level.upper())
    root.handlers = [handler]

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = [handler]
        uvicorn_logger.propagate = False

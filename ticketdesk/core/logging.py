# ticketdesk/core/logging.py
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import Request
from pythonjsonlogger.json import JsonFormatter

logger = logging.getLogger("ticketdesk.requests")


class CustomJsonFormatter(JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        if log_record.get("level"):
            log_record["level"] = log_record["level"].upper()
        else:
            log_record["level"] = record.levelname


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    # Re-importing the app (tests) must not stack handlers
    if not any(isinstance(h.formatter, CustomJsonFormatter) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(CustomJsonFormatter("%(timestamp) %(level) %(name) %(message)"))
        root.addHandler(handler)
    root.setLevel(level.upper())

    # Suppress verbose logs from some libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


async def log_requests(request: Request, call_next):
    """HTTP middleware: one log line per request, with the caller's Origin."""
    start = time.perf_counter()
    response = await call_next(request)
    logger.info(
        f"{request.method} {request.url.path}",
        extra={
            "method": request.method,
            "path": request.url.path,
            "origin": request.headers.get("origin"),
            "status_code": response.status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
        },
    )
    return response

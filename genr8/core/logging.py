"""
Structured JSON logging for the API, workers and scripts.

Log calls pass domain context through ``extra``; only the whitelisted fields
below end up in the line, so secrets passed by accident stay out of the logs.
"""
import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from genr8.core.config import settings

SERVICE_NAME = "genr8"

CONTEXT_FIELDS = (
    # http
    "request_id", "path", "method", "status_code", "url",
    # generation
    "task_id", "generation_id", "model", "state",
    # payments and refunds
    "signature", "user_wallet", "amount_usd", "payment_method", "refund_id", "reason",
    # buybacks
    "claim_id", "contribution_count", "total_usd", "total_native", "tx_signature",
    # breakers
    "breaker_name", "old_state", "new_state",
    "count", "error",
)

# Libraries that log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name))
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(level: str | None = None) -> None:
    """Replace root handlers with JSON output to stderr and, if LOG_FILE is set, a rotating file."""
    formatter = JsonFormatter()
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(
            RotatingFileHandler(
                settings.log_file,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())
    root.handlers = handlers
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

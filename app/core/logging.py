import json
import logging
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from datetime import datetime, timezone

from app.core.config import settings


# Set per HTTP request by the middleware in app.main; asyncio.to_thread copies it into worker threads.
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


class JsonFormatter(logging.Formatter):
    """JSON log formatter: one object per line, whitelisted extra fields, request id from context."""

    EXTRA_FIELDS = (
        "user_id", "course_id", "unit_id", "version_number", "request_id",
        "path", "method", "status_code", "latency_ms", "stage", "lock_reason",
        "url_status", "event_id", "certificate_id", "storage_key", "error",
        "breaker_name", "old_state", "new_state", "units_total", "units_accessible",
    )

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = request_id_var.get()
        if request_id:
            payload["request_id"] = request_id

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> None:
    formatter = JsonFormatter()
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())
    handlers: list[logging.Handler] = [handler]
    if settings.log_file:
        file_handler = RotatingFileHandler(
            settings.log_file,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
    root.handlers = handlers
    # http_request in app.main replaces uvicorn's access log
    logging.getLogger("uvicorn.access").propagate = False

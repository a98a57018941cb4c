import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import UTC, datetime

from fieldops.settings import env_flag

# Exposed so other modules can set/request ids
req_id_var: ContextVar[str] = ContextVar("req_id", default="-")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "req_id": getattr(record, "req_id", req_id_var.get()),
            "level": record.levelname,
            "component": record.name,
            "msg": record.getMessage(),
        }
        env = os.getenv("ENV", "").strip()
        if env:
            payload["env"] = env
        version = os.getenv("APP_VERSION") or os.getenv("GIT_TAG") or ""
        if version:
            payload["version"] = version
        if hasattr(record, "meta"):
            payload["meta"] = record.meta
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        try:
            return json.dumps(payload, ensure_ascii=False, default=str)
        except Exception:
            # Fallback to plain message if payload has unserialisable types
            return payload.get("msg", "")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # Propagate request id from context-var into every log line
        record.req_id = req_id_var.get()
        return True


class HealthCheckFilter(logging.Filter):
    """Filter to mute health check access logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        path = getattr(record, "path", None)
        if path:
            return not (path == "/health" or path.startswith("/api/health"))
        msg = record.getMessage()
        if "GET /health " in msg or "GET /api/health " in msg:
            return False
        return True


def configure_logging() -> None:
    """
    Call once at app startup.
    LOG_LEVEL env var controls verbosity (default INFO).
    LOG_TO_STDOUT / DEBUG_MODE switch to plain-text lines on stdout;
    otherwise JSON lines go to stderr for log aggregation.
    """
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    plain_stdout = env_flag("LOG_TO_STDOUT") or env_flag("DEBUG_MODE")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level, logging.INFO))

    # Clear existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if plain_stdout:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - [%(req_id)s] %(message)s"
            )
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JsonFormatter())

    # Handler-level filters run for records from every logger
    handler.addFilter(RequestIdFilter())
    root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter())

    # Reduce third-party verbosity unless LOG_LEVEL is DEBUG
    if level != "DEBUG":
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s, stdout=%s", level, plain_stdout
    )

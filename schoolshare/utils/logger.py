"""
Logging setup for production.

Principles:
- INFO: business events (share created, share revoked, photos tagged)
- WARNING: client errors (bad password, expired link, unknown token)
- ERROR: system errors, external service failures
- No personal data (email, password, token values are never put in the JSON context)

Outputs:
- stdout: human-readable text (journald)
- {log_dir}/*.log: NDJSON for log collectors

Tracing:
- Request ID: per-request identifier kept in a context variable
- Instance IP: identifies the source in multi-instance deployments
"""
import contextvars
import json
import logging
import socket
import sys
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from schoolshare.config import get_settings

settings = get_settings()

# Fields never written to the JSON context
_SENSITIVE_FIELDS = frozenset({"email", "contact_email", "username", "password", "token", "secret"})

# Request ID for the current request (async-safe)
request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)

_app_logger = logging.getLogger("schoolshare")


def _get_instance_ip() -> str:
    """INSTANCE_IP setting, else the address the hostname resolves to."""
    ip = (settings.instance_ip or "").strip()
    if ip:
        return ip
    hostname = socket.gethostname()
    try:
        return socket.gethostbyname(hostname)
    except OSError:
        return hostname


INSTANCE_IP = _get_instance_ip()


def generate_request_id() -> str:
    """Short, readable request id."""
    return uuid.uuid4().hex[:12]


def get_request_id() -> Optional[str]:
    """Current request id."""
    return request_id_var.get()


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set the request id, generating one when None."""
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


class FlushingRotatingFileHandler(RotatingFileHandler):
    """Flushes after every record so collectors tailing the file see it at once."""

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        self.flush()


# Standard LogRecord attributes (not copied into ctx)
_STANDARD_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "pathname", "process", "processName", "relativeCreated",
        "stack_info", "exc_info", "exc_text", "thread", "threadName",
        "message", "asctime", "taskName",
    }
)


class JsonLinesFormatter(logging.Formatter):
    """
    NDJSON formatter.

    Fields:
    - ts: UTC timestamp
    - level: log level
    - instance: instance IP
    - rid: request id
    - event: event type (lifecycle, request, auth, share, access, tagging, db)
    - msg: message
    - ctx: extra context (sensitive fields dropped)
    - exc: exception info
    """

    def format(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        msecs = int(record.msecs) % 1000
        payload = {
            "ts": dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{msecs:03d}Z",
            "level": record.levelname,
            "instance": INSTANCE_IP,
        }

        rid = get_request_id()
        if rid:
            payload["rid"] = rid

        if getattr(record, "event", None):
            payload["event"] = record.event

        payload["msg"] = record.getMessage()

        skip = _STANDARD_ATTRS | {"event", "instance"}
        extra_ctx = {
            k: v for k, v in record.__dict__.items()
            if k not in skip
            and k not in _SENSITIVE_FIELDS
            and v is not None
        }
        if extra_ctx:
            payload["ctx"] = extra_ctx

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging() -> None:
    """
    Configure logging.

    - stdout: text format
    - stderr: ERROR and above
    - {log_dir}/app.log: INFO and above as NDJSON
    - {log_dir}/error.log: ERROR and above as NDJSON
    - noisy third-party loggers raised to WARNING
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    root_logger.handlers.clear()

    text_formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(logging.INFO)
    stdout_handler.setFormatter(text_formatter)
    root_logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.ERROR)
    stderr_handler.setFormatter(text_formatter)
    root_logger.addHandler(stderr_handler)

    json_formatter = JsonLinesFormatter()
    log_dir = Path(settings.log_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = FlushingRotatingFileHandler(
            log_dir / "app.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(json_formatter)
        root_logger.addHandler(file_handler)

        error_handler = FlushingRotatingFileHandler(
            log_dir / "error.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(json_formatter)
        root_logger.addHandler(error_handler)
    except OSError as e:
        root_logger.warning("File logging disabled: %s", e)

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error", "httpx", "httpcore", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)

    # slow queries are logged separately by schoolshare.db
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


def _log(level: int, message: str, exc_info: bool = False, **fields: Any) -> None:
    _app_logger.log(level, message, exc_info=exc_info, extra=fields)


def log_info(message: str, **fields: Any) -> None:
    _log(logging.INFO, message, **fields)


def log_warning(message: str, **fields: Any) -> None:
    _log(logging.WARNING, message, **fields)


def log_error(message: str, exc_info: bool = False, **fields: Any) -> None:
    _log(logging.ERROR, message, exc_info=exc_info, **fields)

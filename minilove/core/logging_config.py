"""Logging configuration.

Console output (optionally colored) plus optional rotating files. Every record is
enriched with the request id, user id and client IP bound by the logging middleware.
"""

import logging
import logging.handlers
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import orjson

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_ctx: ContextVar[Optional[int]] = ContextVar("user_id", default=None)
ip_ctx: ContextVar[Optional[str]] = ContextVar("ip_address", default=None)

_CONTEXT_VARS = {
    "request_id": request_id_ctx,
    "user_id": user_id_ctx,
    "ip_address": ip_ctx,
}
_EXTRA_FIELDS = (
    "request_id",
    "user_id",
    "ip_address",
    "method",
    "endpoint",
    "status_code",
    "duration",
)
PLAIN_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JSONFormatter(logging.Formatter):
    """One JSON object per line for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return orjson.dumps(log_data, default=str).decode("utf-8")


class ColoredFormatter(logging.Formatter):
    """Colorize the level name on console output."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class ContextEnricher(logging.Filter):
    """Copy bound contextvars onto each record unless the caller passed them in `extra`."""

    def filter(self, record: logging.LogRecord) -> bool:
        for attr, var in _CONTEXT_VARS.items():
            value = var.get()
            if value is not None and not hasattr(record, attr):
                setattr(record, attr, value)
        return True


def bind_request_context(
    *,
    request_id: Optional[str] = None,
    user_id: Optional[int] = None,
    ip_address: Optional[str] = None,
):
    """Bind request context into contextvars; returns tokens for reset."""
    values = {"request_id": request_id, "user_id": user_id, "ip_address": ip_address}
    return [
        (key, _CONTEXT_VARS[key].set(value))
        for key, value in values.items()
        if value is not None
    ]


def reset_request_context(tokens) -> None:
    for key, token in reversed(tokens):
        _CONTEXT_VARS[key].reset(token)


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter, max_bytes: int, backup_count: int):
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _reset_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        try:
            handler.flush()
        finally:
            handler.close()
            logger.removeHandler(handler)


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    app_name: str = "minilove",
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    use_json: bool = False,
    use_colors: bool = True,
) -> None:
    """Configure root logging.

    Args:
        log_level: Minimum logging level name.
        log_dir: Directory for `<app_name>.log`, `<app_name>_error.log` and
            `<app_name>_access.log`; console only when None.
        app_name: Prefix for log file names.
        max_bytes: Size at which a file rotates.
        backup_count: Rotated files kept per log.
        use_json: JSON lines for file handlers.
        use_colors: ANSI colors on the console.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    context_filter = ContextEnricher()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    _reset_handlers(root_logger)
    if not any(isinstance(f, ContextEnricher) for f in root_logger.filters):
        root_logger.addFilter(context_filter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    formatter_cls = ColoredFormatter if use_colors else logging.Formatter
    console_handler.setFormatter(formatter_cls(PLAIN_FORMAT, datefmt=DATE_FORMAT))
    console_handler.addFilter(context_filter)
    root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_formatter = (
            JSONFormatter()
            if use_json
            else logging.Formatter(PLAIN_FORMAT, datefmt=DATE_FORMAT)
        )

        for suffix, file_level in (("", logging.DEBUG), ("_error", logging.ERROR)):
            handler = _rotating_handler(
                log_path / f"{app_name}{suffix}.log",
                file_level,
                file_formatter,
                max_bytes,
                backup_count,
            )
            handler.addFilter(context_filter)
            root_logger.addHandler(handler)

        access_formatter = (
            JSONFormatter()
            if use_json
            else logging.Formatter(
                "%(asctime)s | %(method)s %(endpoint)s | %(status_code)s | %(duration)sms",
                datefmt=DATE_FORMAT,
            )
        )
        access_logger = logging.getLogger("access")
        _reset_handlers(access_logger)
        access_logger.addHandler(
            _rotating_handler(
                log_path / f"{app_name}_access.log",
                logging.INFO,
                access_formatter,
                max_bytes,
                backup_count,
            )
        )
        access_logger.addFilter(context_filter)
        access_logger.setLevel(logging.INFO)

    for noisy in ("urllib3", "asyncio", "multipart", "passlib"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured. Level: %s, Directory: %s", log_level, log_dir or "console only"
    )


def log_request(
    method: str,
    endpoint: str,
    status_code: int,
    duration_ms: float,
    ip_address: Optional[str],
    user_id: Optional[int] = None,
    request_id: Optional[str] = None,
) -> None:
    """Write one access-log line for a finished HTTP request."""
    extra = {
        "method": method,
        "endpoint": endpoint,
        "status_code": status_code,
        "duration": f"{duration_ms:.2f}",
        "ip_address": ip_address or "unknown",
    }
    if user_id:
        extra["user_id"] = user_id
    if request_id:
        extra["request_id"] = request_id

    logging.getLogger("access").info(
        "%s %s - %s - %.2fms", method, endpoint, status_code, duration_ms, extra=extra
    )

"""
Structured logging on the standard library.

    logger = get_logger(__name__)
    logger.info("Order placed", order_id=12, total="19.00")

Keyword arguments travel on the record as `extra_data`. Production writes one
JSON object per line; development writes a coloured single line. Both show the
correlation id and the store mode (see shared.infrastructure.correlation).
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings


def _context(record: logging.LogRecord) -> dict[str, str]:
    """Correlation fields that are actually set on the record."""
    context = {}
    for attr, key in (("request_id", "request_id"), ("store_mode", "mode")):
        value = getattr(record, attr, None)
        if value and value != "-":
            context[key] = value
    return context


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if getattr(record, "extra_data", None):
            entry["data"] = record.extra_data
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if settings.debug:
            entry["source"] = f"{record.filename}:{record.lineno}"
        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """`12:00:01 INFO     [ab12cd34 sql] rest_api.orders: Order placed (order_id=5)`"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        context = _context(record)
        tags = " ".join(
            filter(None, [context.get("request_id", "")[:8], context.get("mode", "")])
        )
        prefix = f"{self.DIM}[{tags}]{self.RESET} " if tags else ""

        line = (
            f"{color}{datetime.now():%H:%M:%S} {record.levelname:8}{self.RESET} "
            f"{prefix}{record.name}: {record.getMessage()}"
        )
        data = getattr(record, "extra_data", None)
        if data:
            line += " (" + ", ".join(f"{k}={v}" for k, v in data.items()) + ")"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger(logging.Logger):
    """Logger whose level methods accept keyword context."""

    def _log_with_data(
        self,
        level: int,
        msg: str,
        args: tuple,
        exc_info: Any = None,
        extra: dict | None = None,
        **kwargs: Any,
    ) -> None:
        if not self.isEnabledFor(level):
            return
        extra = dict(extra or {})
        extra["extra_data"] = kwargs or None
        super()._log(level, msg, args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.DEBUG, msg, args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.INFO, msg, args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.WARNING, msg, args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.ERROR, msg, args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.CRITICAL, msg, args, **kwargs)


logging.setLoggerClass(StructuredLogger)


def setup_logging() -> None:
    """Install the stdout handler once per process (app lifespan, CLI commands)."""
    from shared.infrastructure.correlation import CorrelationIdFilter

    level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(
        StructuredFormatter() if settings.environment == "production" else DevelopmentFormatter()
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Driver chatter stays at warning even in debug
    for name in ("pymongo", "sqlalchemy.engine", "httpx", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    return logging.getLogger(name)  # type: ignore


def mask_email(email: str | None) -> str:
    """"customer1@example.com" -> "cu***@example.com"."""
    if not email or "@" not in email:
        return "<no-email>"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


# Per-area loggers
rest_api_logger = get_logger("rest_api")
orders_logger = get_logger("rest_api.orders")
delivery_logger = get_logger("rest_api.delivery")
reports_logger = get_logger("rest_api.reports")
migration_logger = get_logger("rest_api.migration")
import_logger = get_logger("rest_api.import")

"""
Centralized Logging Configuration

JSON log lines in production, coloured human-readable lines otherwise.
Engine modules log through ``logging.getLogger(__name__)`` and inherit the
handler installed here.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from flask import Flask, has_request_context, request


class JsonFormatter(logging.Formatter):
    """
    JSON formatter for structured logging in production.

    One JSON object per line so log aggregators can index the fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if has_request_context():
            log_data["request"] = {
                "method": request.method,
                "path": request.path,
                "remote_addr": request.remote_addr,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_data["extra"] = record.extra_data

        # Source location for errors
        if record.levelno >= logging.ERROR:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Human-readable formatter with level colours for development."""

    COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "CRITICAL": "\033[35m",   # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S")

        log_parts = [
            f"{color}{record.levelname:8s}{self.RESET}",
            timestamp,
            f"{record.name:28s}",
            record.getMessage(),
        ]
        if has_request_context():
            log_parts.append(f"[{request.method} {request.path}]")

        message = " | ".join(log_parts)
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def configure_logging(app: Flask) -> None:
    """
    Configure the root logger for the application.

    Reads ``FLASK_ENV`` and ``LOG_LEVEL`` from ``app.config``:
    - JSON logging for production
    - Coloured logging otherwise
    - werkzeug quietened to WARNING
    """
    env = app.config.get("FLASK_ENV", "development")
    log_level_str = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(JsonFormatter() if env == "production" else ColoredFormatter())
    root_logger.addHandler(console_handler)

    app.logger.setLevel(log_level)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    app.logger.info(f"Logging configured - Environment: {env}, Level: {log_level_str}")


class LoggerAdapter(logging.LoggerAdapter):
    """Attaches fixed context (e.g. request id) as ``extra_data`` on every record."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs.setdefault("extra", {})
        if self.extra:
            kwargs["extra"]["extra_data"] = self.extra
        return msg, kwargs


def create_logger_with_context(name: str, **context) -> LoggerAdapter:
    """
    Logger adapter carrying ``context`` on every message.

    Example:
        logger = create_logger_with_context(__name__, endpoint="analysis")
        logger.info("Processing request")
    """
    return LoggerAdapter(logging.getLogger(name), context)

"""
Structured logging configuration for the Case Ledger.

This module provides the logging setup shared by the HTTP layer, the ledger
services and the maintenance scripts:
- JSON formatted logs for production
- Human-readable, coloured logs for development
- Request correlation IDs and the acting principal on every record
- Rotating log files (disabled when LOG_FILE is empty)
"""

import json
import logging
import logging.handlers
import os
import sys
import uuid
from datetime import datetime
from logging import Logger
from typing import Any, Dict, Optional

from flask import Flask, g, has_request_context, request

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
}


class RequestContextFilter(logging.Filter):
    """Add request context information to log records."""

    def filter(self, record):
        if has_request_context():
            record.correlation_id = getattr(g, "correlation_id", "no-request")
            record.principal_id = getattr(g, "principal_id", None) or "anonymous"
            record.request_method = getattr(request, "method", "UNKNOWN")
            record.request_path = getattr(request, "path", "unknown")
            record.remote_addr = getattr(request, "remote_addr", "unknown")
        else:
            record.correlation_id = "no-request"
            record.principal_id = "system"
            record.request_method = "SYSTEM"
            record.request_path = "system"
            record.remote_addr = "system"

        return True


class CustomJSONFormatter(logging.Formatter):
    """JSON formatter that keeps ``extra`` fields as top-level keys."""

    def format(self, record):
        log_record = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname.upper(),
            "name": record.name,
            "message": record.getMessage(),
            "service": "case-ledger",
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_record:
                log_record[key] = value

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


class ColoredFormatter(logging.Formatter):
    """Colored formatter for development console output."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def format(self, record):
        level_color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset_color = self.COLORS["RESET"]

        formatted = super().format(record)
        return formatted.replace(record.levelname, f"{level_color}{record.levelname}{reset_color}", 1)


class StructuredLogger:
    """Main structured logger class."""

    def __init__(self, name: str = "case_ledger"):
        self.name = name
        self.logger: Optional[Logger] = None
        self._configured = False

    def configure(self, app: Optional[Flask] = None, **kwargs):
        """Configure the structured logger.

        Settings come from the Flask app config when an app is given,
        otherwise from keyword arguments falling back to the environment.
        Calling it again after a successful configuration is a no-op unless
        ``force=True`` is passed.
        """
        if self._configured and not kwargs.get("force"):
            return self.logger

        if app:
            log_level = app.config.get("LOG_LEVEL", "INFO")
            log_format = app.config.get("LOG_FORMAT", "development")
            log_file = app.config.get("LOG_FILE", "logs/app.log")
            max_bytes = app.config.get("LOG_MAX_BYTES", 10 * 1024 * 1024)
            backup_count = app.config.get("LOG_BACKUP_COUNT", 5)
            enable_console = app.config.get("LOG_ENABLE_CONSOLE", True)
        else:
            log_level = kwargs.get("log_level", os.getenv("LOG_LEVEL", "INFO"))
            log_format = kwargs.get("log_format", os.getenv("LOG_FORMAT", "development"))
            log_file = kwargs.get("log_file", os.getenv("LOG_FILE", "logs/app.log"))
            max_bytes = kwargs.get("max_bytes", int(os.getenv("LOG_MAX_BYTES", "10485760")))
            backup_count = kwargs.get("backup_count", int(os.getenv("LOG_BACKUP_COUNT", "5")))
            enable_console = kwargs.get("enable_console", os.getenv("LOG_ENABLE_CONSOLE", "true").lower() == "true")

        self.logger = logging.getLogger(self.name)
        self.logger.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))
        self.logger.handlers.clear()

        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir, exist_ok=True)

        context_filter = RequestContextFilter()

        if str(log_format).lower() == "json":
            formatter = CustomJSONFormatter()
            console_formatter: logging.Formatter = formatter
        else:
            dev_format = (
                "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d "
                "[%(correlation_id)s] %(principal_id)s %(request_method)s %(request_path)s - %(message)s"
            )
            formatter = logging.Formatter(dev_format)
            console_formatter = ColoredFormatter(dev_format)

        if log_file:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=max_bytes, backupCount=backup_count
            )
            file_handler.setFormatter(formatter)
            file_handler.addFilter(context_filter)
            self.logger.addHandler(file_handler)

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(console_formatter)
            console_handler.addFilter(context_filter)
            self.logger.addHandler(console_handler)

        if not self.logger.handlers:
            self.logger.addHandler(logging.NullHandler())

        self._configured = True

        self.logger.info(
            "Structured logging configured successfully",
            extra={
                "log_level": log_level,
                "log_format": log_format,
                "log_file": log_file or None,
                "enable_console": enable_console,
            },
        )

        return self.logger

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        """Get a logger instance."""
        if not self._configured:
            raise RuntimeError("Logger not configured. Call configure() first.")

        if name:
            return logging.getLogger(f"{self.name}.{name}")

        if self.logger is None:
            raise RuntimeError("Logger not properly initialized.")
        return self.logger


# Global logger instance
structured_logger = StructuredLogger()


def setup_flask_logging(app: Flask):
    """Set up Flask application logging with request correlation."""

    logger = structured_logger.configure(app, force=True)

    app.logger.handlers.clear()
    for handler in logger.handlers:
        app.logger.addHandler(handler)
    app.logger.setLevel(logger.level)

    @app.before_request
    def before_request():
        g.correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())[:8]
        g.request_start_time = datetime.utcnow()

        logger.debug(
            "Request started",
            extra={
                "event": "request_start",
                "method": request.method,
                "path": request.path,
                "content_length": request.content_length,
            },
        )

    @app.after_request
    def after_request(response):
        start = getattr(g, "request_start_time", None)
        duration = (datetime.utcnow() - start).total_seconds() * 1000 if start else 0.0

        logger.info(
            "Request completed",
            extra={
                "event": "request_end",
                "status_code": response.status_code,
                "duration_ms": round(duration, 2),
            },
        )

        response.headers["X-Correlation-ID"] = getattr(g, "correlation_id", "no-request")
        return response


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance."""
    # Auto-configure with defaults if not already configured
    if not structured_logger._configured:
        structured_logger.configure()
    return structured_logger.get_logger(name)


def log_store_operation(operation: str, key: Optional[str] = None, **kwargs):
    """Helper function to log persistent store operations."""
    get_logger("store").debug(
        f"Store operation: {operation}",
        extra={"event": "store_operation", "operation": operation, "key": key, **kwargs},
    )


def log_security_event(event_type: str, details: Dict[str, Any]):
    """Helper function to log security events."""
    get_logger("security").warning(
        f"Security event: {event_type}", extra={"event": "security_event", "event_type": event_type, **details}
    )


def log_performance_metric(metric_name: str, value: float, unit: str = "ms", **kwargs):
    """Helper function to log performance metrics."""
    get_logger("performance").info(
        f"Performance metric: {metric_name}",
        extra={"event": "performance_metric", "metric_name": metric_name, "value": value, "unit": unit, **kwargs},
    )


def log_business_event(event_type: str, entity_type: Optional[str] = None, entity_id: Optional[str] = None, **kwargs):
    """Helper function to log business events."""
    get_logger("business").info(
        f"Business event: {event_type}",
        extra={
            "event": "business_event",
            "event_type": event_type,
            "entity_type": entity_type,
            "entity_id": entity_id,
            **kwargs,
        },
    )

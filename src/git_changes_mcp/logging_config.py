"""Structured logging configuration for Git Changes MCP Server.

This module provides optional JSON log output, request ID tracking across a
tool call, and a helper for logging individual git invocations.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


# Context variable for request ID tracking
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Standard LogRecord attributes that are not copied into JSON output
_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Each record becomes one JSON object with timestamp, level, logger,
    message, the current request ID (if any) and every ``extra`` field.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as one JSON object.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log line
        """
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            log_entry["request_id"] = request_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class RequestIDFilter(logging.Filter):
    """Filter that adds the context request ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Attach the current request ID to the record.

        Args:
            record: Log record to annotate

        Returns:
            Always True; no record is dropped
        """
        request_id = request_id_var.get()
        if request_id:
            record.request_id = request_id
        return True


def setup_logging(
    log_level: str = "INFO",
    use_json: bool = False,
    log_file: Optional[str] = None,
    stream: str = "stderr"
) -> None:
    """Configure logging for the application.

    In stdio mode stdout carries the MCP protocol, so console logs must go to
    stderr.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_json: If True, use JSON formatter; otherwise use standard format
        log_file: Optional file path for logging output
        stream: Console stream name, "stderr" or "stdout"
    """
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(
        sys.stdout if stream == "stdout" else sys.stderr
    )
    console_handler.setLevel(level)

    if use_json:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    console_handler.setFormatter(formatter)
    console_handler.addFilter(RequestIDFilter())
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(RequestIDFilter())
        root_logger.addHandler(file_handler)


def generate_request_id() -> str:
    """Generate a unique request ID.

    Returns:
        UUID-based request ID string
    """
    return str(uuid.uuid4())


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set request ID in context.

    Args:
        request_id: Request ID to set, or None to generate a new one

    Returns:
        The request ID that was set
    """
    if request_id is None:
        request_id = generate_request_id()
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> Optional[str]:
    """Get the request ID bound to the current context.

    Returns:
        Current request ID, or None outside a tool call
    """
    return request_id_var.get()


def clear_request_id() -> None:
    """Clear the request ID from the current context."""
    request_id_var.set(None)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a component.

    Args:
        name: Logger name, usually the module name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


# Git invocation logger
git_logger = get_logger("git_changes_mcp.git")


def log_git_operation(
    operation: str,
    repository: str,
    success: bool,
    duration: float,
    details: Optional[Dict[str, Any]] = None,
    error: Optional[str] = None
) -> None:
    """Log a git invocation with structured data.

    Args:
        operation: Logical step (status, diff, stage, commit, push)
        repository: Repository working directory
        success: Whether the invocation succeeded
        duration: Invocation duration in seconds
        details: Additional fields to attach
        error: Error message if the invocation failed
    """
    log_data = {
        "operation": operation,
        "repository": repository,
        "success": success,
        "duration_seconds": round(duration, 3),
    }

    if details:
        log_data.update(details)

    if error:
        log_data["error"] = error

    if success:
        git_logger.info(f"Git operation completed: {operation}", extra=log_data)
    else:
        git_logger.error(f"Git operation failed: {operation}", extra=log_data)

"""
Logging configuration for Courier.

Provides centralized structured logging setup with JSON output for production
and human-readable output for development. Supports correlation IDs so every
log line of one dispatched request can be traced together.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from structlog.types import EventDict


# Context variable for correlation ID
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Third-party loggers that log every HTTP exchange at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


def add_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Attach the request's correlation ID, when one is bound."""
    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def new_correlation_id() -> str:
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Bind a correlation ID to the current context.

    Tasks created afterwards copy the context, so a dispatched call keeps
    the ID of the code that dispatched it.

    Args:
        correlation_id: Optional correlation ID. If None, generates a new UUID.

    Returns:
        The correlation ID that was set
    """
    correlation_id = correlation_id or new_correlation_id()
    correlation_id_var.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    correlation_id_var.set(None)


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    json_format: bool = True,
) -> None:
    """
    Configure structured logging for Courier.

    HTTP client libraries are held at WARNING unless ``level`` is DEBUG;
    the dispatcher already logs each call.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to log file. If None, logs only to stderr.
        json_format: If True, use JSON format. If False, use human-readable format.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file)
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    # Reconfiguring (e.g. from the CLI) must not duplicate output
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
        existing.close()
    root_logger.addHandler(handler)

    library_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    processors: list = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_correlation_id,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger, namespaced under ``courier``.

    Args:
        name: Logger name (typically __name__ of the module).
    """
    if not name.startswith("courier"):
        name = f"courier.{name}"
    return structlog.get_logger(name)


# Convenience functions for common logging patterns

def log_request_dispatched(
    logger: structlog.stdlib.BoundLogger,
    url: str,
    method: str,
    server_name: str,
    **kwargs: Any,
) -> None:
    """
    Log a request handed to the transport.

    Args:
        logger: Logger instance
        url: Full request URL
        method: HTTP method
        server_name: Declared server identity of the target
        **kwargs: Additional context to log
    """
    log_data: Dict[str, Any] = {
        "event_type": "request_dispatched",
        "url": url,
        "method": method,
        "server_name": server_name,
    }

    log_data.update(kwargs)

    logger.info("request_dispatched", **log_data)


def log_transport_failure(
    logger: structlog.stdlib.BoundLogger,
    url: str,
    kind: str,
    error_code: str,
    status_code: Optional[int] = None,
    **kwargs: Any,
) -> None:
    """
    Log a failed transport call.

    Args:
        logger: Logger instance
        url: Full request URL
        kind: Transport failure kind (status, network, timeout, cancelled, ...)
        error_code: Classified machine-readable error code (may be empty)
        status_code: HTTP status code if the server answered
        **kwargs: Additional context to log
    """
    log_data: Dict[str, Any] = {
        "event_type": "transport_failure",
        "url": url,
        "kind": kind,
        "error_code": error_code,
    }

    if status_code is not None:
        log_data["status_code"] = status_code

    log_data.update(kwargs)

    # Cancellations are expected after bulk cancel; keep them out of error dashboards
    if kind == "cancelled":
        logger.info("transport_failure", **log_data)
    else:
        logger.error("transport_failure", **log_data)


def log_authentication_failure(
    logger: structlog.stdlib.BoundLogger,
    url: str,
    error_code: str,
    cancelled_tasks: int,
    **kwargs: Any,
) -> None:
    """
    Log an authentication failure that invalidated the session.

    Args:
        logger: Logger instance
        url: URL of the call that reported the failure
        error_code: Authentication failure code returned by the server
        cancelled_tasks: Number of in-flight calls cancelled as a consequence
        **kwargs: Additional context to log
    """
    log_data: Dict[str, Any] = {
        "event_type": "authentication_failure",
        "url": url,
        "error_code": error_code,
        "cancelled_tasks": cancelled_tasks,
    }

    log_data.update(kwargs)

    logger.warning("authentication_failure", **log_data)

"""Structured logging configuration using structlog.

Usage:
    from rushr_messaging.logging_config import configure_logging, get_logger

    configure_logging()  # once at startup
    logger = get_logger(__name__)
    logger.info("message_appended", conversation_id=str(conversation_id))

Request-scoped values (request_id, user_id) are bound with
``bind_request_context`` and merged into every entry logged while the
request is being handled.
"""

import logging
import sys
from typing import Optional

import structlog

from rushr_messaging import config


def configure_logging(json_format: Optional[bool] = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        json_format: Force JSON (True) or console (False) output. Defaults
            to the LOG_FORMAT setting.
    """
    if json_format is None:
        json_format = config.LOG_FORMAT == "json"

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.INFO)

    # Silence noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger for the given module name."""
    return structlog.get_logger(name)


def bind_request_context(request_id: str, user_id: Optional[str] = None) -> None:
    """Bind request-scoped values for the current async context."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    if user_id:
        structlog.contextvars.bind_contextvars(user_id=user_id)


def clear_request_context() -> None:
    """Drop request-scoped values once the request is finished."""
    structlog.contextvars.clear_contextvars()

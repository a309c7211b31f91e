"""
Structured logging configuration using structlog.
Outputs JSON in production, pretty-printed in development.

Every record carries the service name and environment, plus the request
context bound by RequestLoggingMiddleware. Secrets (payment client secrets,
tokens, passwords, webhook signatures) are masked before rendering so
they never reach a log shipper.
"""

import logging
import sys
from typing import Any

import structlog

from app.core.config import get_settings

REDACTED = "[REDACTED]"

_SENSITIVE_KEYS = {
    "password",
    "hashed_password",
    "authorization",
    "client_secret",
    "stripe_signature",
    "card_number",
}

_SENSITIVE_SUFFIXES = ("_token", "_secret", "_api_key")


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return lowered in _SENSITIVE_KEYS or lowered.endswith(_SENSITIVE_SUFFIXES)


def redact_sensitive(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Mask sensitive values, one level into nested dicts."""
    for key, value in list(event_dict.items()):
        if _is_sensitive(key):
            event_dict[key] = REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {k: REDACTED if _is_sensitive(k) else v for k, v in value.items()}
    return event_dict


def add_service_context(logger: Any, method_name: str, event_dict: dict) -> dict:
    settings = get_settings()
    event_dict.setdefault("service", settings.APP_NAME)
    event_dict.setdefault("environment", settings.ENVIRONMENT)
    return event_dict


def setup_logging() -> None:
    settings = get_settings()

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_service_context,
        redact_sensitive,
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.is_production:
        # One JSON object per line; tracebacks folded into the record
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Records from stdlib loggers (uvicorn, alembic) go through the same chain
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name in ("uvicorn.access", "sqlalchemy.engine", "stripe"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)

"""
Structured logging with correlation IDs.

Every reservation or transition runs inside an ``operation_context`` so the
log lines it produces can be tied back together.
"""
import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

import structlog

# Operation correlation context
operation_id: ContextVar[str] = ContextVar('operation_id', default="")
operation_fields: ContextVar[Dict[str, Any]] = ContextVar('operation_fields', default={})


class TruncatingProcessor:
    """Processor to keep log values short."""

    def __init__(self, max_length: int = 200):
        self.max_length = max_length

    def __call__(self, logger, method_name, event_dict):
        for key in ('event', 'error', 'comments'):
            if key in event_dict and isinstance(event_dict[key], str):
                event_dict[key] = event_dict[key][:self.max_length]
        return event_dict


class CorrelationProcessor:
    """Add correlation ID and operation context to all logs."""

    def __call__(self, logger, method_name, event_dict):
        correlation_id = operation_id.get("")
        if correlation_id:
            event_dict['correlation_id'] = correlation_id

        context = operation_fields.get({})
        for key, value in context.items():
            event_dict.setdefault(key, value)

        return event_dict


def setup_logging(debug: bool = False, max_log_length: int = 200,
                  json: bool = True, level: Optional[str] = None):
    """Configure structured logging for the application."""

    processors = [
        structlog.stdlib.filter_by_level,
        CorrelationProcessor(),
        TruncatingProcessor(max_length=max_log_length),
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if debug or not json:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if level is None:
        level = "DEBUG" if debug else "INFO"

    # Configure standard library logging
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, format="%(message)s")
    # basicConfig is a no-op once handlers exist; the level must still apply
    logging.getLogger().setLevel(log_level)


def configure_from_settings(settings) -> None:
    """Apply LOG_* settings."""
    setup_logging(
        debug=settings.is_development,
        max_log_length=settings.MAX_LOG_LENGTH,
        json=settings.LOG_JSON,
        level=settings.LOG_LEVEL,
    )


def get_logger(name: str = __name__):
    """Get a structured logger instance."""
    return structlog.get_logger(name)


@contextmanager
def operation_context(name: str, correlation_id: Optional[str] = None,
                      **fields: Any) -> Iterator[str]:
    """
    Bind a correlation ID (and extra fields) for everything logged inside.

    Nested contexts keep the outer correlation ID and merge their fields.
    """
    outer_id = operation_id.get("")
    cid = correlation_id or outer_id or str(uuid.uuid4())[:8]
    id_token = operation_id.set(cid)
    fields_token = operation_fields.set({**operation_fields.get({}), "operation": name, **fields})
    try:
        yield cid
    finally:
        operation_fields.reset(fields_token)
        operation_id.reset(id_token)

"""
Structured logging setup.

Console rendering for local development, JSON lines in production. Keys that
look like credentials are redacted before rendering.
"""

import logging
import sys

import structlog
from structlog.stdlib import BoundLogger
from structlog.types import EventDict, Processor


REDACTED_FIELDS = {"password", "token", "access_token", "refresh_token", "secret", "private_key", "authorization"}


def redact_sensitive_fields(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Redact sensitive fields from logs."""
    for key in list(event_dict.keys()):
        if key in ("event", "level", "logger", "timestamp"):
            continue
        lowered = key.lower()
        if lowered in REDACTED_FIELDS or any(s in lowered for s in ("password", "token", "secret")):
            event_dict[key] = "***REDACTED***"
    return event_dict


def configure_structlog(log_format: str = "console") -> None:
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        redact_sensitive_fields,
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty(), pad_event_to=15, sort_keys=False)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_logging(level: str = "INFO", log_format: str = "console") -> None:
    """Configure stdlib logging and structlog. Called once by the app factory."""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=getattr(logging, level.upper(), logging.INFO))

    # pymongo and google clients are chatty at DEBUG
    for noisy in ("pymongo", "googleapiclient.discovery_cache", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    configure_structlog(log_format)
    structlog.get_logger(__name__).info("logging_initialized", log_level=level, log_format=log_format)


def get_logger(name: str) -> BoundLogger:
    """Return a structlog logger bound to `name`."""
    return structlog.get_logger(name)

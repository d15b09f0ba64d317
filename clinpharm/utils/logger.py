"""
Logging configuration for AI Clinical Pharmacist.

Uses structlog for structured JSON logging suitable for production.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import Processor

from clinpharm.config import settings


def configure_logging(
    log_level: Optional[str] = None,
    json_format: bool = True
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Override log level (defaults to settings.log_level)
        json_format: Whether to output JSON (True) or console format (False)
    """
    level = log_level or settings.log_level
    # Unknown level names fall back to INFO
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    # Context, level and timestamp on every event
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_format:
        # Deployed: one JSON object per line
        processors: list[Processor] = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ]
    else:
        # Local debugging: colored key=value lines
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True)
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Third-party libraries (httpx, google-genai) log through stdlib
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )

    # httpx logs each Gemini request line at INFO
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str = "clinpharm") -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name for identification

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


# Configured on import so module-level loggers work; main reconfigures at startup
configure_logging(
    log_level=settings.log_level,
    json_format=not settings.debug  # console output when DEBUG=true
)

# Package-wide default logger
logger = get_logger()

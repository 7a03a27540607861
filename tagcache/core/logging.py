"""
Structured Logging Setup

Configures structlog on top of stdlib logging so that structlog loggers
(services, monitoring) and stdlib loggers (infrastructure) share one
handler and one renderer.
"""

import logging
from typing import Any, List, Optional, Union

import structlog

from .config import Settings


def configure_logging(
    level: Union[int, str] = logging.INFO,
    json_logs: bool = False,
) -> None:
    """
    Configure structlog and the root stdlib logger.

    Args:
        level: Logging level name or number
        json_logs: Render JSON lines instead of the console renderer
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    shared_processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if json_logs:
        renderers: List[Any] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer()]

    formatter = structlog.stdlib.ProcessorFormatter(
        # Applied to records coming from plain logging.getLogger() loggers
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *renderers,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def configure_logging_from_settings(settings: Optional[Settings] = None) -> None:
    """Configure logging from LOG_LEVEL / LOG_JSON settings."""
    if settings is None:
        from .config import get_settings

        settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)

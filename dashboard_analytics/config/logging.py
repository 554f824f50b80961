"""
Logging Setup

structlog events and stdlib records (uvicorn, SQLAlchemy) share one stdout
handler, so the request id bound by the middleware shows up on every line a
dashboard request produces.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.stdlib import ProcessorFormatter

from dashboard_analytics.config.settings import get_settings

# Server loggers that install their own handlers unless stripped
ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

# Per-statement driver chatter, only wanted when the service runs at DEBUG
DRIVER_LOGGERS = ("sqlalchemy.engine", "aiosqlite")


def _renderer(log_format: str):
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(log_level: Optional[str] = None) -> logging.Handler:
    """
    Point structlog and the stdlib root logger at a single stdout handler.

    Args:
        log_level: Overrides LOG_LEVEL

    Returns:
        The installed handler
    """
    settings = get_settings()
    level_name = (log_level or settings.monitoring.log_level).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level_name, level = "INFO", logging.INFO

    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=pre_chain + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(
            processor=_renderer(settings.monitoring.log_format),
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in ROUTED_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = []
        server_logger.propagate = True
        server_logger.setLevel(level)

    driver_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in DRIVER_LOGGERS:
        logging.getLogger(name).setLevel(driver_level)

    structlog.get_logger(__name__).info(
        "Logging configured",
        service=settings.app_name,
        level=level_name,
        format=settings.monitoring.log_format,
    )
    return handler

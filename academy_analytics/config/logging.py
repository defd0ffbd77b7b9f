"""
Logging Configuration for the Academy Analytics Platform

structlog on top of the stdlib logging module. Every event carries the
service name, environment and version; requests additionally carry the
request id bound by the request logging middleware.

Debug mode forces DEBUG level and console rendering, which is where the
reader row counts and response cache hits/misses become visible.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import add_log_level, ProcessorFormatter
from structlog.types import EventDict, Processor

from academy_analytics.config.settings import Settings, get_settings

# Third-party loggers and the level they run at outside debug mode.
# Requests are already logged by the middleware, so the access log is muted.
_QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
}


def add_service_context(settings: Settings) -> Processor:
    """Processor stamping service, environment and version onto every event."""
    context = {
        "service": settings.app_name,
        "environment": settings.app_env,
        "version": settings.version,
    }

    def processor(logger, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return processor


def resolve_log_level(settings: Settings, override: Optional[str] = None) -> int:
    """Explicit override, then DEBUG in debug mode, then LOG_LEVEL."""
    if override:
        return getattr(logging, override.upper(), logging.INFO)
    if settings.debug:
        return logging.DEBUG
    return getattr(logging, settings.monitoring.log_level.upper(), logging.INFO)


def select_renderer(settings: Settings) -> Processor:
    if settings.debug or settings.monitoring.log_format == "text":
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return JSONRenderer()


def configure_logging(log_level: Optional[str] = None, settings: Optional[Settings] = None) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
        settings: Settings to configure from; the cached settings by default
    """
    settings = settings or get_settings()
    level = resolve_log_level(settings, log_level)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        add_service_context(settings),
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=shared_processors + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(processor=select_renderer(settings), foreign_pre_chain=shared_processors)
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    for name in ("uvicorn", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True

    for name, quiet_level in _QUIET_LOGGERS.items():
        # echo=True installs its own SQL logging
        if name == "sqlalchemy.engine" and settings.database.echo:
            continue
        logging.getLogger(name).setLevel(level if settings.debug else max(level, quiet_level))

    structlog.get_logger(__name__).info(
        "Logging configured",
        level=logging.getLevelName(level),
        format="console" if settings.debug else settings.monitoring.log_format,
    )

"""Structured logging via structlog on top of stdlib logging.

Per-request context (request_id) travels in structlog.contextvars. Driver
loggers (asyncpg, aiomysql, pymongo, sqlalchemy) go through the same
ProcessorFormatter so every line has one shape.
"""

import logging
import sys

import structlog

from inspector.core.config import settings

# Library loggers that are chatty at INFO
_QUIET_LOGGERS: dict[str, int] = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "pymongo": logging.WARNING,
    "asyncio": logging.WARNING,
}


def _renderer(json_logs: bool) -> structlog.types.Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """Install structlog as the logging backend. Call once at app startup.

    ``level`` and ``json_logs`` default to LOG_LEVEL and LOG_JSON; with
    LOG_JSON unset, JSON is used everywhere except APP_ENV=development.
    """
    if level is None:
        level = settings.log_level
    if json_logs is None:
        json_logs = settings.log_json
    if json_logs is None:
        json_logs = settings.app_env != "development"

    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_logs),
            ],
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

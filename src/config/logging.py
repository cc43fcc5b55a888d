"""
Structured logging configuration using structlog.

structlog events and plain stdlib records (uvicorn, httpx) share one
processor chain and one stdout handler, rendered for the console or as JSON
lines depending on ``log_format``.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from src.config.settings import Settings, get_settings

QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "uvicorn.access")


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Stamp every event with the application name, version and environment."""
    settings = get_settings()
    event_dict.setdefault("app", settings.app_name)
    event_dict.setdefault("version", settings.app_version)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def _renderers(settings: Settings) -> list[Processor]:
    use_json = settings.log_format == "json" or (
        settings.log_format == "auto" and settings.environment != "development"
    )
    if use_json:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging() -> None:
    """Route structlog through the stdlib root logger and set levels."""
    settings = get_settings()

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderers(settings),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_order_context(**values: Any) -> None:
    """Bind order/session identifiers to every event logged in this context."""
    structlog.contextvars.bind_contextvars(
        **{k: v for k, v in values.items() if v is not None}
    )


def clear_order_context() -> None:
    """Drop identifiers bound by bind_order_context."""
    structlog.contextvars.clear_contextvars()


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)

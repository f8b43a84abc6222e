"""
Structured logging for the indexer.

Every record goes through structlog and ends up on the stdlib root logger,
so library logs (uvicorn, aiohttp, SQLAlchemy) share the same handlers.
"""

import sys
import logging
from typing import List, Optional
from pathlib import Path

import structlog
from rich.console import Console
from rich.logging import RichHandler

from .config import settings


NOISY_LOGGERS = (
    "aiohttp.access",
    "aiohttp.client",
    "asyncio",
    "sqlalchemy.engine",
    "uvicorn.access",
)


def add_indexer_context(logger, method_name, event_dict):
    """Stamp every record with the processor and environment it came from."""
    event_dict.setdefault("processor", settings.indexer_processor_name)
    event_dict.setdefault("env", settings.environment)
    return event_dict


def _renderer():
    if settings.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=settings.is_development)


def _plain_formatter() -> logging.Formatter:
    if settings.log_format == "json":
        return logging.Formatter("%(message)s")
    return logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")


def _build_handlers(level: int, log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []

    if settings.is_development and settings.log_format != "json":
        console_handler: logging.Handler = RichHandler(
            console=Console(file=sys.stderr),
            show_path=False,
            rich_tracebacks=True,
        )
    else:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(_plain_formatter())
    handlers.append(console_handler)

    path = log_file or settings.log_file
    if path:
        file_path = Path(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(_plain_formatter())
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(level)
    return handlers


def setup_logging(log_file: Optional[str] = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Safe to call more than once; the CLI and the API factory both call it.

    Args:
        log_file: Extra file to mirror logs into, overrides ``LOG_FILE``
    """
    level = getattr(logging, settings.log_level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_indexer_context,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, handlers=_build_handlers(level, log_file), force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to ``name``."""
    return structlog.get_logger(name)

"""Structured logging for ensemble bring-up.

The library only creates loggers; it never configures logging on import.
Test suites that want bring-up events call ``setup_logging`` once.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import structlog

from zkensemble.config.settings import get_settings


def setup_logging(
    level: Optional[str] = None,
    component: Optional[str] = None,
    log_path: Optional[str | Path] = None,
    json: bool = True,
    **context: Any,
) -> structlog.BoundLogger:
    """Configure structlog on top of stdlib logging and return a bound logger.

    ``level`` defaults to the ``ZKENSEMBLE_LOG_LEVEL`` setting. With
    ``json=False`` events render for a terminal instead of as JSON lines.
    Extra keyword arguments are bound onto the returned logger.
    """
    level = level or get_settings().LOG_LEVEL

    if log_path:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path, encoding="utf-8")
    else:
        handler = logging.StreamHandler()

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(message)s",
        handlers=[handler],
        force=True,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="ISO"),
    ]
    if json:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger("zkensemble")
    if component:
        context["component"] = component
    return logger.bind(**context) if context else logger


def get_logger(name: str, **context: Any) -> structlog.BoundLogger:
    logger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger

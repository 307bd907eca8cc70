"""Structured logging configuration for the latency checker."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import structlog


def setup_logging(
    level: str = "WARNING",
    component: Optional[str] = None,
    log_path: Optional[str | Path] = None,
    json_output: bool = False,
) -> structlog.BoundLogger:
    """Configure structured logging and return a bound logger.

    Console output goes to stderr so the result table on stdout stays clean.
    """

    handlers: list[logging.Handler] = []
    if log_path:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
        json_output = True
    else:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(message)s",
        handlers=handlers,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="ISO"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger()
    if component:
        logger = logger.bind(component=component)
    return logger


def get_logger(name: str, component: Optional[str] = None) -> structlog.BoundLogger:
    # initial values keep the proxy lazy so setup_logging() still applies
    if component:
        return structlog.get_logger(name, component=component)
    return structlog.get_logger(name)

"""
Structured logging setup.

All modules log through structlog so that events carry key/value context:

    logger = get_logger(__name__)
    logger.info("board_created", video_id=video_id, threads=12)

`LOG_FORMAT=json` renders one JSON object per line (production);
`LOG_FORMAT=text` uses the coloured console renderer (local development).
"""

import logging
import sys

import structlog

from forumyzer.core.config import settings

_configured = False


def setup_logging() -> None:
    """Configure stdlib logging and structlog once per process."""
    global _configured

    if _configured:
        return

    level = logging.getLevelName(settings.LOG_LEVEL)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    if settings.LOG_FORMAT == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to a module name."""
    return structlog.get_logger(name)

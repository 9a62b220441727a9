"""
Structured logging setup.

All modules log through structlog with snake_case event names and
key/value context, e.g. logger.warning("load_failed", key=..., error=...).
The stdlib logging module is the sink, so host applications keep
control over handlers and levels.
"""

import logging
from typing import Optional

import structlog

from ledger_sync.config import get_settings


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure structlog and the stdlib root level.

    Args:
        level: Level name such as "DEBUG". Defaults to the
               configured app log level.
    """
    level_name = (level or get_settings().app.log_level).upper()
    logging.basicConfig(format="%(message)s", level=getattr(logging, level_name, logging.INFO))
    logging.getLogger().setLevel(getattr(logging, level_name, logging.INFO))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    return structlog.get_logger(name)

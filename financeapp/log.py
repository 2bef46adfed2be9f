"""
Structured Logging

Every component gets its logger from here so that structlog is configured
exactly once. Events are snake_case names with key/value context, e.g.:

    logger.warning("storage_write_failed", table="budgets", error=str(e))

In debug mode logs are rendered for the console, otherwise as JSON lines.
"""

import logging
from typing import Optional

import structlog


_configured = False


def configure_logging(debug: Optional[bool] = None) -> None:
    """
    Configure structlog for the whole application.

    Args:
        debug: Force console rendering on/off. When None, the value
               comes from AppSettings.debug_mode.
    """
    global _configured

    if debug is None:
        from financeapp.config import get_settings
        debug = get_settings().app.debug_mode

    renderer = (
        structlog.dev.ConsoleRenderer()
        if debug
        else structlog.processors.JSONRenderer()
    )

    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )

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
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: Optional[str] = None):
    """Get a bound structlog logger, configuring logging on first use."""
    if not _configured:
        configure_logging(debug=False)
    return structlog.get_logger(name)

"""
Logging configuration module for Memory Search MCP Server.

Configures structlog once at startup. Output goes to stderr because stdout
carries the MCP stdio transport.
"""

import logging
import sys

import structlog


def configure_logging(level: str | int = logging.INFO) -> None:
    """Configure structlog for the application.

    Args:
        level: Minimum level to emit, as a logging constant or a name such as "DEBUG"
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

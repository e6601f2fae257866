"""
Application logging configuration.

Structured JSON logging in production, human-readable console output in
development, both through structlog. Log records go to stderr so
management command reports on stdout stay clean.

Usage:
    from config.logging import configure_structlog, get_logging_config

    # Early in settings initialization
    configure_structlog(debug=True)

    # When defining LOGGING setting
    LOGGING = get_logging_config(debug=True)
"""

import sys
from typing import Any

import structlog


def configure_structlog(debug: bool = False) -> None:
    """
    Configure structlog for the application.

    Must be called early in settings initialization, before any logging occurs.

    Args:
        debug: If True, use pretty console output with colors.
               If False, use JSON output for log aggregation.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if debug:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,  # type: ignore
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Per-logger levels as (debug, non-debug).
LOGGER_LEVELS: dict[str, tuple[str, str]] = {
    "rebalancer": ("DEBUG", "INFO"),
    "rebalancer.services.market_data": ("INFO", "INFO"),
    "yfinance": ("WARNING", "WARNING"),
    "django": ("INFO", "INFO"),
}


def _formatter(renderer: Any) -> dict[str, Any]:
    return {
        "()": structlog.stdlib.ProcessorFormatter,
        "processor": renderer,
        "foreign_pre_chain": [
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
        ],
    }


def get_logging_config(debug: bool = False) -> dict[str, Any]:
    """
    Return Django LOGGING configuration dict.

    Every handler writes to stderr; stdout carries only command reports.

    Args:
        debug: If True, use console formatter with colors.
               If False, use JSON formatter for production.

    Returns:
        Django LOGGING configuration dict ready for use in settings.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": _formatter(structlog.processors.JSONRenderer()),
            "console": _formatter(structlog.dev.ConsoleRenderer(colors=True)),
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console" if debug else "json",
                "stream": sys.stderr,
            },
        },
        "root": {
            "handlers": ["console"],
            "level": "WARNING",
        },
        "loggers": {
            name: {
                "handlers": ["console"],
                "level": debug_level if debug else level,
                "propagate": False,
            }
            for name, (debug_level, level) in LOGGER_LEVELS.items()
        },
    }

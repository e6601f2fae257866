"""
Production settings for the portfolio rebalancer.

Ensure all environment variables are properly set before running scheduled jobs.
"""

# Validate production configuration immediately
from config.startup_checks import validate_production_config  # noqa: E402

from .base import *  # noqa: F403

validate_production_config()

# Ensure logs directory exists
LOGS_DIR = BASE_DIR / "logs"  # noqa: F405
LOGS_DIR.mkdir(exist_ok=True)

DEBUG = False

# ============================================================================
# LOGGING CONFIGURATION
# ============================================================================

from config.logging import get_logging_config  # noqa: E402

LOGGING = get_logging_config(debug=False)

# Production-specific enhancements: Add file handlers with rotation
LOGGING["handlers"]["file"] = {
    "class": "logging.handlers.RotatingFileHandler",
    "filename": BASE_DIR / "logs" / "application.log",  # noqa: F405
    "maxBytes": 10 * 1024 * 1024,  # 10MB
    "backupCount": 5,
    "formatter": "json",
    "level": "INFO",
}

LOGGING["handlers"]["error_file"] = {
    "class": "logging.handlers.RotatingFileHandler",
    "filename": BASE_DIR / "logs" / "errors.log",  # noqa: F405
    "maxBytes": 10 * 1024 * 1024,  # 10MB
    "backupCount": 5,
    "formatter": "json",
    "level": "ERROR",
}

LOGGING["root"]["handlers"] = ["console", "file", "error_file"]
LOGGING["loggers"]["rebalancer"]["handlers"] = ["console", "file", "error_file"]

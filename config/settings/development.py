from .base import *  # noqa: F403

DEBUG = True

# Development-specific logging: verbose output with colors
from config.logging import configure_structlog, get_logging_config  # noqa: E402

configure_structlog(debug=True)
LOGGING = get_logging_config(debug=True)
# Set rebalancer logging to DEBUG for development
LOGGING["loggers"]["rebalancer"]["level"] = "DEBUG"

"""
Startup validation checks for production environment.

Validates that all required configuration is present before the application starts.
This provides fast failure with clear error messages rather than cryptic runtime errors.
"""

import os
from pathlib import Path

from django.core.exceptions import ImproperlyConfigured


def validate_production_config() -> None:
    """
    Validate all required environment variables for production runs.

    Raises:
        ImproperlyConfigured: If a required variable is missing or points nowhere.

    Usage:
        # In config/settings/production.py, after imports:
        from config.startup_checks import validate_production_config
        validate_production_config()
    """
    required_vars = [
        "SECRET_KEY",
    ]

    missing = [var for var in required_vars if not os.getenv(var)]

    if missing:
        raise ImproperlyConfigured(
            f"Missing required environment variables for production: {', '.join(missing)}\n"
            f"Please set these in your environment or .env file.\n"
            f"See .env.example for reference."
        )

    # An explicit table path must exist; the bundled table is used otherwise
    table = os.getenv("REBALANCER_DISTRIBUTION_TABLE")
    if table and not Path(table).is_file():
        raise ImproperlyConfigured(
            f"REBALANCER_DISTRIBUTION_TABLE points to a missing file: {table}"
        )

"""
Django settings for the portfolio rebalancer.

Base settings shared by all environments.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv("SECRET_KEY") or "django-insecure-placeholder-key-for-tests-and-local-dev"

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv("DEBUG", "False") == "True"

# Configure logging early (before Django uses it)
from config.logging import configure_structlog, get_logging_config  # noqa: E402

configure_structlog(debug=DEBUG)

ALLOWED_HOSTS: list[str] = []


# Application definition

INSTALLED_APPS = [
    "rebalancer.apps.RebalancerConfig",
]

# No models; the rebalancer works on in-memory exports only
DATABASES: dict[str, dict[str, str]] = {}

USE_TZ = True
TIME_ZONE = "UTC"

# ============================================================================
# REBALANCER CONFIGURATION
# ============================================================================

# IRS Uniform Lifetime Table used for required minimum distributions
REBALANCER_DISTRIBUTION_TABLE = Path(
    os.getenv(
        "REBALANCER_DISTRIBUTION_TABLE",
        BASE_DIR / "rebalancer" / "data" / "uniform_lifetime_table.csv",
    )
)

# Stock percentage for a brokerage account rebalanced outside the retirement pool
REBALANCER_DEFAULT_PERCENT_STOCK = int(os.getenv("REBALANCER_DEFAULT_PERCENT_STOCK", "60"))

# Fetch quotes missing from the export from Yahoo Finance
REBALANCER_FETCH_QUOTES = os.getenv("REBALANCER_FETCH_QUOTES", "True") == "True"

# Logging Configuration
# Using structlog for structured logging with Django's logging system
LOGGING = get_logging_config(debug=DEBUG)

from .base import *  # noqa: F403

DEBUG = False

# Never reach the network from tests
REBALANCER_FETCH_QUOTES = False

REBALANCER_DISTRIBUTION_TABLE = BASE_DIR / "rebalancer" / "data" / "uniform_lifetime_table.csv"  # noqa: F405
REBALANCER_DEFAULT_PERCENT_STOCK = 60

# Disable logging during tests to keep output clean(er)
LOGGING = {
    "version": 1,
    "disable_existing_loggers": True,
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
        },
    },
    "loggers": {
        "rebalancer": {
            "handlers": ["console"],
            "level": "CRITICAL",
        },
    },
}

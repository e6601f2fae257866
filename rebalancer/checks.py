"""
Custom Django system checks for the rebalancer application.

These checks run with `manage.py check` and before every management command,
and are registered when the app config becomes ready.
"""

from pathlib import Path

from django.conf import settings
from django.core.checks import Warning, register

import structlog

from rebalancer.exceptions import DistributionTableError

logger = structlog.get_logger(__name__)


@register()
def check_distribution_table(app_configs, **kwargs):
    """
    Verify the IRS distribution table is present and readable.

    Returns:
        List of Warning objects if the table is missing or malformed.
    """
    from rebalancer.services.distributions import load_distribution_table

    path = Path(getattr(settings, "REBALANCER_DISTRIBUTION_TABLE", ""))
    if not path.is_file():
        return [
            Warning(
                f"Distribution table not found at {path}",
                hint="Set REBALANCER_DISTRIBUTION_TABLE to the IRS Uniform Lifetime Table CSV",
                id="rebalancer.W001",
            )
        ]

    try:
        load_distribution_table(path)
    except DistributionTableError as exc:
        logger.warning("distribution_table_invalid", path=str(path), error=str(exc))
        return [
            Warning(
                f"Distribution table at {path} could not be read: {exc}",
                hint="The file needs 'Age' and 'Distribution Period' columns",
                id="rebalancer.W002",
            )
        ]

    return []

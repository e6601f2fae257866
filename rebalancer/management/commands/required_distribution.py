from datetime import date
from typing import Any

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError, CommandParser

import structlog

from rebalancer.domain.assets import AssetVector
from rebalancer.exceptions import RebalancerError
from rebalancer.services.distributions import (
    DistributionStatus,
    compute_required_distribution,
    load_distribution_table,
)
from rebalancer.services.holdings_store import HoldingsStore
from rebalancer.services.imports import load_export
from rebalancer.services.market_data import YahooQuoteProvider, year_end_quotes

logger = structlog.get_logger(__name__)


class Command(BaseCommand):
    help = "Compute the required minimum distribution for a tax-deferred account."

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument("export", help="Path to the brokerage CSV export")
        parser.add_argument("--account", required=True, help="Tax-deferred account number")
        parser.add_argument("--birth-year", type=int, required=True)
        parser.add_argument(
            "--year",
            type=int,
            default=None,
            help="Distribution year (defaults to this year)",
        )
        parser.add_argument(
            "--table",
            default=None,
            help="IRS Uniform Lifetime Table CSV (defaults to REBALANCER_DISTRIBUTION_TABLE)",
        )
        parser.add_argument(
            "--offline",
            action="store_true",
            help="Price the year-end snapshot with the export's quotes",
        )

    def handle(self, *args: Any, **options: Any) -> None:
        year = options["year"] or date.today().year
        account_id = options["account"]
        try:
            store = load_export(options["export"])
            if account_id not in store.accounts_by_shares:
                raise CommandError(f"Account {account_id} not found in export")
            table = load_distribution_table(
                options["table"] or settings.REBALANCER_DISTRIBUTION_TABLE
            )
            eoy_quotes = self._year_end_quotes(store, year, options["offline"])
            result = compute_required_distribution(
                year=year,
                birth_year=options["birth_year"],
                account_id=account_id,
                store=store,
                table=table,
                eoy_quotes=eoy_quotes,
            )
        except RebalancerError as e:
            logger.error("required_distribution_command_failed", error=str(e))
            raise CommandError(str(e)) from e

        if result.status is DistributionStatus.REQUIRED:
            self.stdout.write(
                f"Year-end {year - 1} value: ${result.year_end_value:,.2f}  "
                f"Distribution period: {result.divisor}"
            )
            self.stdout.write(self.style.SUCCESS(result.summary()))
        else:
            self.stdout.write(self.style.WARNING(result.summary()))

    def _year_end_quotes(self, store: HoldingsStore, year: int, offline: bool) -> AssetVector:
        if offline or not settings.REBALANCER_FETCH_QUOTES:
            self.stderr.write("Offline: pricing the year-end snapshot with the export's quotes")
            return store.quotes

        quotes = year_end_quotes(YahooQuoteProvider(), year - 1)
        for symbol in quotes.missing_quotes():
            if store.quotes[symbol] != 1.0:
                quotes = quotes.with_value(symbol, store.quotes[symbol])
                self.stderr.write(f"No year-end quote for {symbol.ticker}; using export quote")
        return quotes

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError, CommandParser

import structlog

from rebalancer.domain.allocation import ExternalHoldings
from rebalancer.domain.assets import all_descriptions
from rebalancer.exceptions import RebalancerError
from rebalancer.presenters import render_result
from rebalancer.services.holdings_store import HoldingsStore
from rebalancer.services.imports import load_export
from rebalancer.services.market_data import YahooQuoteProvider, fill_missing_quotes
from rebalancer.services.rebalancing import (
    AccountInputs,
    AccountRole,
    RebalanceRequest,
    rebalance,
)

logger = structlog.get_logger(__name__)

EXTERNAL_FIELDS = ("us_stock", "int_stock", "us_bond", "int_bond")


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as e:
        raise ValueError(f"not a number: {value}") from e


class Command(BaseCommand):
    help = "Compute buy/sell share counts that rebalance the accounts in a brokerage export."

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument("export", help="Path to the brokerage CSV export")
        parser.add_argument("--retirement-year", type=int, required=True)
        parser.add_argument(
            "--percent-stock",
            type=_decimal,
            default=None,
            help="Stock percentage for a brokerage rebalanced on its own",
        )
        parser.add_argument(
            "--pool-brokerage",
            action="store_true",
            help="Fold the brokerage into the retirement glide-path target",
        )
        parser.add_argument(
            "--current-year",
            type=int,
            default=None,
            help="Year the glide path counts from (defaults to this year)",
        )
        parser.add_argument(
            "--offline",
            action="store_true",
            help="Use only the quotes in the export",
        )
        parser.add_argument(
            "--describe",
            action="store_true",
            help="List the supported funds before the report",
        )
        for role in AccountRole:
            prefix = role.value
            parser.add_argument(f"--{prefix}-account", default=None, help=f"{role.label} number")
            parser.add_argument(
                f"--{prefix}-cash",
                type=float,
                default=0.0,
                help=f"Cash to add to (or withdraw from) the {role.label}",
            )
            for field in EXTERNAL_FIELDS:
                parser.add_argument(
                    f"--{prefix}-{field.replace('_', '-')}",
                    type=float,
                    default=0.0,
                    help=f"{field.replace('_', ' ').title()} held outside the {role.label}",
                )

    def handle(self, *args: Any, **options: Any) -> None:
        current_year = options["current_year"] or date.today().year
        try:
            store = load_export(options["export"])
            if self._fetch_quotes(options):
                store = store.with_quotes(fill_missing_quotes(store.quotes, YahooQuoteProvider()))
            missing = store.quotes.missing_quotes()
            if missing:
                self.stderr.write(
                    "No quote for " + ", ".join(s.ticker for s in missing) + "; using 1.0"
                )

            percent_stock = options["percent_stock"]
            if percent_stock is None:
                percent_stock = Decimal(str(settings.REBALANCER_DEFAULT_PERCENT_STOCK))

            request = RebalanceRequest(
                retirement_year=options["retirement_year"],
                quotes=store.quotes,
                brokerage=self._inputs(store, AccountRole.BROKERAGE, options),
                traditional=self._inputs(store, AccountRole.TRADITIONAL, options),
                roth=self._inputs(store, AccountRole.ROTH, options),
                percent_stock=percent_stock,
                pool_brokerage=options["pool_brokerage"],
                current_year=current_year,
            )
            result = rebalance(request)
        except RebalancerError as e:
            logger.error("rebalance_command_failed", error=str(e))
            raise CommandError(str(e)) from e

        if options["describe"]:
            self.stdout.write(all_descriptions())
            self.stdout.write("")
        self.stdout.write(render_result(result))

        traditional_id = options["traditional_account"]
        if traditional_id is not None:
            distributed = store.distributions(current_year).get(traditional_id, 0.0)
            self.stdout.write(
                f"{AccountRole.TRADITIONAL.label} distributions in {current_year}: "
                f"${distributed:,.2f}"
            )

    def _fetch_quotes(self, options: dict[str, Any]) -> bool:
        return settings.REBALANCER_FETCH_QUOTES and not options["offline"]

    def _inputs(
        self, store: HoldingsStore, role: AccountRole, options: dict[str, Any]
    ) -> AccountInputs:
        prefix = role.value
        account_id = options[f"{prefix}_account"]
        if account_id is not None and account_id not in store.accounts:
            raise CommandError(
                f"{role.label} account {account_id} not found in export "
                f"(accounts: {', '.join(sorted(store.accounts)) or 'none'})"
            )
        external = ExternalHoldings(
            **{field: options[f"{prefix}_{field}"] for field in EXTERNAL_FIELDS}
        )
        return AccountInputs(
            current=store.account_value(account_id),
            cash_delta=options[f"{prefix}_cash"],
            external=external,
        )

"""In-memory holdings built from a brokerage export."""

from __future__ import annotations

import dataclasses
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date

from rebalancer.domain.assets import AssetVector
from rebalancer.domain.ledger import Transaction


@dataclass(frozen=True)
class HoldingsStore:
    """Per-account holdings, quotes and the transaction ledger of one import.

    Attributes:
        accounts: Account number -> dollar value per bucket
        accounts_by_shares: Account number -> share count per bucket. The cash
            slot is in dollars and the other slot holds the aggregated dollar
            value, since unsupported tickers carry no usable price.
        quotes: Per-share price for each bucket; 1.0 where no price is known
        transactions: Ledger rows in export order
    """

    accounts: Mapping[str, AssetVector] = field(default_factory=dict)
    accounts_by_shares: Mapping[str, AssetVector] = field(default_factory=dict)
    quotes: AssetVector = field(default_factory=AssetVector.quotes)
    transactions: tuple[Transaction, ...] = ()

    def account_value(self, account_id: str | None) -> AssetVector:
        if account_id is None:
            return AssetVector.zeros()
        return self.accounts.get(account_id, AssetVector.zeros())

    def account_shares(self, account_id: str | None) -> AssetVector:
        if account_id is None:
            return AssetVector.zeros()
        return self.accounts_by_shares.get(account_id, AssetVector.zeros())

    def distributions(self, year: int | None = None) -> dict[str, float]:
        """Dollars distributed per account during a calendar year (default: this year)."""
        if year is None:
            year = date.today().year
        totals: dict[str, float] = defaultdict(float)
        for transaction in self.transactions:
            if transaction.is_cash_distribution and transaction.trade_date.year == year:
                totals[transaction.account_id] -= transaction.net_amount
        return dict(totals)

    def with_quotes(self, quotes: AssetVector) -> HoldingsStore:
        return dataclasses.replace(self, quotes=quotes)

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from rebalancer.domain.assets import AssetSymbol


class TransactionType(Enum):
    """Transaction kinds as labelled in the brokerage export."""

    BUY = "Buy"
    SELL = "Sell"
    DIVIDEND = "Dividend"
    REINVESTMENT = "Reinvestment"
    CONVERSION_IN = "Conversion (incoming)"
    CONVERSION_OUT = "Conversion (outgoing)"
    FUNDS_RECEIVED = "Funds Received"
    ADVISOR_FEE = "Advisor fee"
    SWEEP_IN = "Sweep in"
    SWEEP_OUT = "Sweep out"
    DISTRIBUTION = "Distribution"
    OTHER = "Other"

    @classmethod
    def from_label(cls, label: str) -> TransactionType:
        try:
            return cls(label.strip())
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class Transaction:
    """A single ledger row from the export.

    Attributes:
        account_id: Brokerage account number
        trade_date: Date the trade executed
        symbol: Bucket traded, or EMPTY for cash movements such as distributions
        shares: Share delta (dollars for the cash bucket)
        net_amount: Net cash amount of the transaction
        kind: Parsed transaction type
        kind_label: Raw label from the export, kept for OTHER kinds
    """

    account_id: str
    trade_date: date
    symbol: AssetSymbol
    shares: float
    net_amount: float
    kind: TransactionType
    kind_label: str = ""

    @property
    def is_cash_distribution(self) -> bool:
        """A withdrawal from the account that is not tied to a holding."""
        return self.symbol is AssetSymbol.EMPTY and self.kind is TransactionType.DISTRIBUTION

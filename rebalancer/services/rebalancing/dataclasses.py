"""Data structures for rebalancing calculations."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum

from rebalancer.domain.allocation import ExternalHoldings
from rebalancer.domain.assets import AssetSymbol, AssetVector


class AccountRole(StrEnum):
    BROKERAGE = "brokerage"
    TRADITIONAL = "traditional"
    ROTH = "roth"

    @property
    def label(self) -> str:
        return {
            AccountRole.BROKERAGE: "Brokerage",
            AccountRole.TRADITIONAL: "Traditional IRA",
            AccountRole.ROTH: "Roth IRA",
        }[self]


@dataclass(frozen=True)
class AccountInputs:
    """What the caller knows about one account before rebalancing.

    Attributes:
        current: Dollar value per bucket held in the account
        cash_delta: Cash to deposit (positive) or withdraw (negative)
        external: Holdings tracked outside the custodian for this account
    """

    current: AssetVector = field(default_factory=AssetVector.zeros)
    cash_delta: float = 0.0
    external: ExternalHoldings = field(default_factory=ExternalHoldings)

    def with_cash_delta(self) -> AssetVector:
        """Current holdings with the cash delta folded into the cash bucket."""
        return self.current.with_added(AssetSymbol.CASH, self.cash_delta)


@dataclass(frozen=True)
class RebalanceRequest:
    """Every input recognised by the rebalance engine.

    Attributes:
        retirement_year: Target retirement year driving the glide path
        quotes: Per-share price per bucket, 1.0 where unknown, never 0
        brokerage: Taxable brokerage account inputs
        traditional: Tax-deferred retirement account inputs
        roth: Tax-free retirement account inputs
        percent_stock: Flat stock percentage for a brokerage rebalanced on its own
        pool_brokerage: Fold the brokerage into the retirement risk-location pool
        current_year: Override for the year the glide path counts from
    """

    retirement_year: int
    quotes: AssetVector = field(default_factory=AssetVector.quotes)
    brokerage: AccountInputs = field(default_factory=AccountInputs)
    traditional: AccountInputs = field(default_factory=AccountInputs)
    roth: AccountInputs = field(default_factory=AccountInputs)
    percent_stock: Decimal = Decimal("60")
    pool_brokerage: bool = False
    current_year: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.percent_stock, Decimal):
            object.__setattr__(self, "percent_stock", Decimal(str(self.percent_stock)))

    def inputs_for(self, role: AccountRole) -> AccountInputs:
        return {
            AccountRole.BROKERAGE: self.brokerage,
            AccountRole.TRADITIONAL: self.traditional,
            AccountRole.ROTH: self.roth,
        }[role]


@dataclass(frozen=True)
class AccountHoldings:
    """Current, target and share delta for one account.

    Attributes:
        current: Dollar value per bucket before rebalancing
        target: Dollar value per bucket after rebalancing
        delta: Shares to buy (positive) or sell (negative) per bucket
    """

    current: AssetVector
    target: AssetVector
    delta: AssetVector

    @classmethod
    def from_target(
        cls, current: AssetVector, target: AssetVector, quotes: AssetVector
    ) -> AccountHoldings:
        return cls(current=current, target=target, delta=(target - current) / quotes)


@dataclass(frozen=True)
class RebalanceResult:
    """Outcome of one rebalance run.

    Attributes:
        brokerage: Present when the brokerage account holds value
        traditional: Present when the tax-deferred account holds value
        roth: Present when the tax-free account holds value
        retirement_target: Shared target across the pooled accounts, present
            only when at least one pooled account holds value
    """

    brokerage: AccountHoldings | None = None
    traditional: AccountHoldings | None = None
    roth: AccountHoldings | None = None
    retirement_target: AssetVector | None = None

    def for_role(self, role: AccountRole) -> AccountHoldings | None:
        return {
            AccountRole.BROKERAGE: self.brokerage,
            AccountRole.TRADITIONAL: self.traditional,
            AccountRole.ROTH: self.roth,
        }[role]

    def accounts(self) -> Iterator[tuple[AccountRole, AccountHoldings]]:
        """Present accounts in report order: traditional, Roth, brokerage."""
        for role in (AccountRole.TRADITIONAL, AccountRole.ROTH, AccountRole.BROKERAGE):
            holdings = self.for_role(role)
            if holdings is not None:
                yield role, holdings

"""Stock/bond/inflation-protected allocation and its split across the nine buckets.

Percentages are expressed on a 0-100 scale (not 0-1) and kept as ``Decimal``
so the stock + bond + inflation-protected == 100 check is exact.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import structlog

from rebalancer.domain.assets import AssetSymbol, AssetVector
from rebalancer.exceptions import AllocationError

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# US stock is 2/3 of total stock, split evenly across large, mid and small cap.
US_STOCK_FRACTION = Decimal(2) / Decimal(3)
EACH_US_STOCK = US_STOCK_FRACTION / 3
# International stock is 1/3 of total stock: 2/3 total international, 1/3 emerging.
INT_STOCK_FRACTION = Decimal(1) / Decimal(3)
INT_TOTAL_STOCK = INT_STOCK_FRACTION * 2 / 3
INT_EMERGING_STOCK = INT_STOCK_FRACTION / 3
# 2/3 of bonds in US (half total bond, half corporate), 1/3 international.
US_BOND_FRACTION = Decimal(2) / Decimal(3)
US_TOTAL_BOND = US_BOND_FRACTION / 2
US_CORP_BOND = US_BOND_FRACTION / 2
INT_BOND_FRACTION = Decimal(1) / Decimal(3)

SUB_ALLOCATION_TOLERANCE = Decimal("0.1")

MIN_RETIREMENT_YEAR = 2000
MAX_RETIREMENT_YEAR = 3000

type Split = tuple[Decimal, Decimal, Decimal]


def _decumulation(years: Decimal) -> Split:
    return Decimal(29), Decimal(53), Decimal(18)


def _transition(years: Decimal) -> Split:
    stock = Decimal(60) - (Decimal("-2.8") * (years - 5))
    inflation = Decimal("-1.8") * (years - 5)
    return stock, HUNDRED - stock - inflation, inflation


def _accumulation(years: Decimal) -> Split:
    stock = Decimal(90) - (Decimal("1.5") * (25 - years))
    return stock, HUNDRED - stock, ZERO


def _growth(years: Decimal) -> Split:
    return Decimal(90), Decimal(10), ZERO


# (lower bound inclusive, upper bound exclusive, rule) in years to retirement.
GLIDE_PATH: tuple[tuple[int | None, int | None, Callable[[Decimal], Split]], ...] = (
    (None, -5, _decumulation),
    (-5, 5, _transition),
    (5, 30, _accumulation),
    (30, None, _growth),
)


@dataclass(frozen=True)
class Allocation:
    """Total stock, bond and inflation-protected percentages summing to 100."""

    stock: Decimal
    bond: Decimal
    inflation_protected: Decimal = ZERO

    def __post_init__(self) -> None:
        for name in ("stock", "bond", "inflation_protected"):
            value = getattr(self, name)
            if not ZERO <= value <= HUNDRED:
                raise AllocationError(f"Percent {name} must be between 0 and 100, got {value}")
        total = self.stock + self.bond + self.inflation_protected
        if total != HUNDRED:
            raise AllocationError(
                f"Stock ({self.stock}) + bond ({self.bond}) + inflation protected "
                f"({self.inflation_protected}) does not equal 100"
            )

    @classmethod
    def default(cls) -> Allocation:
        return cls(Decimal(60), Decimal(40), ZERO)

    @classmethod
    def custom(
        cls,
        stock: Decimal | float | int,
        bond: Decimal | float | int,
        inflation_protected: Decimal | float | int = 0,
    ) -> Allocation:
        return cls(_to_decimal(stock), _to_decimal(bond), _to_decimal(inflation_protected))

    @classmethod
    def retirement(cls, year: int, current_year: int | None = None) -> Allocation:
        """Glide-path allocation for a target retirement year."""
        if not MIN_RETIREMENT_YEAR <= year < MAX_RETIREMENT_YEAR:
            raise AllocationError(
                f"Year needs to be between {MIN_RETIREMENT_YEAR} and "
                f"{MAX_RETIREMENT_YEAR}.  Year input: {year}"
            )
        if current_year is None:
            current_year = date.today().year
        years_to_retirement = year - current_year
        stock, bond, inflation = glide_path_split(years_to_retirement)
        logger.debug(
            "glide_path_allocation",
            retirement_year=year,
            years_to_retirement=years_to_retirement,
            stock=str(stock),
            bond=str(bond),
            inflation_protected=str(inflation),
        )
        return cls(stock, bond, inflation)

    def __str__(self) -> str:
        return (
            f"Percent stock: {self.stock:.2f}\n"
            f"Percent bond: {self.bond:.2f}\n"
            f"Percent inflation protected: {self.inflation_protected:.2f}"
        )


def glide_path_split(years_to_retirement: int) -> Split:
    """Look up the (stock, bond, inflation) split for the given years to retirement."""
    years = Decimal(years_to_retirement)
    for lower, upper, rule in GLIDE_PATH:
        if (lower is None or years >= lower) and (upper is None or years < upper):
            return rule(years)
    return _growth(years)


def _to_decimal(value: Decimal | float | int) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class SubAllocation:
    """Percent of the whole portfolio held in each of the nine buckets."""

    us_stock_large: Decimal
    us_stock_mid: Decimal
    us_stock_small: Decimal
    us_total_bond: Decimal
    us_corp_bond: Decimal
    int_total_stock: Decimal
    int_emerging_stock: Decimal
    int_bond: Decimal
    inflation_protected: Decimal

    def __post_init__(self) -> None:
        total = sum(self.as_dict().values(), ZERO)
        if abs(total - HUNDRED) > SUB_ALLOCATION_TOLERANCE:
            raise AllocationError(f"Total sub allocations did not add up to 100: {total}")

    @classmethod
    def from_allocation(cls, allocation: Allocation) -> SubAllocation:
        stock = allocation.stock
        bond = allocation.bond
        return cls(
            us_stock_large=stock * EACH_US_STOCK,
            us_stock_mid=stock * EACH_US_STOCK,
            us_stock_small=stock * EACH_US_STOCK,
            us_total_bond=bond * US_TOTAL_BOND,
            us_corp_bond=bond * US_CORP_BOND,
            int_total_stock=stock * INT_TOTAL_STOCK,
            int_emerging_stock=stock * INT_EMERGING_STOCK,
            int_bond=bond * INT_BOND_FRACTION,
            inflation_protected=allocation.inflation_protected,
        )

    def as_dict(self) -> dict[AssetSymbol, Decimal]:
        return {
            AssetSymbol.LARGE_CAP_US: self.us_stock_large,
            AssetSymbol.MID_CAP_US: self.us_stock_mid,
            AssetSymbol.SMALL_CAP_US: self.us_stock_small,
            AssetSymbol.CORP_BOND_US: self.us_corp_bond,
            AssetSymbol.TOTAL_BOND_US: self.us_total_bond,
            AssetSymbol.TOTAL_INTL_STOCK: self.int_total_stock,
            AssetSymbol.EMERGING_MKT_STOCK: self.int_emerging_stock,
            AssetSymbol.INTL_BOND: self.int_bond,
            AssetSymbol.INFLATION_PROTECTED: self.inflation_protected,
        }


@dataclass(frozen=True)
class ExternalHoldings:
    """Dollar value held outside the custodial accounts, by class."""

    us_stock: float = 0.0
    int_stock: float = 0.0
    us_bond: float = 0.0
    int_bond: float = 0.0

    @property
    def stock(self) -> float:
        return self.us_stock + self.int_stock

    @property
    def bond(self) -> float:
        return self.us_bond + self.int_bond

    @property
    def total(self) -> float:
        return self.stock + self.bond

    def __add__(self, other: ExternalHoldings) -> ExternalHoldings:
        return ExternalHoldings(
            us_stock=self.us_stock + other.us_stock,
            int_stock=self.int_stock + other.int_stock,
            us_bond=self.us_bond + other.us_bond,
            int_bond=self.int_bond + other.int_bond,
        )


# Which external class feeds each bucket, and the bucket's fixed share of it.
EXTERNAL_SHARES: dict[AssetSymbol, tuple[str, float]] = {
    AssetSymbol.LARGE_CAP_US: ("us_stock", 1 / 3),
    AssetSymbol.MID_CAP_US: ("us_stock", 1 / 3),
    AssetSymbol.SMALL_CAP_US: ("us_stock", 1 / 3),
    AssetSymbol.TOTAL_INTL_STOCK: ("int_stock", 2 / 3),
    AssetSymbol.EMERGING_MKT_STOCK: ("int_stock", 1 / 3),
    AssetSymbol.TOTAL_BOND_US: ("us_bond", 1 / 2),
    AssetSymbol.CORP_BOND_US: ("us_bond", 1 / 2),
    AssetSymbol.INTL_BOND: ("int_bond", 1.0),
}


def build_target(
    sub_allocation: SubAllocation,
    custodial_total: float,
    external: ExternalHoldings | None = None,
) -> AssetVector:
    """Target dollar value per bucket for the custodial accounts.

    The target is sized to the custodial total plus every external holding,
    then each bucket fed by an external class is reduced by its share of that
    class, so only what should be held in custody remains. Cash and other
    targets are zero.
    """
    external = external or ExternalHoldings()
    total = custodial_total + external.total
    targets: dict[AssetSymbol, float] = {}
    for symbol, percent in sub_allocation.as_dict().items():
        value = total * float(percent) / 100
        feed = EXTERNAL_SHARES.get(symbol)
        if feed is not None:
            attribute, share = feed
            value -= getattr(external, attribute) * share
        targets[symbol] = value
    return AssetVector.from_mapping(
        targets, outside_stock=external.stock, outside_bond=external.bond
    )

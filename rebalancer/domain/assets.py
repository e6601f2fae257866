"""Asset symbols and the fixed-shape value vector used for holdings, quotes and targets."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from enum import Enum

import numpy as np

from rebalancer.exceptions import InvalidSymbolError, PricingError


class AssetSymbol(Enum):
    """Supported asset-class buckets, keyed by the ETF ticker that holds each one.

    ``OTHER`` aggregates every unsupported ticker by value; the original ticker
    is not recoverable once it has been folded in. ``EMPTY`` marks a symbol that
    was never set and must not be used to read or write a value.
    """

    LARGE_CAP_US = "VV"
    MID_CAP_US = "VO"
    SMALL_CAP_US = "VB"
    CORP_BOND_US = "VTC"
    TOTAL_BOND_US = "BND"
    TOTAL_INTL_STOCK = "VXUS"
    EMERGING_MKT_STOCK = "VWO"
    INTL_BOND = "BNDX"
    INFLATION_PROTECTED = "VTIP"
    CASH = "VMFXX"
    OTHER = "OTHER"
    EMPTY = ""

    @property
    def ticker(self) -> str:
        return self.value

    @property
    def is_tradable(self) -> bool:
        return self in _TRADABLE

    @property
    def description(self) -> str:
        """Return "TICKER: description", or a fallback for unsupported symbols."""
        text = _DESCRIPTIONS.get(self)
        if text is None:
            return f"No description for {self.name}"
        return f"{self.ticker}: {text}"

    @classmethod
    def tradable(cls) -> tuple[AssetSymbol, ...]:
        """The nine tradable buckets in display order."""
        return _TRADABLE


_TRADABLE: tuple[AssetSymbol, ...] = (
    AssetSymbol.LARGE_CAP_US,
    AssetSymbol.MID_CAP_US,
    AssetSymbol.SMALL_CAP_US,
    AssetSymbol.CORP_BOND_US,
    AssetSymbol.TOTAL_BOND_US,
    AssetSymbol.TOTAL_INTL_STOCK,
    AssetSymbol.EMERGING_MKT_STOCK,
    AssetSymbol.INTL_BOND,
    AssetSymbol.INFLATION_PROTECTED,
)

_DESCRIPTIONS: dict[AssetSymbol, str] = {
    AssetSymbol.LARGE_CAP_US: "US large cap",
    AssetSymbol.MID_CAP_US: "US mid cap",
    AssetSymbol.SMALL_CAP_US: "US small cap",
    AssetSymbol.CORP_BOND_US: "US total corporate bond",
    AssetSymbol.TOTAL_BOND_US: "US total bond",
    AssetSymbol.TOTAL_INTL_STOCK: "Total international stock",
    AssetSymbol.EMERGING_MKT_STOCK: "Emerging markets stock",
    AssetSymbol.INTL_BOND: "Total international bond",
    AssetSymbol.INFLATION_PROTECTED: "Inflation protected securities",
    AssetSymbol.CASH: "Money market settlement fund",
}

STOCK_SYMBOLS = frozenset(
    {
        AssetSymbol.LARGE_CAP_US,
        AssetSymbol.MID_CAP_US,
        AssetSymbol.SMALL_CAP_US,
        AssetSymbol.TOTAL_INTL_STOCK,
        AssetSymbol.EMERGING_MKT_STOCK,
    }
)
BOND_SYMBOLS = frozenset(
    {AssetSymbol.CORP_BOND_US, AssetSymbol.TOTAL_BOND_US, AssetSymbol.INTL_BOND}
)

_BY_TICKER: dict[str, AssetSymbol] = {
    symbol.ticker: symbol
    for symbol in AssetSymbol
    if symbol not in (AssetSymbol.OTHER, AssetSymbol.EMPTY)
}


def resolve_symbol(raw: str) -> AssetSymbol:
    """Map a raw ticker string onto a bucket.

    >>> resolve_symbol("BND")
    <AssetSymbol.TOTAL_BOND_US: 'BND'>
    >>> resolve_symbol("AAPL")
    <AssetSymbol.OTHER: 'OTHER'>
    """
    ticker = raw.strip()
    if not ticker:
        return AssetSymbol.EMPTY
    return _BY_TICKER.get(ticker, AssetSymbol.OTHER)


def all_descriptions() -> str:
    """Descriptions of the nine supported buckets, one per line."""
    return "\n".join(symbol.description for symbol in AssetSymbol.tradable())


# Slot layout: the 11 valued symbols followed by the two auxiliary scalars.
_SLOTS: tuple[AssetSymbol, ...] = (*_TRADABLE, AssetSymbol.CASH, AssetSymbol.OTHER)
_INDEX: dict[AssetSymbol, int] = {symbol: i for i, symbol in enumerate(_SLOTS)}
_OUTSIDE_STOCK = len(_SLOTS)
_OUTSIDE_BOND = len(_SLOTS) + 1
_WIDTH = len(_SLOTS) + 2


def _index(symbol: AssetSymbol) -> int:
    if symbol is AssetSymbol.EMPTY:
        raise InvalidSymbolError("Stock symbol not set before accessing value")
    return _INDEX[symbol]


class AssetVector:
    """One float per bucket plus value held outside the custodial accounts.

    The same shape holds dollar values, share counts or per-share quotes.
    ``outside_stock`` and ``outside_bond`` feed allocation ratios only and are
    never part of ``total_value()``. Arithmetic is elementwise across all 13
    slots; dividing by a zero slot yields inf/nan for that slot.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Iterable[float] | np.ndarray | None = None) -> None:
        array = np.zeros(_WIDTH) if values is None else np.array(values, dtype=float)
        if array.shape != (_WIDTH,):
            raise ValueError(f"AssetVector needs {_WIDTH} slots, got shape {array.shape}")
        array.setflags(write=False)
        self._values = array

    @classmethod
    def zeros(cls) -> AssetVector:
        return cls()

    @classmethod
    def quotes(cls, prices: Mapping[AssetSymbol, float] | None = None) -> AssetVector:
        """Quote vector with every slot defaulted to 1.0.

        A 1.0 quote is the "missing" sentinel: dividing a dollar value by it
        leaves the dollar value unchanged instead of dividing by zero.
        """
        array = np.ones(_WIDTH)
        for symbol, price in (prices or {}).items():
            array[_index(symbol)] = price
        return cls(array)

    @classmethod
    def from_mapping(
        cls,
        values: Mapping[AssetSymbol, float],
        outside_stock: float = 0.0,
        outside_bond: float = 0.0,
    ) -> AssetVector:
        array = np.zeros(_WIDTH)
        for symbol, value in values.items():
            array[_index(symbol)] = value
        array[_OUTSIDE_STOCK] = outside_stock
        array[_OUTSIDE_BOND] = outside_bond
        return cls(array)

    def __getitem__(self, symbol: AssetSymbol) -> float:
        return float(self._values[_index(symbol)])

    @property
    def outside_stock(self) -> float:
        return float(self._values[_OUTSIDE_STOCK])

    @property
    def outside_bond(self) -> float:
        return float(self._values[_OUTSIDE_BOND])

    def with_value(self, symbol: AssetSymbol, value: float) -> AssetVector:
        array = self._values.copy()
        array[_index(symbol)] = value
        return AssetVector(array)

    def with_added(self, symbol: AssetSymbol, amount: float) -> AssetVector:
        return self.with_value(symbol, self[symbol] + amount)

    def with_outside(
        self, stock: float | None = None, bond: float | None = None
    ) -> AssetVector:
        array = self._values.copy()
        if stock is not None:
            array[_OUTSIDE_STOCK] = stock
        if bond is not None:
            array[_OUTSIDE_BOND] = bond
        return AssetVector(array)

    def total_value(self) -> float:
        """Sum of the nine buckets, cash and other; outside values excluded."""
        return float(self._values[: len(_SLOTS)].sum())

    def stock_bond_inflation(self) -> tuple[float, float, float]:
        """Percent stock, bond and inflation protected, counting outside holdings.

        Only meaningful when the vector holds dollar values. Cash and other
        holdings are left out of the denominator.
        """
        stock = sum(self[s] for s in STOCK_SYMBOLS) + self.outside_stock
        bond = sum(self[s] for s in BOND_SYMBOLS) + self.outside_bond
        inflation = self[AssetSymbol.INFLATION_PROTECTED]
        total = (
            self.total_value()
            - self[AssetSymbol.CASH]
            - self[AssetSymbol.OTHER]
            + self.outside_stock
            + self.outside_bond
        )
        if total == 0:
            return 0.0, 0.0, 0.0
        return stock / total * 100, bond / total * 100, inflation / total * 100

    def missing_quotes(self) -> list[AssetSymbol]:
        """Tradable symbols still holding the 1.0 placeholder quote."""
        return [symbol for symbol in _TRADABLE if self[symbol] == 1.0]

    def as_dict(self) -> dict[AssetSymbol, float]:
        return {symbol: float(self._values[i]) for i, symbol in enumerate(_SLOTS)}

    def as_array(self) -> np.ndarray:
        return self._values.copy()

    def allclose(self, other: AssetVector, rtol: float = 1e-9, atol: float = 1e-6) -> bool:
        return bool(np.allclose(self._values, other._values, rtol=rtol, atol=atol))

    def __add__(self, other: object) -> AssetVector:
        if not isinstance(other, AssetVector):
            return NotImplemented
        return AssetVector(self._values + other._values)

    def __sub__(self, other: object) -> AssetVector:
        if not isinstance(other, AssetVector):
            return NotImplemented
        return AssetVector(self._values - other._values)

    def __mul__(self, other: object) -> AssetVector:
        if not isinstance(other, AssetVector):
            return NotImplemented
        return AssetVector(self._values * other._values)

    def __truediv__(self, other: object) -> AssetVector:
        if not isinstance(other, AssetVector):
            return NotImplemented
        with np.errstate(divide="ignore", invalid="ignore"):
            return AssetVector(self._values / other._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AssetVector):
            return NotImplemented
        return bool(np.array_equal(self._values, other._values))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        slots = ", ".join(
            f"{symbol.ticker}={value:.2f}" for symbol, value in self.as_dict().items()
        )
        return (
            f"AssetVector({slots}, outside_stock={self.outside_stock:.2f}, "
            f"outside_bond={self.outside_bond:.2f})"
        )


def ensure_usable_quotes(quotes: AssetVector) -> None:
    """Reject quote vectors with a zero, negative or non-finite price slot.

    Raises:
        PricingError: If any bucket, cash or other slot cannot be divided by
    """
    bad = [
        symbol.ticker or symbol.name
        for symbol, price in quotes.as_dict().items()
        if not math.isfinite(price) or price <= 0
    ]
    if bad:
        raise PricingError(f"Quotes must be positive and finite, invalid for: {', '.join(bad)}")

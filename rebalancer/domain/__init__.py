from __future__ import annotations

from .allocation import Allocation, ExternalHoldings, SubAllocation, build_target
from .assets import AssetSymbol, AssetVector, resolve_symbol
from .ledger import Transaction, TransactionType

__all__ = [
    "Allocation",
    "AssetSymbol",
    "AssetVector",
    "ExternalHoldings",
    "SubAllocation",
    "Transaction",
    "TransactionType",
    "build_target",
    "resolve_symbol",
]

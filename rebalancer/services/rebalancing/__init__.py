"""Multi-account rebalance engine.

A brokerage rebalanced on its own follows a flat stock/bond split. Tax-deferred
and tax-free accounts (and the brokerage, when pooled) share one glide-path
target that is partitioned so the riskiest buckets land in the tax-free account.

Usage:
    from rebalancer.services.rebalancing import RebalanceEngine, RebalanceRequest

    result = RebalanceEngine(RebalanceRequest(retirement_year=2045, roth=roth)).run()

    for role, holdings in result.accounts():
        print(role.label, holdings.delta)
"""

from rebalancer.services.rebalancing.dataclasses import (
    AccountHoldings,
    AccountInputs,
    AccountRole,
    RebalanceRequest,
    RebalanceResult,
)
from rebalancer.services.rebalancing.engine import RebalanceEngine, rebalance

__all__ = [
    "AccountHoldings",
    "AccountInputs",
    "AccountRole",
    "RebalanceEngine",
    "RebalanceRequest",
    "RebalanceResult",
    "rebalance",
]

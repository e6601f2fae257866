"""Rebalance orchestration: brokerage-only and combined retirement modes."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from rebalancer.domain.allocation import (
    HUNDRED,
    Allocation,
    ExternalHoldings,
    SubAllocation,
    build_target,
)
from rebalancer.domain.assets import AssetSymbol, AssetVector, ensure_usable_quotes
from rebalancer.exceptions import ReconciliationError
from rebalancer.services.rebalancing.dataclasses import (
    AccountHoldings,
    AccountInputs,
    AccountRole,
    RebalanceRequest,
    RebalanceResult,
)

logger = structlog.get_logger(__name__)

# Riskiest first. The tax-free account walks this order, the brokerage walks it reversed.
HIGH_TO_LOW_RISK: tuple[AssetSymbol, ...] = (
    AssetSymbol.EMERGING_MKT_STOCK,
    AssetSymbol.TOTAL_INTL_STOCK,
    AssetSymbol.SMALL_CAP_US,
    AssetSymbol.MID_CAP_US,
    AssetSymbol.LARGE_CAP_US,
    AssetSymbol.INTL_BOND,
    AssetSymbol.TOTAL_BOND_US,
    AssetSymbol.CORP_BOND_US,
    AssetSymbol.INFLATION_PROTECTED,
)
LOW_TO_HIGH_RISK: tuple[AssetSymbol, ...] = tuple(reversed(HIGH_TO_LOW_RISK))

# A partition's target total must land strictly inside actual * (1 +/- tolerance).
RECONCILIATION_TOLERANCE = 0.01
# Half a cent of float residue is accepted as a fully consumed walk.
LEFTOVER_TOLERANCE = 0.005


@dataclass(frozen=True)
class _Participant:
    role: AccountRole
    current: AssetVector
    external: ExternalHoldings


class RebalanceEngine:
    """Computes per-account targets and share deltas for one request."""

    def __init__(self, request: RebalanceRequest) -> None:
        """Initialize engine for the given request.

        Args:
            request: Every input recognised by the engine
        """
        self.request = request

    def run(self) -> RebalanceResult:
        """Compute the rebalance.

        Returns:
            RebalanceResult with an entry for every account that holds value

        Raises:
            AllocationError: If the retirement year or flat split is invalid
            PricingError: If the quote vector holds a zero or non-finite price
            ReconciliationError: If a partition does not conserve the account's value
        """
        request = self.request
        ensure_usable_quotes(request.quotes)
        logger.info(
            "rebalance_started",
            retirement_year=request.retirement_year,
            pool_brokerage=request.pool_brokerage,
        )

        holdings: dict[AccountRole, AccountHoldings] = {}
        retirement_target: AssetVector | None = None

        participants = self._participants()
        if participants:
            retirement_target, combined = self._combined(participants)
            holdings.update(combined)

        brokerage_total = request.brokerage.current.total_value()
        if not request.pool_brokerage and brokerage_total != 0:
            holdings[AccountRole.BROKERAGE] = self._brokerage_only(request.brokerage)

        result = RebalanceResult(
            brokerage=holdings.get(AccountRole.BROKERAGE),
            traditional=holdings.get(AccountRole.TRADITIONAL),
            roth=holdings.get(AccountRole.ROTH),
            retirement_target=retirement_target,
        )
        logger.info(
            "rebalance_completed",
            accounts=[role.value for role, _ in result.accounts()],
            combined=retirement_target is not None,
        )
        return result

    def _participants(self) -> list[_Participant]:
        """Accounts folded into the shared retirement target, cash deltas applied."""
        roles = [AccountRole.ROTH, AccountRole.TRADITIONAL]
        if self.request.pool_brokerage:
            roles.append(AccountRole.BROKERAGE)

        participants = []
        for role in roles:
            inputs = self.request.inputs_for(role)
            if inputs.current.total_value() == 0:
                continue
            participants.append(
                _Participant(role=role, current=inputs.with_cash_delta(), external=inputs.external)
            )
        return participants

    def _combined(
        self, participants: list[_Participant]
    ) -> tuple[AssetVector, dict[AccountRole, AccountHoldings]]:
        allocation = Allocation.retirement(
            self.request.retirement_year, current_year=self.request.current_year
        )
        sub_allocation = SubAllocation.from_allocation(allocation)

        pooled_value = sum(p.current.total_value() for p in participants)
        external = ExternalHoldings()
        for participant in participants:
            external = external + participant.external
        shared_target = build_target(sub_allocation, pooled_value, external)

        logger.info(
            "combined_target_built",
            accounts=[p.role.value for p in participants],
            pooled_value=round(pooled_value, 2),
            external_total=round(external.total, 2),
        )

        by_role = {p.role: p for p in participants}
        quotes = self.request.quotes
        remaining = shared_target
        results: dict[AccountRole, AccountHoldings] = {}

        walks = ((AccountRole.ROTH, HIGH_TO_LOW_RISK), (AccountRole.BROKERAGE, LOW_TO_HIGH_RISK))
        for role, order in walks:
            participant = by_role.get(role)
            if participant is None:
                continue
            target = self._walk(role, remaining, participant.current.total_value(), order)
            self._reconcile(role, target, participant.current)
            results[role] = AccountHoldings.from_target(participant.current, target, quotes)
            remaining = remaining - target

        traditional = by_role.get(AccountRole.TRADITIONAL)
        if traditional is not None:
            self._reconcile(AccountRole.TRADITIONAL, remaining, traditional.current)
            results[AccountRole.TRADITIONAL] = AccountHoldings.from_target(
                traditional.current, remaining, quotes
            )

        return shared_target, results

    def _walk(
        self,
        role: AccountRole,
        available: AssetVector,
        capacity: float,
        order: tuple[AssetSymbol, ...],
    ) -> AssetVector:
        """Greedily hand out whole bucket targets in ``order`` until capacity runs out.

        Negative bucket targets (external holdings exceeding the bucket) are
        never handed out.
        """
        assigned: dict[AssetSymbol, float] = {}
        for symbol in order:
            if capacity <= 0:
                break
            value = min(max(available[symbol], 0.0), capacity)
            assigned[symbol] = value
            capacity -= value

        if abs(capacity) > LEFTOVER_TOLERANCE:
            logger.error("rebalance_leftover", account=role.value, leftover=capacity)
            raise ReconciliationError(
                f"Unexpected leftover {role.label} cash after allocation: {capacity:.2f}"
            )
        return AssetVector.from_mapping(assigned)

    def _reconcile(self, role: AccountRole, target: AssetVector, current: AssetVector) -> None:
        """Check the partition conserved the account's value within tolerance."""
        target_total = target.total_value()
        actual_total = current.total_value()
        if actual_total == 0 and abs(target_total) <= LEFTOVER_TOLERANCE:
            # Fully withdrawn; a relative band around zero is empty
            return
        lower = (1 - RECONCILIATION_TOLERANCE) * actual_total
        upper = (1 + RECONCILIATION_TOLERANCE) * actual_total
        if not lower < target_total < upper:
            logger.error(
                "rebalance_partition_mismatch",
                account=role.value,
                target_total=target_total,
                actual_total=actual_total,
            )
            raise ReconciliationError(
                f"{role.label} target and total do not match: "
                f"target {target_total:.2f}, actual {actual_total:.2f}"
            )

    def _brokerage_only(self, inputs: AccountInputs) -> AccountHoldings:
        """Rebalance the brokerage on its own with the flat stock/bond split."""
        percent_stock = self.request.percent_stock
        allocation = Allocation.custom(percent_stock, HUNDRED - percent_stock, 0)
        sub_allocation = SubAllocation.from_allocation(allocation)

        external = inputs.external
        current = inputs.with_cash_delta().with_outside(stock=external.stock, bond=external.bond)
        target = build_target(sub_allocation, current.total_value(), external)

        logger.info(
            "brokerage_target_built",
            percent_stock=str(percent_stock),
            total_value=round(current.total_value(), 2),
            external_total=round(external.total, 2),
        )
        return AccountHoldings.from_target(current, target, self.request.quotes)


def rebalance(request: RebalanceRequest) -> RebalanceResult:
    """Convenience wrapper around ``RebalanceEngine(request).run()``."""
    return RebalanceEngine(request).run()

"""Required minimum distribution for a tax-deferred account.

The prior year-end balance is reconstructed by replaying the ledger backwards
from today's share counts, repriced at year-end quotes and divided by the IRS
distribution period for the holder's age.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from enum import StrEnum
from pathlib import Path

import pandas as pd
import structlog

from rebalancer.domain.assets import AssetSymbol, AssetVector, ensure_usable_quotes
from rebalancer.exceptions import DistributionTableError
from rebalancer.services.holdings_store import HoldingsStore

logger = structlog.get_logger(__name__)

TABLE_COLUMNS = ["Age", "Distribution Period"]

# Distributions count toward the year when dated before boundary + this many days.
DISTRIBUTION_WINDOW_DAYS = 365

type DistributionTable = dict[int, float]


class DistributionStatus(StrEnum):
    REQUIRED = "required"
    NOT_REQUIRED = "not_required"
    INSUFFICIENT_HISTORY = "insufficient_history"


@dataclass(frozen=True)
class LedgerReplay:
    """Result of walking the ledger back to the prior year-end.

    Attributes:
        snapshot: Share vector as of the boundary, or None if it cannot be known
        distributed: Dollars already distributed from the account this year
        in_window: Number of the account's transactions after the boundary
        history_reaches_boundary: Whether any entry is dated on or before the boundary
    """

    snapshot: AssetVector | None
    distributed: float
    in_window: int
    history_reaches_boundary: bool


@dataclass(frozen=True)
class RequiredDistribution:
    """Outcome of a required-distribution calculation.

    ``minimum`` and ``distributed`` are only meaningful when ``status`` is
    REQUIRED; an indeterminate result is never reported as zero.
    """

    status: DistributionStatus
    year: int
    age: int
    minimum: float = 0.0
    distributed: float = 0.0
    year_end_value: float | None = None
    divisor: float | None = None

    @property
    def remaining(self) -> float:
        return max(0.0, self.minimum - self.distributed)

    def summary(self) -> str:
        if self.status is DistributionStatus.INSUFFICIENT_HISTORY:
            return "More transaction history needed"
        if self.status is DistributionStatus.NOT_REQUIRED:
            return "No distribution needed"
        return (
            f"Minimum distribution: ${self.minimum:.2f}  "
            f"So far: ${self.distributed:.2f}  "
            f"To go: ${self.remaining:.2f}"
        )


def year_end_boundary(year: int) -> date:
    """December 31 of the year before ``year``."""
    return date(year - 1, 12, 31)


def replay_ledger(store: HoldingsStore, account_id: str, year: int) -> LedgerReplay:
    """Subtract every transaction after the prior year-end from today's share counts.

    Cash and unsupported-ticker transactions are in dollars and adjust their
    slot by the net amount. Holdings adjust by share count. Symbol-less
    distributions are totalled rather than applied to the snapshot.
    """
    boundary = year_end_boundary(year)
    window_end = boundary + timedelta(days=DISTRIBUTION_WINDOW_DAYS)

    snapshot = store.account_shares(account_id)
    distributed = 0.0
    in_window = 0
    history_reaches_boundary = False

    for transaction in store.transactions:
        if transaction.trade_date <= boundary:
            history_reaches_boundary = True
            continue
        if transaction.account_id != account_id:
            continue

        in_window += 1
        if transaction.symbol is AssetSymbol.CASH:
            snapshot = snapshot.with_added(AssetSymbol.CASH, -transaction.net_amount)
        elif transaction.symbol is AssetSymbol.OTHER:
            # Slot holds dollars; a purchase carries a negative net amount
            snapshot = snapshot.with_added(AssetSymbol.OTHER, transaction.net_amount)
        elif transaction.symbol is not AssetSymbol.EMPTY:
            snapshot = snapshot.with_added(transaction.symbol, -transaction.shares)
        elif transaction.is_cash_distribution and transaction.trade_date < window_end:
            distributed -= transaction.net_amount

    logger.debug(
        "ledger_replayed",
        account_id=account_id,
        year=year,
        in_window=in_window,
        history_reaches_boundary=history_reaches_boundary,
        distributed=distributed,
    )

    if not history_reaches_boundary or in_window == 0:
        return LedgerReplay(None, distributed, in_window, history_reaches_boundary)
    return LedgerReplay(snapshot, distributed, in_window, history_reaches_boundary)


def load_distribution_table(path: str | Path) -> DistributionTable:
    """
    Read the IRS Uniform Lifetime Table.

    Args:
        path: Delimited file whose first two columns are ``Age`` and
            ``Distribution Period``

    Returns:
        Mapping of age -> distribution period

    Raises:
        DistributionTableError: If the file is missing, has the wrong header,
            holds no rows or a row does not parse
    """
    try:
        frame = pd.read_csv(path, dtype=str, skipinitialspace=True)
    except FileNotFoundError as e:
        raise DistributionTableError(f"Minimum distribution table not found: {path}") from e
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise DistributionTableError(f"Could not parse distribution table {path}: {e}") from e

    header = [str(column).strip() for column in frame.columns[:2]]
    if header != TABLE_COLUMNS:
        raise DistributionTableError(
            f"Header of distribution table ({header}) does not match {TABLE_COLUMNS}"
        )

    frame = frame.iloc[:, :2].dropna(how="any")
    if frame.empty:
        raise DistributionTableError(f"Distribution table {path} has no rows")

    try:
        table = {
            int(age.strip()): float(period.strip())
            for age, period in frame.itertuples(index=False, name=None)
        }
    except ValueError as e:
        raise DistributionTableError(f"Invalid row in distribution table {path}: {e}") from e

    logger.debug("distribution_table_loaded", path=str(path), ages=len(table))
    return table


def compute_required_distribution(
    year: int,
    birth_year: int,
    account_id: str,
    store: HoldingsStore,
    table: Mapping[int, float],
    eoy_quotes: AssetVector,
) -> RequiredDistribution:
    """
    Minimum distribution due from ``account_id`` for ``year``.

    Args:
        year: Distribution year
        birth_year: Account holder's birth year
        account_id: Tax-deferred account to reconstruct
        store: Holdings and ledger from the latest import
        table: Age -> IRS distribution period
        eoy_quotes: Per-share prices at December 31 of ``year - 1``

    Returns:
        RequiredDistribution whose status says whether figures are available

    Raises:
        DistributionTableError: If the table is empty
        PricingError: If ``eoy_quotes`` holds a zero or non-finite price
    """
    if not table:
        raise DistributionTableError("Distribution table is empty")
    ensure_usable_quotes(eoy_quotes)

    age = year - birth_year
    if age < min(table):
        logger.info("distribution_not_required", account_id=account_id, year=year, age=age)
        return RequiredDistribution(DistributionStatus.NOT_REQUIRED, year=year, age=age)

    replay = replay_ledger(store, account_id, year)
    if replay.snapshot is None:
        logger.warning(
            "distribution_history_insufficient",
            account_id=account_id,
            year=year,
            in_window=replay.in_window,
            history_reaches_boundary=replay.history_reaches_boundary,
        )
        return RequiredDistribution(DistributionStatus.INSUFFICIENT_HISTORY, year=year, age=age)

    year_end_value = (replay.snapshot * eoy_quotes).total_value()
    divisor = table.get(age)
    if not divisor:
        logger.info("distribution_divisor_missing", account_id=account_id, age=age)
        return RequiredDistribution(
            DistributionStatus.NOT_REQUIRED, year=year, age=age, year_end_value=year_end_value
        )

    result = RequiredDistribution(
        DistributionStatus.REQUIRED,
        year=year,
        age=age,
        minimum=year_end_value / divisor,
        distributed=replay.distributed,
        year_end_value=year_end_value,
        divisor=divisor,
    )
    logger.info(
        "distribution_computed",
        account_id=account_id,
        year=year,
        age=age,
        minimum=round(result.minimum, 2),
        distributed=round(result.distributed, 2),
        remaining=round(result.remaining, 2),
    )
    return result

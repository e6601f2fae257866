from datetime import date
from pathlib import Path

import pytest

from rebalancer.domain.assets import AssetSymbol, AssetVector
from rebalancer.domain.ledger import TransactionType
from rebalancer.exceptions import DistributionTableError, PricingError
from rebalancer.services.distributions import (
    DistributionStatus,
    RequiredDistribution,
    compute_required_distribution,
    load_distribution_table,
    replay_ledger,
    year_end_boundary,
)
from rebalancer.services.holdings_store import HoldingsStore
from rebalancer.tests.conftest import TRADITIONAL_ACCOUNT
from rebalancer.tests.factories import TransactionFactory

EOY_QUOTES = AssetVector.quotes({AssetSymbol.TOTAL_BOND_US: 70.0, AssetSymbol.LARGE_CAP_US: 200.0})


def _store(*transactions, shares: dict | None = None) -> HoldingsStore:
    shares = shares or {AssetSymbol.LARGE_CAP_US: 20.0}
    return HoldingsStore(
        accounts_by_shares={"1": AssetVector.from_mapping(shares)},
        transactions=tuple(transactions),
    )


@pytest.mark.unit
@pytest.mark.services
class TestReplayLedger:
    def test_boundary(self) -> None:
        assert year_end_boundary(2024) == date(2023, 12, 31)

    def test_buy_after_boundary_is_subtracted(self) -> None:
        store = _store(
            TransactionFactory(account_id="1", shares=5.0, trade_date=date(2024, 2, 1)),
            TransactionFactory(account_id="1", before_boundary=True),
        )
        replay = replay_ledger(store, "1", 2024)
        assert replay.snapshot is not None
        assert replay.snapshot[AssetSymbol.LARGE_CAP_US] == 15.0
        assert replay.in_window == 1
        assert replay.history_reaches_boundary

    def test_unsupported_ticker_is_replayed_in_dollars(self) -> None:
        store = _store(
            TransactionFactory(
                account_id="1",
                symbol=AssetSymbol.OTHER,
                shares=10.0,
                net_amount=-1900.0,
                trade_date=date(2024, 2, 1),
            ),
            TransactionFactory(account_id="1", before_boundary=True),
            shares={AssetSymbol.LARGE_CAP_US: 20.0, AssetSymbol.OTHER: 1900.0},
        )
        replay = replay_ledger(store, "1", 2024)
        assert replay.snapshot is not None
        assert replay.snapshot[AssetSymbol.OTHER] == 0.0
        assert replay.snapshot[AssetSymbol.LARGE_CAP_US] == 20.0

    def test_unsupported_ticker_sale_restores_value(self) -> None:
        store = _store(
            TransactionFactory(
                account_id="1",
                symbol=AssetSymbol.OTHER,
                shares=-5.0,
                net_amount=2000.0,
                kind=TransactionType.SELL,
                trade_date=date(2024, 2, 1),
            ),
            TransactionFactory(account_id="1", before_boundary=True),
            shares={AssetSymbol.OTHER: 500.0},
        )
        replay = replay_ledger(store, "1", 2024)
        assert replay.snapshot is not None
        assert replay.snapshot[AssetSymbol.OTHER] == 2500.0

    def test_no_history_before_boundary_is_indeterminate(self) -> None:
        store = _store(
            TransactionFactory(account_id="1", trade_date=date(2024, 2, 1)),
            TransactionFactory(account_id="1", trade_date=date(2024, 3, 1)),
        )
        replay = replay_ledger(store, "1", 2024)
        assert replay.snapshot is None
        assert not replay.history_reaches_boundary

    def test_no_transactions_in_window_is_indeterminate(self) -> None:
        store = _store(TransactionFactory(account_id="1", before_boundary=True))
        assert replay_ledger(store, "1", 2024).snapshot is None

    def test_empty_ledger_is_indeterminate(self) -> None:
        assert replay_ledger(_store(), "1", 2024).snapshot is None

    def test_transaction_on_boundary_is_history(self) -> None:
        store = _store(
            TransactionFactory(account_id="1", trade_date=date(2023, 12, 31)),
            TransactionFactory(account_id="1", trade_date=date(2024, 1, 1), shares=2.0),
        )
        replay = replay_ledger(store, "1", 2024)
        assert replay.snapshot[AssetSymbol.LARGE_CAP_US] == 18.0

    def test_other_accounts_are_not_replayed(self) -> None:
        store = _store(
            TransactionFactory(account_id="2", shares=5.0, trade_date=date(2024, 2, 1)),
            TransactionFactory(account_id="1", shares=1.0, trade_date=date(2024, 2, 1)),
            TransactionFactory(account_id="2", before_boundary=True),
        )
        replay = replay_ledger(store, "1", 2024)
        assert replay.snapshot[AssetSymbol.LARGE_CAP_US] == 19.0
        assert replay.in_window == 1

    def test_cash_uses_net_amount(self) -> None:
        store = _store(
            TransactionFactory(
                account_id="1",
                symbol=AssetSymbol.CASH,
                shares=0.0,
                net_amount=250.0,
                trade_date=date(2024, 2, 1),
            ),
            TransactionFactory(account_id="1", before_boundary=True),
            shares={AssetSymbol.CASH: 1000.0},
        )
        assert replay_ledger(store, "1", 2024).snapshot[AssetSymbol.CASH] == 750.0

    def test_distributions_accumulate(self) -> None:
        store = _store(
            TransactionFactory(account_id="1", distribution=True, trade_date=date(2024, 3, 1)),
            TransactionFactory(account_id="1", distribution=True, trade_date=date(2024, 6, 1)),
            # boundary + 365 days is 2024-12-30 in a leap year
            TransactionFactory(account_id="1", distribution=True, trade_date=date(2024, 12, 30)),
            TransactionFactory(account_id="1", before_boundary=True),
        )
        replay = replay_ledger(store, "1", 2024)
        assert replay.distributed == 2000.0
        assert replay.snapshot[AssetSymbol.LARGE_CAP_US] == 20.0


@pytest.mark.services
class TestComputeRequiredDistribution:
    def test_required(
        self, store: HoldingsStore, distribution_table: dict[int, float]
    ) -> None:
        result = compute_required_distribution(
            year=2024,
            birth_year=1950,
            account_id=TRADITIONAL_ACCOUNT,
            store=store,
            table=distribution_table,
            eoy_quotes=EOY_QUOTES,
        )
        # 100 BND @ 70 + 15 VV @ 200 + 300 cash + 3900 other
        assert result.status is DistributionStatus.REQUIRED
        assert result.year_end_value == pytest.approx(14200.0)
        assert result.divisor == 25.5
        assert result.minimum == pytest.approx(14200.0 / 25.5)
        assert result.distributed == 3000.0
        assert result.remaining == 0.0

    def test_remaining(self, distribution_table: dict[int, float]) -> None:
        store = _store(
            TransactionFactory(account_id="1", distribution=True, trade_date=date(2024, 3, 1)),
            TransactionFactory(account_id="1", before_boundary=True),
            shares={AssetSymbol.LARGE_CAP_US: 200.0},
        )
        result = compute_required_distribution(
            2024, 1952, "1", store, distribution_table, EOY_QUOTES
        )
        # 40000 / 27.4 at age 72, less the 1000 already taken
        assert result.minimum == pytest.approx(40000.0 / 27.4)
        assert result.remaining == pytest.approx(40000.0 / 27.4 - 1000.0)
        assert result.summary().startswith("Minimum distribution: $1459.85")

    def test_too_young(self, store: HoldingsStore, distribution_table: dict[int, float]) -> None:
        result = compute_required_distribution(
            2024, 1960, TRADITIONAL_ACCOUNT, store, distribution_table, EOY_QUOTES
        )
        assert result.status is DistributionStatus.NOT_REQUIRED
        assert result.summary() == "No distribution needed"

    def test_insufficient_history(self, distribution_table: dict[int, float]) -> None:
        store = _store(TransactionFactory(account_id="1", trade_date=date(2024, 2, 1)))
        result = compute_required_distribution(
            2024, 1940, "1", store, distribution_table, EOY_QUOTES
        )
        assert result.status is DistributionStatus.INSUFFICIENT_HISTORY
        assert result.summary() == "More transaction history needed"

    def test_missing_divisor(self) -> None:
        store = _store(
            TransactionFactory(account_id="1", trade_date=date(2024, 2, 1)),
            TransactionFactory(account_id="1", before_boundary=True),
        )
        result = compute_required_distribution(2024, 1950, "1", store, {72: 27.4}, EOY_QUOTES)
        assert result.status is DistributionStatus.NOT_REQUIRED

    def test_zero_quote_is_rejected(self, store: HoldingsStore) -> None:
        quotes = EOY_QUOTES.with_value(AssetSymbol.LARGE_CAP_US, 0.0)
        with pytest.raises(PricingError, match="VV"):
            compute_required_distribution(
                2024, 1950, TRADITIONAL_ACCOUNT, store, {72: 27.4}, quotes
            )

    def test_empty_table(self, store: HoldingsStore) -> None:
        with pytest.raises(DistributionTableError):
            compute_required_distribution(2024, 1950, TRADITIONAL_ACCOUNT, store, {}, EOY_QUOTES)


@pytest.mark.unit
@pytest.mark.services
class TestRequiredDistributionSummary:
    def test_format(self) -> None:
        result = RequiredDistribution(
            DistributionStatus.REQUIRED, year=2024, age=80, minimum=1500.0, distributed=400.0
        )
        assert result.summary() == (
            "Minimum distribution: $1500.00  So far: $400.00  To go: $1100.00"
        )


@pytest.mark.services
class TestLoadDistributionTable:
    def test_bundled_table(self, distribution_table: dict[int, float]) -> None:
        assert min(distribution_table) == 72
        assert distribution_table[73] == 26.5
        assert distribution_table[120] == 2.0

    def test_wrong_header(self, tmp_path: Path) -> None:
        path = tmp_path / "table.csv"
        path.write_text("Years,Divisor\n72,27.4\n")
        with pytest.raises(DistributionTableError, match="does not match"):
            load_distribution_table(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(DistributionTableError, match="not found"):
            load_distribution_table(tmp_path / "missing.csv")

    def test_no_rows(self, tmp_path: Path) -> None:
        path = tmp_path / "table.csv"
        path.write_text("Age,Distribution Period\n")
        with pytest.raises(DistributionTableError, match="no rows"):
            load_distribution_table(path)

    def test_bad_row(self, tmp_path: Path) -> None:
        path = tmp_path / "table.csv"
        path.write_text("Age,Distribution Period\nseventy,27.4\n")
        with pytest.raises(DistributionTableError, match="Invalid row"):
            load_distribution_table(path)

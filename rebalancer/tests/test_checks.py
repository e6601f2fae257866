from pathlib import Path

from django.test import override_settings

import pytest

from rebalancer.checks import check_distribution_table


@pytest.mark.unit
class TestDistributionTableCheck:
    def test_bundled_table_passes(self) -> None:
        assert check_distribution_table(None) == []

    def test_missing_table(self, tmp_path: Path) -> None:
        with override_settings(REBALANCER_DISTRIBUTION_TABLE=tmp_path / "missing.csv"):
            messages = check_distribution_table(None)
        assert [m.id for m in messages] == ["rebalancer.W001"]

    def test_malformed_table(self, tmp_path: Path) -> None:
        path = tmp_path / "table.csv"
        path.write_text("Years,Divisor\n72,27.4\n")
        with override_settings(REBALANCER_DISTRIBUTION_TABLE=path):
            messages = check_distribution_table(None)
        assert [m.id for m in messages] == ["rebalancer.W002"]

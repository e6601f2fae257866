"""
Root-level pytest fixtures for the rebalancer test suite.

Fixture Hierarchy:
- export_text: A two-section brokerage export with one tax-deferred and one Roth account
- export_file: The same export written to a temporary file
- store: HoldingsStore parsed from export_text
- distribution_table: The bundled IRS Uniform Lifetime Table
"""

from pathlib import Path

from django.conf import settings

import pytest

from rebalancer.domain.assets import AssetSymbol, AssetVector
from rebalancer.services.distributions import load_distribution_table
from rebalancer.services.holdings_store import HoldingsStore
from rebalancer.services.imports import parse_export

TRADITIONAL_ACCOUNT = "11111111"
ROTH_ACCOUNT = "22222222"

EXPORT_TEXT = """\
Account Number,Investment Name,Symbol,Shares,Share Price,Total Value,
11111111,Vanguard Total Bond Market ETF,BND,100.0,72.50,7250.00,
11111111,Vanguard Large-Cap ETF,VV,20.0,250.00,5000.00,
11111111,Vanguard Federal Money Market Fund,VMFXX,500.0,1.00,500.00,
11111111,Apple Inc,AAPL,10.0,190.00,1900.00,
11111111,Microsoft Corp,MSFT,5.0,400.00,2000.00,
22222222,Vanguard FTSE Emerging Markets ETF,VWO,50.0,42.00,2100.00,
22222222,Vanguard Mid-Cap ETF,VO,10.0,240.00,2400.00,
22222222,Total,-,,,4500.00,



Account Number,Trade Date,Settlement Date,Transaction Type,Transaction Description,Investment Name,Symbol,Shares,Share Price,Principal Amount,Commissions and Fees,Net Amount,Accrued Interest,Account Type,
11111111,2024-03-15,2024-03-18,Buy,Buy,Vanguard Large-Cap ETF,VV,5.0,240.00,-1200.00,0.0,-1200.00,0.0,CASH,
11111111,2024-02-01,2024-02-01,Distribution,Distribution,,,0.0,0.0,-3000.00,0.0,-3000.00,0.0,CASH,
11111111,2024-01-10,2024-01-10,Sweep in,Sweep in,Vanguard Federal Money Market Fund,VMFXX,200.0,1.0,200.00,0.0,200.00,0.0,CASH,
11111111,2023-12-15,2023-12-18,Dividend,Dividend,Vanguard Total Bond Market ETF,BND,0.0,0.0,25.00,0.0,25.00,0.0,CASH,
"""


@pytest.fixture
def export_text() -> str:
    return EXPORT_TEXT


@pytest.fixture
def export_file(tmp_path: Path, export_text: str) -> Path:
    path = tmp_path / "OfxDownload.csv"
    path.write_text(export_text, encoding="utf-8")
    return path


@pytest.fixture
def store(export_text: str) -> HoldingsStore:
    return parse_export(export_text)


@pytest.fixture
def distribution_table() -> dict[int, float]:
    return load_distribution_table(settings.REBALANCER_DISTRIBUTION_TABLE)


@pytest.fixture
def quotes() -> AssetVector:
    """Quotes with every tradable bucket priced."""
    return AssetVector.quotes(
        {
            AssetSymbol.LARGE_CAP_US: 250.0,
            AssetSymbol.MID_CAP_US: 240.0,
            AssetSymbol.SMALL_CAP_US: 220.0,
            AssetSymbol.CORP_BOND_US: 78.0,
            AssetSymbol.TOTAL_BOND_US: 72.5,
            AssetSymbol.TOTAL_INTL_STOCK: 60.0,
            AssetSymbol.EMERGING_MKT_STOCK: 42.0,
            AssetSymbol.INTL_BOND: 49.0,
            AssetSymbol.INFLATION_PROTECTED: 48.0,
        }
    )

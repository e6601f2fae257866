from collections.abc import Iterable
from unittest.mock import MagicMock, patch

import numpy as np
import pandas as pd
import pytest

from rebalancer.domain.assets import AssetSymbol, AssetVector
from rebalancer.services.market_data import (
    YahooQuoteProvider,
    fill_missing_quotes,
    year_end_quotes,
)


class FakeQuoteProvider:
    def __init__(self, prices: dict[AssetSymbol, float]) -> None:
        self.prices = prices
        self.requested: list[AssetSymbol] = []
        self.year: int | None = None

    def get_prices(self, symbols: Iterable[AssetSymbol]) -> dict[AssetSymbol, float]:
        self.requested = list(symbols)
        return {s: p for s, p in self.prices.items() if s in self.requested}

    def get_year_end_prices(
        self, symbols: Iterable[AssetSymbol], year: int
    ) -> dict[AssetSymbol, float]:
        self.year = year
        return self.get_prices(symbols)


def _closes(**columns: list[float]) -> dict[str, pd.DataFrame]:
    index = pd.date_range("2024-12-26", periods=len(next(iter(columns.values()))))
    return {"Close": pd.DataFrame(columns, index=index)}


@pytest.mark.services
class TestYahooQuoteProvider:
    @patch("rebalancer.services.market_data.yf.download")
    def test_get_prices(self, mock_download: MagicMock) -> None:
        mock_download.return_value = _closes(VV=[249.0, 250.0], BND=[72.0, np.nan])

        prices = YahooQuoteProvider().get_prices(
            [AssetSymbol.LARGE_CAP_US, AssetSymbol.TOTAL_BOND_US]
        )

        assert mock_download.call_args[0][0] == ["VV", "BND"]
        assert mock_download.call_args.kwargs["auto_adjust"] is True
        # Last non-NaN close per ticker
        assert prices == {AssetSymbol.LARGE_CAP_US: 250.0, AssetSymbol.TOTAL_BOND_US: 72.0}

    @patch("rebalancer.services.market_data.yf.download")
    def test_unpriced_tickers_are_omitted(self, mock_download: MagicMock) -> None:
        mock_download.return_value = _closes(VV=[250.0], VB=[np.nan])

        prices = YahooQuoteProvider().get_prices(
            [AssetSymbol.LARGE_CAP_US, AssetSymbol.SMALL_CAP_US, AssetSymbol.INTL_BOND]
        )

        assert prices == {AssetSymbol.LARGE_CAP_US: 250.0}

    @patch("rebalancer.services.market_data.yf.download")
    def test_single_ticker_series(self, mock_download: MagicMock) -> None:
        mock_download.return_value = {"Close": pd.Series([48.1, 48.2])}

        prices = YahooQuoteProvider().get_prices([AssetSymbol.INFLATION_PROTECTED])

        assert prices == {AssetSymbol.INFLATION_PROTECTED: 48.2}

    @patch("rebalancer.services.market_data.yf.download")
    def test_download_failure_returns_nothing(self, mock_download: MagicMock) -> None:
        mock_download.side_effect = RuntimeError("rate limited")

        assert YahooQuoteProvider().get_prices([AssetSymbol.LARGE_CAP_US]) == {}

    @patch("rebalancer.services.market_data.yf.download")
    def test_empty_download(self, mock_download: MagicMock) -> None:
        mock_download.return_value = {"Close": pd.DataFrame()}

        assert YahooQuoteProvider().get_prices([AssetSymbol.LARGE_CAP_US]) == {}

    def test_no_symbols(self) -> None:
        assert YahooQuoteProvider().get_prices([]) == {}

    @patch("rebalancer.services.market_data.yf.download")
    def test_year_end_prices_use_unadjusted_closes(self, mock_download: MagicMock) -> None:
        mock_download.return_value = _closes(VXUS=[58.0, 59.5])

        prices = YahooQuoteProvider().get_year_end_prices([AssetSymbol.TOTAL_INTL_STOCK], 2023)

        kwargs = mock_download.call_args.kwargs
        assert kwargs["auto_adjust"] is False
        assert kwargs["start"] == "2023-12-21"
        assert kwargs["end"] == "2024-01-01"
        assert prices == {AssetSymbol.TOTAL_INTL_STOCK: 59.5}


@pytest.mark.unit
@pytest.mark.services
class TestQuoteHelpers:
    def test_fill_missing_quotes_only_requests_placeholders(self) -> None:
        quotes = AssetVector.quotes({AssetSymbol.LARGE_CAP_US: 250.0})
        provider = FakeQuoteProvider({AssetSymbol.SMALL_CAP_US: 220.0})

        filled = fill_missing_quotes(quotes, provider)

        assert AssetSymbol.LARGE_CAP_US not in provider.requested
        assert filled[AssetSymbol.SMALL_CAP_US] == 220.0
        assert filled[AssetSymbol.LARGE_CAP_US] == 250.0
        # Unpriced slots keep the placeholder
        assert filled[AssetSymbol.INTL_BOND] == 1.0

    def test_fill_missing_quotes_with_nothing_missing(self, quotes: AssetVector) -> None:
        provider = FakeQuoteProvider({})
        assert fill_missing_quotes(quotes, provider) is quotes
        assert provider.requested == []

    def test_year_end_quotes(self) -> None:
        provider = FakeQuoteProvider({AssetSymbol.TOTAL_BOND_US: 71.0})

        result = year_end_quotes(provider, 2023)

        assert provider.year == 2023
        assert result[AssetSymbol.TOTAL_BOND_US] == 71.0
        assert result[AssetSymbol.LARGE_CAP_US] == 1.0

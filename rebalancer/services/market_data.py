"""Per-share quotes for the nine buckets, fetched from Yahoo Finance."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from typing import Protocol

import pandas as pd
import structlog
import yfinance as yf

from rebalancer.domain.assets import AssetSymbol, AssetVector

logger = structlog.get_logger(__name__)

# Calendar days looked back from Dec 31 to find the last trading session.
YEAR_END_LOOKBACK_DAYS = 10


class QuoteProvider(Protocol):
    """Anything that can price bucket tickers.

    Symbols the provider cannot price are left out of the returned mapping;
    callers never see a zero or NaN price.
    """

    def get_prices(self, symbols: Iterable[AssetSymbol]) -> dict[AssetSymbol, float]: ...

    def get_year_end_prices(
        self, symbols: Iterable[AssetSymbol], year: int
    ) -> dict[AssetSymbol, float]: ...


class YahooQuoteProvider:
    """Quote provider backed by ``yfinance.download``."""

    def get_prices(self, symbols: Iterable[AssetSymbol]) -> dict[AssetSymbol, float]:
        """
        Fetch the latest close for each symbol.

        Args:
            symbols: Buckets to price

        Returns:
            Dictionary mapping symbol -> last close. Symbols without a usable
            price are omitted.
        """
        symbols = list(symbols)
        if not symbols:
            return {}
        try:
            data = yf.download(
                [s.ticker for s in symbols], period="5d", progress=False, auto_adjust=True
            )["Close"]
        except Exception as e:
            logger.error("quote_download_failed", tickers=[s.ticker for s in symbols], error=str(e))
            return {}
        return _last_closes(data, symbols)

    def get_year_end_prices(
        self, symbols: Iterable[AssetSymbol], year: int
    ) -> dict[AssetSymbol, float]:
        """
        Fetch the final unadjusted close of ``year`` for each symbol.

        Args:
            symbols: Buckets to price
            year: Calendar year whose last trading session is wanted

        Returns:
            Dictionary mapping symbol -> year-end close
        """
        symbols = list(symbols)
        if not symbols:
            return {}
        year_end = date(year, 12, 31)
        start = year_end - timedelta(days=YEAR_END_LOOKBACK_DAYS)
        try:
            # end is exclusive
            data = yf.download(
                [s.ticker for s in symbols],
                start=start.isoformat(),
                end=(year_end + timedelta(days=1)).isoformat(),
                progress=False,
                auto_adjust=False,
            )["Close"]
        except Exception as e:
            logger.error(
                "year_end_quote_download_failed",
                tickers=[s.ticker for s in symbols],
                year=year,
                error=str(e),
            )
            return {}
        return _last_closes(data, symbols)


def _last_closes(
    data: pd.DataFrame | pd.Series, symbols: list[AssetSymbol]
) -> dict[AssetSymbol, float]:
    """Pull the last non-NaN close per ticker out of a ``yf.download`` frame."""
    if isinstance(data, pd.Series):
        # Older yfinance returns a bare Series for a single ticker
        data = data.to_frame(name=symbols[0].ticker)

    prices: dict[AssetSymbol, float] = {}
    if data.empty:
        logger.warning("quote_download_empty", tickers=[s.ticker for s in symbols])
        return prices

    for symbol in symbols:
        if symbol.ticker not in data.columns:
            logger.warning("quote_missing", ticker=symbol.ticker)
            continue
        closes = data[symbol.ticker].dropna()
        if closes.empty:
            logger.warning("quote_is_nan", ticker=symbol.ticker)
            continue
        price = float(closes.iloc[-1])
        if price <= 0:
            logger.warning("quote_not_positive", ticker=symbol.ticker, price=price)
            continue
        prices[symbol] = price
    return prices


def fill_missing_quotes(quotes: AssetVector, provider: QuoteProvider) -> AssetVector:
    """Price every tradable slot still at the 1.0 placeholder.

    Slots the provider cannot price keep their 1.0 placeholder.
    """
    missing = quotes.missing_quotes()
    if not missing:
        return quotes
    prices = provider.get_prices(missing)
    logger.info(
        "missing_quotes_filled",
        requested=[s.ticker for s in missing],
        filled=[s.ticker for s in prices],
    )
    for symbol, price in prices.items():
        quotes = quotes.with_value(symbol, price)
    return quotes


def year_end_quotes(provider: QuoteProvider, year: int) -> AssetVector:
    """Quote vector of year-end closes for every tradable bucket."""
    prices = provider.get_year_end_prices(AssetSymbol.tradable(), year)
    unpriced = [s.ticker for s in AssetSymbol.tradable() if s not in prices]
    if unpriced:
        logger.warning("year_end_quotes_incomplete", year=year, unpriced=unpriced)
    return AssetVector.quotes(prices)

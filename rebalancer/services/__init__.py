from .holdings_store import HoldingsStore
from .market_data import QuoteProvider, YahooQuoteProvider

__all__ = [
    "HoldingsStore",
    "QuoteProvider",
    "YahooQuoteProvider",
]

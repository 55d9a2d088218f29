"""
External collaborators of the grid bot: price/quote source and trade executor.
"""

from providers.executor import RelayExecutor, SimulatedExecutor
from providers.interfaces import (
    HistorySink,
    PriceSource,
    QuoteProvider,
    StateStore,
    TradeExecutor,
)
from providers.quote_service import AggregatorQuoteService, coin_decimals

__all__ = [
    "PriceSource",
    "QuoteProvider",
    "TradeExecutor",
    "StateStore",
    "HistorySink",
    "AggregatorQuoteService",
    "SimulatedExecutor",
    "RelayExecutor",
    "coin_decimals",
]

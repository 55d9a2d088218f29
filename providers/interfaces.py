"""
Collaborator protocols used by the grid bot.

The bot only depends on these shapes, so tests can hand in simple fakes.
"""

from decimal import Decimal
from typing import Any, Dict, Optional, Protocol, Tuple

from strategies.grid.models import (
    PersistedState,
    QuoteRecord,
    QuoteResult,
    TradeDirection,
    TradeIntent,
    TradeOutcome,
)


class PriceSource(Protocol):
    async def get_market_price(self, coin_type_a: str, coin_type_b: str) -> Optional[Decimal]:
        """Current price of A in units of B, or None when unavailable."""
        ...


class QuoteProvider(Protocol):
    async def get_quote(
        self,
        direction: TradeDirection,
        coin_type_a: str,
        coin_type_b: str,
        amount_in: int,
        slippage_bps: int,
    ) -> Tuple[Optional[QuoteResult], QuoteRecord]:
        """
        Quote a fixed-input swap.

        Returns the priced quote (None on failure) together with the record of
        the attempt, so the caller can forward it to history.
        """
        ...


class TradeExecutor(Protocol):
    async def execute_trade(self, intent: TradeIntent, quote: QuoteResult) -> TradeOutcome:
        ...

    async def get_balances(self) -> Dict[str, int]:
        ...


class StateStore(Protocol):
    async def load_state(self, account_id: str) -> Optional[PersistedState]:
        ...

    async def save_state(self, state: PersistedState) -> None:
        ...


class HistorySink(Protocol):
    """Trade/quote/event history. Implementations must never raise."""

    async def record_trade(
        self,
        intent: TradeIntent,
        quote: QuoteResult,
        outcome: TradeOutcome,
        price: Decimal,
    ) -> None:
        ...

    async def record_quote(self, record: QuoteRecord) -> None:
        ...

    async def record_event(self, level: str, message: str, **fields: Any) -> None:
        ...

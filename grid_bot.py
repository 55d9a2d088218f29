"""
Grid Bot - periodic tick loop driving the grid strategy
"""

import asyncio
import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from helpers.unified_logger import get_bot_logger
from providers.interfaces import HistorySink, PriceSource, QuoteProvider, StateStore, TradeExecutor
from providers.quote_service import coin_decimals
from strategies.grid.config import GridConfig
from strategies.grid.geometry import to_base_units
from strategies.grid.models import (
    PersistedState,
    QuoteResult,
    TradeDirection,
    TradeIntent,
    TradeOutcome,
)
from strategies.grid.strategy import GridStrategy


PRICE_CACHE_TTL_SECONDS = 10.0


class TickResult(Enum):
    """How a single tick ended."""
    SKIPPED_BUSY = "skipped_busy"
    PRICE_UNAVAILABLE = "price_unavailable"
    NO_ACTION = "no_action"
    PERSIST_FAILED = "persist_failed"
    QUOTE_UNAVAILABLE = "quote_unavailable"
    TRADE_SUCCEEDED = "trade_succeeded"
    TRADE_FAILED = "trade_failed"
    ERROR = "error"


@dataclass
class BotContext:
    """Runtime bookkeeping surfaced through the status endpoint."""
    running: bool = False
    last_tick: Optional[float] = None
    last_price: Optional[Decimal] = None
    last_price_at: Optional[float] = None
    last_error: Optional[str] = None
    last_result: Optional[TickResult] = None
    tick_count: int = 0
    balances: Dict[str, int] = field(default_factory=lambda: {"a": 0, "b": 0})
    consecutive_persist_failures: int = 0


class GridBot:
    """
    Drives the grid strategy on a fixed cadence.

    Each tick fetches a price, lets the strategy decide, and when a band is
    crossed quotes and executes a single swap. Ticks never overlap: a tick
    requested while another is running is skipped, and config updates or
    baseline resets wait for the running tick to finish.
    """

    def __init__(
        self,
        strategy: GridStrategy,
        price_source: PriceSource,
        quote_provider: QuoteProvider,
        executor: TradeExecutor,
        store: StateStore,
        history: HistorySink,
        *,
        account_id: str,
        tick_interval: float = 1.0,
        execution_timeout: float = 60.0,
        simulation: bool = False,
        price_cache_ttl: float = PRICE_CACHE_TTL_SECONDS,
    ):
        self.strategy = strategy
        self.price_source = price_source
        self.quote_provider = quote_provider
        self.executor = executor
        self.store = store
        self.history = history
        self.account_id = account_id
        self.tick_interval = tick_interval
        self.execution_timeout = execution_timeout
        self.simulation = simulation
        self.price_cache_ttl = price_cache_ttl

        self.context = BotContext()
        self.logger = get_bot_logger("grid", account=account_id[:10])

        self._tick_lock = asyncio.Lock()
        self._wake = asyncio.Event()
        self._loop_task: Optional[asyncio.Task] = None
        self._persist_dirty = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Restore persisted state and read initial balances."""
        persisted = await self.store.load_state(self.account_id)
        if persisted is not None:
            state = persisted.grid_state.copy()
            if state.in_flight:
                self.logger.warning(
                    "Persisted state has a trade in flight from a previous run; clearing it"
                )
                state.in_flight = False
            self.strategy.update_state(state)
            self.logger.info(f"Loaded persisted state, last_band={state.last_band}")

            if persisted.config and self._persisted_geometry_differs(persisted.config):
                self.logger.warning(
                    "Grid geometry differs from the persisted config; band baseline will be re-established"
                )
                self.strategy.reset_baseline()

        await self._refresh_balances()

    def _persisted_geometry_differs(self, snapshot: Dict[str, Any]) -> bool:
        try:
            previous = GridConfig.model_validate(snapshot)
        except ValueError as e:
            self.logger.warning(f"Ignoring unreadable persisted config: {e}")
            return False
        return previous.geometry_differs(self.strategy.get_config())

    @property
    def running(self) -> bool:
        return self.context.running

    @property
    def stopping(self) -> bool:
        """True while a stopped loop is still finishing its last tick."""
        return (
            not self.context.running
            and self._loop_task is not None
            and not self._loop_task.done()
        )

    def start(self) -> bool:
        """
        Start the tick loop.

        Returns False if it is already running, or if a ``stop()`` is still
        waiting for the previous loop's tick to finish.
        """
        if self.context.running:
            self.logger.info("Bot is already running")
            return False
        if self.stopping:
            self.logger.warning("Bot is still stopping; start refused until the running tick finishes")
            return False

        self.context.running = True
        self.context.last_error = None
        self._wake.clear()
        self._loop_task = asyncio.create_task(self._run_loop())
        self.logger.info(f"Bot started (tick interval: {self.tick_interval}s)")
        return True

    async def stop(self) -> bool:
        """
        Stop the tick loop.

        A tick in progress is allowed to finish (including its persistence
        step); it is never cancelled. Returns False if the bot was not running.
        """
        if not self.context.running and self._loop_task is None:
            self.logger.info("Bot is already stopped")
            return False

        self.context.running = False
        self._wake.set()
        task = self._loop_task
        if task is not None:
            await task
            if self._loop_task is task:
                self._loop_task = None
        self.logger.info("Bot stopped")
        return True

    async def _run_loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_fire = loop.time()
        while self.context.running:
            await self.tick()

            next_fire += self.tick_interval
            now = loop.time()
            if next_fire <= now:
                skipped = int((now - next_fire) // self.tick_interval) + 1
                self.logger.debug(f"Tick overran its interval; dropping {skipped} firing(s)")
                next_fire += skipped * self.tick_interval

            try:
                await asyncio.wait_for(self._wake.wait(), timeout=next_fire - now)
            except asyncio.TimeoutError:
                pass

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    async def tick(self) -> TickResult:
        """Run one tick, or return ``SKIPPED_BUSY`` if one is already running."""
        if self._tick_lock.locked():
            self.logger.debug("Previous tick still running; skipping")
            return TickResult.SKIPPED_BUSY

        async with self._tick_lock:
            result = await self._run_tick()
        self.context.last_result = result
        return result

    async def _run_tick(self) -> TickResult:
        ctx = self.context
        ctx.last_tick = time.time()
        ctx.tick_count += 1
        config = self.strategy.get_config()

        try:
            price = await self.price_source.get_market_price(config.coin_type_a, config.coin_type_b)
        except Exception as e:
            self.logger.warning(f"Price fetch raised: {e}")
            price = None

        if price is None:
            self.logger.warning("Failed to get market price, skipping this tick")
            await self.history.record_event("WARNING", "Price fetch failed")
            return TickResult.PRICE_UNAVAILABLE
        if price <= 0:
            self.logger.warning(f"Ignoring non-positive market price {price}, skipping this tick")
            await self.history.record_event("WARNING", "Price fetch failed", price=str(price))
            return TickResult.PRICE_UNAVAILABLE

        ctx.last_price = price
        ctx.last_price_at = time.time()

        try:
            previous_state = self.strategy.get_state()
            decision = self.strategy.decide(price)
            self.strategy.update_state(decision.next_state)

            if not decision.has_action:
                if decision.next_state != previous_state or self._persist_dirty:
                    await self._persist_state()
                return TickResult.NO_ACTION

            intent = decision.intent
            self.logger.info(
                f"Price {price} crossed into band {decision.next_state.last_band}: "
                f"{intent.direction.value} x{intent.grid_steps} @ trigger {intent.trigger_price}"
            )
            # the in-flight state must be durable before any trading call
            if not await self._persist_state():
                self.logger.warning(
                    f"Checkpoint failed, skipping {intent.direction.value}; state is retried next tick"
                )
                self.strategy.mark_trade_complete(False)
                await self.history.record_event(
                    "WARNING",
                    "State checkpoint failed, trade skipped",
                    action=intent.direction.value,
                    grid_steps=intent.grid_steps,
                )
                return TickResult.PERSIST_FAILED
            return await self._execute_intent(config, intent, price)

        except Exception as e:
            self.logger.exception(f"Tick error: {e}")
            ctx.last_error = str(e)
            await self.history.record_event("ERROR", "Tick error", error=str(e))
            self.strategy.mark_trade_complete(False)
            await self._persist_state()
            return TickResult.ERROR

    def _order_size(self, config: GridConfig, intent: TradeIntent, price: Decimal) -> int:
        """Input amount in base units: BUY spends coin B, SELL spends the equivalent coin A."""
        if intent.direction is TradeDirection.BUY:
            return to_base_units(intent.amount_in, coin_decimals(config.coin_type_b))
        return to_base_units(intent.amount_in / price, coin_decimals(config.coin_type_a))

    async def _execute_intent(self, config: GridConfig, intent: TradeIntent, price: Decimal) -> TickResult:
        amount_in = self._order_size(config, intent, price)
        if amount_in <= 0:
            raise ValueError(f"Order size for {intent.direction.value} rounds to zero base units")

        quote, record = await self.quote_provider.get_quote(
            intent.direction,
            config.coin_type_a,
            config.coin_type_b,
            amount_in,
            config.slippage_bps,
        )
        await self.history.record_quote(record)

        if quote is None:
            self.logger.warning(f"Failed to get quote, aborting {intent.direction.value}")
            self.strategy.mark_trade_complete(False)
            await self.history.record_event(
                "WARNING", "Quote fetch failed", action=intent.direction.value, error=record.error
            )
            await self._persist_state()
            return TickResult.QUOTE_UNAVAILABLE

        self.logger.info(
            f"Quote: in={quote.amount_in}, est={quote.estimated_out}, min={quote.min_out}"
        )

        outcome = await self._execute_with_timeout(intent, quote)
        await self.history.record_trade(intent, quote, outcome, price)
        self.strategy.mark_trade_complete(outcome.success)

        if outcome.success:
            self.logger.info(f"Trade executed: {outcome.settlement_reference}")
            await self._refresh_balances()
            result = TickResult.TRADE_SUCCEEDED
        else:
            self.logger.error(f"Trade failed: {outcome.error}")
            self.context.last_error = outcome.error
            result = TickResult.TRADE_FAILED

        await self._persist_state()
        return result

    async def _execute_with_timeout(self, intent: TradeIntent, quote: QuoteResult) -> TradeOutcome:
        try:
            return await asyncio.wait_for(
                self.executor.execute_trade(intent, quote),
                timeout=self.execution_timeout,
            )
        except asyncio.TimeoutError:
            return TradeOutcome(
                success=False,
                settlement_reference="",
                timestamp=time.time(),
                error=f"Execution timed out after {self.execution_timeout}s",
            )

    async def _persist_state(self) -> bool:
        """Save the current state; failures are logged and retried on a later tick."""
        snapshot = PersistedState(
            account_id=self.account_id,
            grid_state=self.strategy.get_state(),
            config=self.strategy.get_config().to_snapshot(),
            updated_at=time.time(),
        )
        try:
            await self.store.save_state(snapshot)
        except Exception as e:
            self.context.consecutive_persist_failures += 1
            self._persist_dirty = True
            self.logger.error(
                f"Failed to persist state ({self.context.consecutive_persist_failures} in a row): {e}"
            )
            return False

        self.context.consecutive_persist_failures = 0
        self._persist_dirty = False
        return True

    async def _refresh_balances(self) -> None:
        try:
            self.context.balances = dict(await self.executor.get_balances())
        except Exception as e:
            self.logger.warning(f"Failed to refresh balances: {e}")

    # ------------------------------------------------------------------
    # Operator surface
    # ------------------------------------------------------------------

    async def update_config(self, **changes: Any) -> GridConfig:
        """
        Apply a validated config update between ticks.

        Raises:
            pydantic.ValidationError: If the merged config is invalid
        """
        async with self._tick_lock:
            new_config = self.strategy.update_config(**changes)
            self.logger.info(f"Config updated: {sorted(changes)}")
            await self.history.record_event("INFO", "Config updated", changes=sorted(changes))
            await self._persist_state()
        return new_config

    async def reset_baseline(self) -> None:
        """Forget the last band; the next observed price becomes the new baseline."""
        async with self._tick_lock:
            self.strategy.reset_baseline()
            self.logger.info("Band baseline reset")
            await self.history.record_event("INFO", "Band baseline reset")
            await self._persist_state()

    async def get_market_price(self) -> Tuple[Optional[Decimal], Optional[float]]:
        """Latest price and its timestamp, refreshed when older than the cache TTL."""
        ctx = self.context
        now = time.time()
        if ctx.last_price is not None and ctx.last_price_at is not None:
            if now - ctx.last_price_at < self.price_cache_ttl:
                return ctx.last_price, ctx.last_price_at

        config = self.strategy.get_config()
        try:
            price = await self.price_source.get_market_price(config.coin_type_a, config.coin_type_b)
        except Exception as e:
            self.logger.warning(f"Market price lookup failed: {e}")
            price = None

        if price is not None and price > 0:
            ctx.last_price = price
            ctx.last_price_at = time.time()
        return ctx.last_price, ctx.last_price_at

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of the bot for the status endpoint."""
        ctx = self.context
        state = self.strategy.get_state()
        price = ctx.last_price
        return {
            "running": ctx.running,
            "account_id": self.account_id,
            "simulation": self.simulation,
            "balances": {key: str(value) for key, value in ctx.balances.items()},
            "grid_state": state.to_dict(),
            "current_band": self.strategy.get_current_band(price) if price is not None else None,
            "last_price": float(price) if price is not None else None,
            "last_price_at": ctx.last_price_at,
            "last_tick": ctx.last_tick,
            "last_error": ctx.last_error,
            "last_result": ctx.last_result.value if ctx.last_result else None,
            "tick_count": ctx.tick_count,
            "consecutive_persist_failures": ctx.consecutive_persist_failures,
            "tick_interval_ms": int(self.tick_interval * 1000),
        }

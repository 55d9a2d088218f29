"""
Grid Trading Strategy

Holds the active grid configuration and band-tracking state and exposes the
operations the bot loop and the control API need. All decisions are
delegated to the pure decision engine.
"""

import time
from decimal import Decimal
from typing import Any, List, Optional

from helpers.unified_logger import get_strategy_logger

from .config import GridConfig
from .decision import decide_grid_action
from .geometry import compute_boundaries, locate_band
from .models import GridDecision, GridState


class GridStrategy:
    """
    Grid trading strategy.

    The strategy:
    1. Splits [lower_price, upper_price] into ``levels`` bands
    2. Sells when price climbs into a higher band
    3. Buys when price falls into a lower band
    4. Emits at most one trade per crossing, never while one is in flight
    """

    def __init__(
        self,
        config: GridConfig,
        initial_state: Optional[GridState] = None,
        account_id: Optional[str] = None,
    ):
        self.config = config
        self.state = initial_state.copy() if initial_state else GridState()

        context = {"account": account_id} if account_id else {}
        self.logger = get_strategy_logger("grid", **context)

        self.logger.info("Grid strategy initialized with parameters:")
        self.logger.info(f"  - Range: {config.lower_price} .. {config.upper_price}")
        self.logger.info(f"  - Levels: {config.levels} (step {config.grid_step})")
        self.logger.info(f"  - Amount per grid: {config.amount_per_grid}")
        self.logger.info(f"  - Slippage: {config.slippage_bps} bps")
        if self.state.last_band is not None:
            self.logger.info(f"  - Resuming from band {self.state.last_band}")

    def get_state(self) -> GridState:
        """Return a copy of the current state."""
        return self.state.copy()

    def get_config(self) -> GridConfig:
        return self.config

    def update_config(self, **changes: Any) -> GridConfig:
        """
        Apply validated config changes.

        When the band geometry changes, the stored band index no longer refers
        to the same price interval, so the baseline is cleared and re-learned
        on the next observation.

        Raises:
            pydantic.ValidationError: if the merged config is invalid
        """
        new_config = self.config.with_updates(**changes)
        if new_config.geometry_differs(self.config) and self.state.last_band is not None:
            self.logger.warning(
                "Grid geometry changed; band baseline will be re-established on next tick"
            )
            self.state.last_band = None
        self.config = new_config
        return new_config

    def decide(self, price: Decimal) -> GridDecision:
        """Run the decision engine against the current config and state."""
        return decide_grid_action(self.config, self.state, price)

    def update_state(self, new_state: GridState) -> None:
        self.state = new_state.copy()

    def mark_trade_complete(self, success: bool) -> None:
        """Resolve the in-flight trade; stamp the trade time on success."""
        self.state.in_flight = False
        if success:
            self.state.last_trade_time = time.time()

    def reset_baseline(self) -> None:
        """Forget the last band so the next price re-establishes it without trading."""
        self.state.last_band = None

    def get_grid_lines(self) -> List[Decimal]:
        return compute_boundaries(self.config.lower_price, self.config.upper_price, self.config.levels)

    def get_current_band(self, price: Decimal) -> int:
        return locate_band(self.get_grid_lines(), price)

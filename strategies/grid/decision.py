"""
Grid decision engine.

``decide_grid_action`` is a pure function of (config, state, price). Rules,
evaluated in order:

1. A trade is in flight: do nothing, never queue a second trade.
2. No baseline band yet: record the current band, do not trade.
3. Band unchanged: do nothing.
4. Band rose: SELL once for all bands crossed.
5. Band fell: BUY once for all bands crossed.

When trading, ``last_band`` jumps straight to the current band so a large
move yields a single intent sized by the number of bands crossed, and the
same price cannot trigger again on the next tick.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from .config import GridConfig
from .geometry import compute_boundaries, locate_band
from .models import GridDecision, GridState, TradeDirection, TradeIntent


def decide_grid_action(config: GridConfig, state: GridState, price: Decimal) -> GridDecision:
    """Decide whether ``price`` warrants a trade and compute the next state."""
    if state.in_flight:
        return GridDecision(intent=None, next_state=state)

    boundaries = compute_boundaries(config.lower_price, config.upper_price, config.levels)
    current_band = locate_band(boundaries, price)

    if state.last_band is None:
        return GridDecision(intent=None, next_state=replace(state, last_band=current_band))

    last_band = state.last_band
    if not 0 <= last_band < config.levels:
        # A band index from a different geometry; re-baseline instead of trading on it.
        return GridDecision(intent=None, next_state=replace(state, last_band=current_band))

    if current_band == last_band:
        return GridDecision(intent=None, next_state=state)

    if current_band > last_band:
        direction = TradeDirection.SELL
        grid_steps = current_band - last_band
        trigger_price = boundaries[last_band + 1]
    else:
        direction = TradeDirection.BUY
        grid_steps = last_band - current_band
        trigger_price = boundaries[last_band]

    intent = TradeIntent(
        direction=direction,
        trigger_price=trigger_price,
        grid_steps=grid_steps,
        amount_in=config.amount_per_grid * grid_steps,
    )
    next_state = replace(state, last_band=current_band, in_flight=True)
    return GridDecision(intent=intent, next_state=next_state)

"""
Grid Trading Strategy Implementation

A "buy-low, sell-high" grid over a fixed price range that:
- Divides [lower_price, upper_price] into equal bands
- Sells when price rises across band boundaries, buys when it falls
- Merges a multi-band move into a single trade sized by bands crossed
- Never decides a new trade while one is in flight
"""

from .config import GridConfig
from .decision import decide_grid_action
from .geometry import compute_boundaries, compute_min_out, locate_band
from .models import (
    GridDecision,
    GridState,
    PersistedState,
    QuoteRecord,
    QuoteResult,
    TradeDirection,
    TradeIntent,
    TradeOutcome,
    TradeRecord,
)
from .strategy import GridStrategy

__all__ = [
    'GridStrategy',
    'GridConfig',
    'GridState',
    'GridDecision',
    'TradeDirection',
    'TradeIntent',
    'QuoteResult',
    'QuoteRecord',
    'TradeOutcome',
    'TradeRecord',
    'PersistedState',
    'compute_boundaries',
    'locate_band',
    'compute_min_out',
    'decide_grid_action',
]

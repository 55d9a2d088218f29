"""
Grid Trading Strategy Data Models

Data structures shared by the decision engine, the bot loop and storage.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class TradeDirection(Enum):
    """Direction of a grid trade."""
    SELL = "SELL"   # price rose through a boundary: swap A -> B
    BUY = "BUY"     # price fell through a boundary: swap B -> A

    @property
    def swap_side(self) -> str:
        return "A2B" if self is TradeDirection.SELL else "B2A"


@dataclass
class GridState:
    """Mutable band-tracking state owned by the bot loop."""
    last_band: Optional[int] = None
    in_flight: bool = False
    last_trade_time: Optional[float] = None

    def copy(self) -> "GridState":
        return GridState(
            last_band=self.last_band,
            in_flight=self.in_flight,
            last_trade_time=self.last_trade_time,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for persistence and status output."""
        return {
            'last_band': self.last_band,
            'in_flight': self.in_flight,
            'last_trade_time': self.last_trade_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'GridState':
        """Create from dictionary."""
        last_band = data.get('last_band')
        last_trade_time = data.get('last_trade_time')
        return cls(
            last_band=int(last_band) if last_band is not None else None,
            in_flight=bool(data.get('in_flight', False)),
            last_trade_time=float(last_trade_time) if last_trade_time is not None else None,
        )


@dataclass(frozen=True)
class TradeIntent:
    """A single trade decided for the current tick."""
    direction: TradeDirection
    trigger_price: Decimal
    grid_steps: int
    amount_in: Decimal  # coin B notional; finalised into base units by the quote step


@dataclass(frozen=True)
class GridDecision:
    """Result of one decision: an optional intent plus the proposed next state."""
    intent: Optional[TradeIntent]
    next_state: GridState

    @property
    def has_action(self) -> bool:
        return self.intent is not None


@dataclass
class QuoteResult:
    """Priced, slippage-bounded swap returned by the quote provider."""
    side: str                       # "A2B" | "B2A"
    amount_in: int                  # base units of the input coin
    estimated_out: int              # base units of the output coin
    min_out: int
    price: Decimal                  # output per input, human units
    price_impact: Optional[float] = None
    route: Any = None               # opaque routing detail for the executor
    quote_id: Optional[str] = None


@dataclass
class QuoteRecord:
    """Every quote attempt, successful or not, kept for the quote history."""
    id: str
    timestamp: float
    side: str
    from_coin: str
    target_coin: str
    amount_in: str
    amount_out: str = "0"
    min_out: str = "0"
    price: Optional[float] = None
    price_impact: Optional[float] = None
    by_amount_in: bool = True
    quote_id: Optional[str] = None
    status: str = "failure"
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'side': self.side,
            'from_coin': self.from_coin,
            'target_coin': self.target_coin,
            'amount_in': self.amount_in,
            'amount_out': self.amount_out,
            'min_out': self.min_out,
            'price': self.price,
            'price_impact': self.price_impact,
            'by_amount_in': self.by_amount_in,
            'quote_id': self.quote_id,
            'status': self.status,
            'error': self.error,
        }


@dataclass
class TradeOutcome:
    """Resolution of an executed trade."""
    success: bool
    settlement_reference: str       # transaction digest, "" when nothing was submitted
    timestamp: float
    amount_out: int = 0
    error: Optional[str] = None
    events: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def status(self) -> str:
        return "success" if self.success else "failure"


@dataclass
class TradeRecord:
    """Historical trade row."""
    id: str
    digest: str
    timestamp: float
    side: str
    amount_in: str
    amount_out: str
    price: float
    status: str
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'digest': self.digest,
            'timestamp': self.timestamp,
            'side': self.side,
            'amount_in': self.amount_in,
            'amount_out': self.amount_out,
            'price': self.price,
            'status': self.status,
            'error': self.error,
        }


@dataclass
class PersistedState:
    """State record stored per trading account."""
    account_id: str
    grid_state: GridState
    config: Dict[str, Any]
    updated_at: float

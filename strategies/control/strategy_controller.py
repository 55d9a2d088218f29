"""
Strategy Controller - Abstract base for the operations the control API exposes
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


CONTROL_COMMANDS = ("start", "stop", "pause", "resume", "reset")


class BaseStrategyController(ABC):
    """Abstract base class for strategy-specific control operations"""

    @abstractmethod
    def get_strategy_name(self) -> str:
        """Get the strategy name."""

    @abstractmethod
    async def get_status(self) -> Dict[str, Any]:
        """Bot status snapshot (running flag, state, balances, last price, errors)."""

    @abstractmethod
    async def get_market_price(self) -> Dict[str, Any]:
        """``{"price": float | None, "timestamp": float | None}``"""

    @abstractmethod
    def get_config(self) -> Dict[str, Any]:
        """Active strategy config as JSON-friendly values."""

    @abstractmethod
    async def update_config(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply config changes.

        Raises:
            pydantic.ValidationError: If the resulting config is invalid
        """

    @abstractmethod
    async def control(self, command: str) -> Dict[str, Any]:
        """
        Run one of ``CONTROL_COMMANDS``.

        Raises:
            ValueError: For an unknown command
        """

    @abstractmethod
    async def get_trades(self, limit: int, offset: int) -> Dict[str, Any]:
        """Trade history, newest first."""

    @abstractmethod
    async def get_quotes(self, limit: int, offset: int, side: Optional[str] = None) -> Dict[str, Any]:
        """Quote history, newest first."""

    @abstractmethod
    async def get_logs(self, limit: int, level: Optional[str] = None) -> Dict[str, Any]:
        """Operator event log, newest first."""

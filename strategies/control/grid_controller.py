"""
Grid Bot Controller - adapts a running GridBot and its history to the control API
"""

from typing import Any, Dict, Optional

from database.repositories import LogRepository, QuoteRepository, TradeRepository
from grid_bot import GridBot
from helpers.unified_logger import get_service_logger
from strategies.control.strategy_controller import CONTROL_COMMANDS, BaseStrategyController


class GridBotController(BaseStrategyController):
    """Controller for the grid bot"""

    def __init__(
        self,
        bot: GridBot,
        trades: TradeRepository,
        quotes: QuoteRepository,
        logs: LogRepository,
    ):
        self.bot = bot
        self.trades = trades
        self.quotes = quotes
        self.logs = logs
        self.logger = get_service_logger("control_api", account=bot.account_id[:10])

    def get_strategy_name(self) -> str:
        return "grid"

    async def get_status(self) -> Dict[str, Any]:
        status = self.bot.get_status()
        if status["last_price"] is None:
            price, timestamp = await self.bot.get_market_price()
            status["last_price"] = float(price) if price is not None else None
            status["last_price_at"] = timestamp
        return status

    async def get_market_price(self) -> Dict[str, Any]:
        price, timestamp = await self.bot.get_market_price()
        return {
            "price": float(price) if price is not None else None,
            "timestamp": timestamp,
        }

    def get_config(self) -> Dict[str, Any]:
        return self.bot.strategy.get_config().to_snapshot()

    async def update_config(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        config = await self.bot.update_config(**changes)
        return config.to_snapshot()

    async def control(self, command: str) -> Dict[str, Any]:
        if command not in CONTROL_COMMANDS:
            raise ValueError(f"Invalid command. Use: {', '.join(CONTROL_COMMANDS)}")

        self.logger.info(f"Control command: {command}")
        if command in ("start", "resume"):
            if not self.bot.start() and self.bot.stopping:
                return {
                    "success": False,
                    "command": command,
                    "running": False,
                    "error": "Bot is still stopping; retry once the current tick finishes",
                }
        elif command in ("stop", "pause"):
            await self.bot.stop()
        else:
            await self.bot.reset_baseline()
        return {"success": True, "command": command, "running": self.bot.running}

    async def get_trades(self, limit: int, offset: int) -> Dict[str, Any]:
        trades = await self.trades.get_trades(limit=limit, offset=offset)
        stats = await self.trades.get_trade_stats()
        return {"trades": [trade.to_dict() for trade in trades], "stats": stats}

    async def get_quotes(self, limit: int, offset: int, side: Optional[str] = None) -> Dict[str, Any]:
        quotes = await self.quotes.get_quotes(limit=limit, offset=offset, side=side)
        return {"quotes": [quote.to_dict() for quote in quotes]}

    async def get_logs(self, limit: int, level: Optional[str] = None) -> Dict[str, Any]:
        logs = await self.logs.get_logs(limit=limit, level=level)
        return {"logs": logs}

"""
Grid bot history recorder.

Records trades, quotes and operational events for the control API and
post-trade analysis:
- Trades and quotes go to their repositories
- Events go to the log repository and a JSONL file (`logs/grid_events.jsonl`)
- WARNING and above are forwarded to Telegram if credentials are provided

Recording never raises into the bot loop; failures are logged and dropped.
"""

from __future__ import annotations

import asyncio
import json
import os
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

from database.repositories import LogRepository, QuoteRepository, TradeRepository
from helpers.telegram_bot import TelegramBot, format_alert
from helpers.unified_logger import get_core_logger
from providers.quote_service import coin_decimals
from strategies.grid.geometry import from_base_units
from strategies.grid.models import QuoteRecord, QuoteResult, TradeIntent, TradeOutcome, TradeRecord


ALERT_LEVELS = {"WARNING", "ERROR", "CRITICAL"}


def _human(base_units: str, coin_type: str) -> str:
    amount = from_base_units(int(base_units), coin_decimals(coin_type))
    return f"{amount.normalize():f}"


class GridHistoryRecorder:
    """History sink for the grid bot."""

    def __init__(
        self,
        account_id: str,
        *,
        trades: Optional[TradeRepository] = None,
        quotes: Optional[QuoteRepository] = None,
        logs: Optional[LogRepository] = None,
        history_path: Optional[Path] = None,
    ) -> None:
        self.account_id = account_id
        self.trades = trades
        self.quotes = quotes
        self.logs = logs
        self.logger = get_core_logger("history", account=account_id[:10])

        if history_path is None:
            logs_dir = Path(os.getenv("GRIDVAULT_LOG_DIR", "logs"))
            logs_dir.mkdir(parents=True, exist_ok=True)
            history_path = logs_dir / "grid_events.jsonl"
        self.history_path = history_path

        token = os.getenv("GRID_ALERT_TELEGRAM_TOKEN")
        chat_id = os.getenv("GRID_ALERT_TELEGRAM_CHAT_ID")
        self._telegram_bot: Optional[TelegramBot] = None
        if token and chat_id:
            self._telegram_bot = TelegramBot(token=token, chat_id=chat_id)

    async def record_trade(
        self,
        intent: TradeIntent,
        quote: QuoteResult,
        outcome: TradeOutcome,
        price: Decimal,
    ) -> None:
        record = TradeRecord(
            id=uuid.uuid4().hex,
            digest=outcome.settlement_reference,
            timestamp=outcome.timestamp,
            side=intent.direction.swap_side,
            amount_in=str(quote.amount_in),
            amount_out=str(outcome.amount_out),
            price=float(price),
            status=outcome.status,
            error=outcome.error,
        )
        if self.trades is not None:
            try:
                await self.trades.insert_trade(record)
            except Exception as e:
                self.logger.warning(f"Failed to record trade {record.digest or record.id}: {e}")

        level = "INFO" if outcome.success else "ERROR"
        await self.record_event(
            level,
            f"Trade {outcome.status}: {intent.direction.value} x{intent.grid_steps}",
            digest=record.digest,
            side=record.side,
            amount_in=record.amount_in,
            amount_out=record.amount_out,
            price=record.price,
            error=record.error,
        )

    async def record_quote(self, record: QuoteRecord) -> None:
        if self.quotes is not None:
            try:
                await self.quotes.insert_quote(record)
            except Exception as e:
                self.logger.warning(f"Failed to record quote {record.id}: {e}")

        amount_in = _human(record.amount_in, record.from_coin)
        if record.status == "success":
            amount_out = _human(record.amount_out, record.target_coin)
            min_out = _human(record.min_out, record.target_coin)
            await self.record_event(
                "INFO",
                f"Quote {record.side}: in {amount_in} -> out {amount_out} (min {min_out}) price {record.price}",
                quote_id=record.quote_id,
            )
        else:
            await self.record_event(
                "WARNING",
                f"Quote {record.side} failed: {record.error or 'Unknown error'}",
                amount_in=str(amount_in),
            )

    async def record_event(self, level: str, message: str, **fields: Any) -> None:
        level = level.upper()
        fields = {key: value for key, value in fields.items() if value is not None}
        timestamp = time.time()

        if self.logs is not None:
            try:
                await self.logs.write_log(level, message, fields or None, timestamp=timestamp)
            except Exception as e:
                self.logger.warning(f"Failed to write event log: {e}")

        record = {
            "timestamp": datetime.fromtimestamp(timestamp, timezone.utc).isoformat(),
            "account_id": self.account_id,
            "level": level,
            "message": message,
            "fields": fields,
        }
        self._write_history(record)

        if self._telegram_bot and level in ALERT_LEVELS:
            await self._send_telegram(record)

    def _write_history(self, record: Dict[str, Any]) -> None:
        """Append record to the JSONL history file."""
        try:
            with self.history_path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(record, ensure_ascii=False, default=str))
                handle.write("\n")
        except OSError as e:
            self.logger.warning(f"Failed to write history file: {e}")

    async def _send_telegram(self, record: Dict[str, Any]) -> None:
        text = format_alert(record)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._telegram_bot.send_text, text)
        except Exception as e:
            self.logger.warning(f"Telegram alert failed: {e}")

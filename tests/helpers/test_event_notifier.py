import json
import time
from decimal import Decimal

import pytest

from helpers.event_notifier import GridHistoryRecorder
from helpers.telegram_bot import TelegramBot, format_alert
from strategies.grid.models import (
    QuoteRecord,
    QuoteResult,
    TradeDirection,
    TradeIntent,
    TradeOutcome,
)


SUI = "0x2::sui::SUI"
USDC = "0xdba3::usdc::USDC"


class ListRepository:
    """Collects inserted rows; ``fail`` makes every write raise."""

    def __init__(self, fail: bool = False):
        self.rows = []
        self.fail = fail

    async def _add(self, row):
        if self.fail:
            raise RuntimeError("disk I/O error")
        self.rows.append(row)

    async def insert_trade(self, record):
        await self._add(record)

    async def insert_quote(self, record):
        await self._add(record)

    async def write_log(self, level, message, metadata=None, timestamp=None):
        await self._add({"level": level, "message": message, "metadata": metadata})


@pytest.fixture(autouse=True)
def no_telegram(monkeypatch):
    monkeypatch.delenv("GRID_ALERT_TELEGRAM_TOKEN", raising=False)
    monkeypatch.delenv("GRID_ALERT_TELEGRAM_CHAT_ID", raising=False)


def read_history(path):
    return [json.loads(line) for line in path.read_text().splitlines()]


def sell_intent():
    return TradeIntent(TradeDirection.SELL, Decimal("100"), 2, Decimal("20"))


def sell_quote():
    return QuoteResult(side="A2B", amount_in=200_000_000, estimated_out=21_000_000, min_out=20_895_000, price=Decimal("105"))


@pytest.mark.asyncio
async def test_successful_trade_is_stored_and_logged(tmp_path):
    trades, logs = ListRepository(), ListRepository()
    recorder = GridHistoryRecorder("0xvault", trades=trades, logs=logs, history_path=tmp_path / "events.jsonl")
    outcome = TradeOutcome(success=True, settlement_reference="0xabc", timestamp=time.time(), amount_out=21_010_000)

    await recorder.record_trade(sell_intent(), sell_quote(), outcome, Decimal("106"))

    record = trades.rows[0]
    assert record.digest == "0xabc"
    assert record.side == "A2B"
    assert record.amount_in == "200000000"
    assert record.amount_out == "21010000"
    assert record.price == 106.0
    assert record.status == "success"

    assert logs.rows[0]["level"] == "INFO"
    assert logs.rows[0]["message"] == "Trade success: SELL x2"
    assert "error" not in logs.rows[0]["metadata"]

    history = read_history(tmp_path / "events.jsonl")
    assert history[0]["account_id"] == "0xvault"
    assert history[0]["fields"]["digest"] == "0xabc"


@pytest.mark.asyncio
async def test_failed_trade_is_an_error_event(tmp_path):
    logs = ListRepository()
    recorder = GridHistoryRecorder("0xvault", logs=logs, history_path=tmp_path / "events.jsonl")
    outcome = TradeOutcome(success=False, settlement_reference="", timestamp=time.time(), error="MoveAbort")

    await recorder.record_trade(sell_intent(), sell_quote(), outcome, Decimal("106"))

    assert logs.rows[0]["level"] == "ERROR"
    assert logs.rows[0]["metadata"]["error"] == "MoveAbort"


@pytest.mark.asyncio
async def test_quote_events_use_human_units(tmp_path):
    quotes, logs = ListRepository(), ListRepository()
    recorder = GridHistoryRecorder("0xvault", quotes=quotes, logs=logs, history_path=tmp_path / "events.jsonl")
    ok = QuoteRecord(
        id="q1",
        timestamp=1.0,
        side="A2B",
        from_coin=SUI,
        target_coin=USDC,
        amount_in="1500000000",
        amount_out="3000000",
        min_out="2985000",
        price=2.0,
        status="success",
    )
    failed = QuoteRecord(id="q2", timestamp=2.0, side="B2A", from_coin=USDC, target_coin=SUI, amount_in="5000000", error="no route")

    await recorder.record_quote(ok)
    await recorder.record_quote(failed)

    assert [q.id for q in quotes.rows] == ["q1", "q2"]
    assert logs.rows[0]["message"] == "Quote A2B: in 1.5 -> out 3 (min 2.985) price 2.0"
    assert logs.rows[1]["level"] == "WARNING"
    assert logs.rows[1]["message"] == "Quote B2A failed: no route"
    assert logs.rows[1]["metadata"] == {"amount_in": "5"}


@pytest.mark.asyncio
async def test_storage_failures_do_not_raise(tmp_path):
    failing = ListRepository(fail=True)
    recorder = GridHistoryRecorder(
        "0xvault", trades=failing, quotes=failing, logs=failing, history_path=tmp_path / "events.jsonl"
    )
    outcome = TradeOutcome(success=True, settlement_reference="0xabc", timestamp=time.time(), amount_out=1)

    await recorder.record_trade(sell_intent(), sell_quote(), outcome, Decimal("106"))
    await recorder.record_event("WARNING", "Price fetch failed")

    # the JSONL file still captures events
    assert [row["message"] for row in read_history(tmp_path / "events.jsonl")] == [
        "Trade success: SELL x2",
        "Price fetch failed",
    ]


@pytest.mark.asyncio
async def test_warnings_are_forwarded_to_telegram(tmp_path, monkeypatch):
    sent = []
    monkeypatch.setenv("GRID_ALERT_TELEGRAM_TOKEN", "token")
    monkeypatch.setenv("GRID_ALERT_TELEGRAM_CHAT_ID", "42")
    monkeypatch.setattr(TelegramBot, "send_text", lambda self, text: sent.append(text))
    recorder = GridHistoryRecorder("0xvault", history_path=tmp_path / "events.jsonl")

    await recorder.record_event("info", "Bot started")
    await recorder.record_event("warning", "Price fetch failed", attempt=3)

    assert len(sent) == 1
    assert sent[0].startswith("[GRIDVAULT WARNING] Price fetch failed")
    assert "attempt: 3" in sent[0]


@pytest.mark.asyncio
async def test_telegram_failure_is_swallowed(tmp_path, monkeypatch):
    monkeypatch.setenv("GRID_ALERT_TELEGRAM_TOKEN", "token")
    monkeypatch.setenv("GRID_ALERT_TELEGRAM_CHAT_ID", "42")

    def boom(self, text):
        raise ConnectionError("telegram down")

    monkeypatch.setattr(TelegramBot, "send_text", boom)
    recorder = GridHistoryRecorder("0xvault", history_path=tmp_path / "events.jsonl")

    await recorder.record_event("ERROR", "Tick error", error="boom")

    assert read_history(tmp_path / "events.jsonl")[0]["level"] == "ERROR"


def test_format_alert():
    text = format_alert(
        {"level": "ERROR", "message": "Trade failure: BUY x1", "account_id": "0xvault", "fields": {"b": 2, "a": 1}}
    )

    assert text.splitlines() == [
        "[GRIDVAULT ERROR] Trade failure: BUY x1",
        "Account: 0xvault",
        "a: 1",
        "b: 2",
    ]

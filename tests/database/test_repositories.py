"""
Tests for database repositories.

Each test runs against a fresh SQLite file created through ``connect_database``.
"""

import pytest
import pytest_asyncio

from database.connection import connect_database
from database.repositories import (
    GridStateRepository,
    LogRepository,
    QuoteRepository,
    TradeRepository,
)
from strategies.grid.models import GridState, PersistedState, QuoteRecord, TradeRecord


@pytest_asyncio.fixture
async def db(tmp_path):
    database = await connect_database(f"sqlite:///{tmp_path / 'gridvault.db'}")
    yield database
    await database.disconnect()


def make_trade(trade_id: str, timestamp: float, side: str = "A2B", status: str = "success", amount_in: str = "1000") -> TradeRecord:
    return TradeRecord(
        id=trade_id,
        digest=f"0x{trade_id}",
        timestamp=timestamp,
        side=side,
        amount_in=amount_in,
        amount_out="2000",
        price=1.25,
        status=status,
        error=None if status == "success" else "MoveAbort",
    )


def make_quote(quote_id: str, timestamp: float, side: str = "A2B") -> QuoteRecord:
    return QuoteRecord(
        id=quote_id,
        timestamp=timestamp,
        side=side,
        from_coin="0x2::sui::SUI",
        target_coin="0xdba3::usdc::USDC",
        amount_in="1000000000",
        amount_out="1250000",
        min_out="1243750",
        price=1.25,
        price_impact=0.001,
        quote_id=f"req-{quote_id}",
        status="success",
    )


class TestGridStateRepository:
    @pytest.mark.asyncio
    async def test_missing_state_returns_none(self, db):
        assert await GridStateRepository(db).load_state("0xnone") is None

    @pytest.mark.asyncio
    async def test_save_and_load_round_trip(self, db):
        repo = GridStateRepository(db)
        record = PersistedState(
            account_id="0xvault",
            grid_state=GridState(last_band=3, in_flight=True, last_trade_time=1_700_000_000.5),
            config={"lower_price": "0.5", "levels": 10},
            updated_at=1_700_000_001.0,
        )

        await repo.save_state(record)
        loaded = await repo.load_state("0xvault")

        assert loaded.grid_state == record.grid_state
        assert loaded.config == record.config
        assert loaded.updated_at == record.updated_at

    @pytest.mark.asyncio
    async def test_save_overwrites_previous_record(self, db):
        repo = GridStateRepository(db)
        first = PersistedState("0xvault", GridState(last_band=1), {}, 1.0)
        second = PersistedState("0xvault", GridState(last_band=None), {"levels": 4}, 2.0)

        await repo.save_state(first)
        await repo.save_state(second)

        loaded = await repo.load_state("0xvault")
        assert loaded.grid_state.last_band is None
        assert loaded.config == {"levels": 4}
        rows = await db.fetch_all("SELECT vault_id FROM state")
        assert len(rows) == 1


class TestTradeRepository:
    @pytest.mark.asyncio
    async def test_trades_newest_first_with_paging(self, db):
        repo = TradeRepository(db)
        for i in range(5):
            await repo.insert_trade(make_trade(f"t{i}", 100.0 + i))

        trades = await repo.get_trades(limit=2, offset=1)

        assert [t.id for t in trades] == ["t3", "t2"]
        assert trades[0].digest == "0xt3"

    @pytest.mark.asyncio
    async def test_time_window(self, db):
        repo = TradeRepository(db)
        for i in range(5):
            await repo.insert_trade(make_trade(f"t{i}", 100.0 + i))

        trades = await repo.get_trades(start_time=101.0, end_time=103.0)

        assert [t.id for t in trades] == ["t3", "t2", "t1"]

    @pytest.mark.asyncio
    async def test_stats(self, db):
        repo = TradeRepository(db)
        await repo.insert_trade(make_trade("sell", 1.0, side="A2B", amount_in="1000"))
        await repo.insert_trade(make_trade("buy", 2.0, side="B2A", amount_in="500"))
        await repo.insert_trade(make_trade("failed", 3.0, side="B2A", status="failure", amount_in="700"))

        stats = await repo.get_trade_stats()

        assert stats == {
            "total_trades": 3,
            "successful_trades": 2,
            "failed_trades": 1,
            "total_volume_a": 1000,
            "total_volume_b": 500,
        }

    @pytest.mark.asyncio
    async def test_stats_on_empty_table(self, db):
        stats = await TradeRepository(db).get_trade_stats()

        assert stats["total_trades"] == 0
        assert stats["total_volume_a"] == 0


class TestQuoteRepository:
    @pytest.mark.asyncio
    async def test_side_filter_and_order(self, db):
        repo = QuoteRepository(db)
        await repo.insert_quote(make_quote("q1", 1.0, "A2B"))
        await repo.insert_quote(make_quote("q2", 2.0, "B2A"))
        await repo.insert_quote(make_quote("q3", 3.0, "A2B"))

        all_quotes = await repo.get_quotes(limit=10)
        sells = await repo.get_quotes(limit=10, side="A2B")

        assert [q.id for q in all_quotes] == ["q3", "q2", "q1"]
        assert [q.id for q in sells] == ["q3", "q1"]
        assert sells[0].by_amount_in is True
        assert sells[0].quote_id == "req-q3"

    @pytest.mark.asyncio
    async def test_duplicate_quote_ignored(self, db):
        repo = QuoteRepository(db)
        await repo.insert_quote(make_quote("q1", 1.0))
        await repo.insert_quote(make_quote("q1", 5.0))

        quotes = await repo.get_quotes()

        assert len(quotes) == 1
        assert quotes[0].timestamp == 1.0

    @pytest.mark.asyncio
    async def test_unknown_side_is_ignored(self, db):
        repo = QuoteRepository(db)
        await repo.insert_quote(make_quote("q1", 1.0, "A2B"))

        assert len(await repo.get_quotes(side="sideways")) == 1


class TestLogRepository:
    @pytest.mark.asyncio
    async def test_write_and_filter(self, db):
        repo = LogRepository(db)
        await repo.write_log("info", "Bot started", timestamp=1.0)
        await repo.write_log("WARNING", "Price fetch failed", {"attempt": 1}, timestamp=2.0)
        await repo.write_log("ERROR", "Trade failed", {"error": "MoveAbort"}, timestamp=3.0)

        logs = await repo.get_logs(limit=10)
        warnings = await repo.get_logs(level="warning")

        assert [log["message"] for log in logs] == ["Trade failed", "Price fetch failed", "Bot started"]
        assert logs[-1]["level"] == "INFO"
        assert logs[-1]["metadata"] is None
        assert warnings == [
            {
                "id": warnings[0]["id"],
                "timestamp": 2.0,
                "level": "WARNING",
                "message": "Price fetch failed",
                "metadata": {"attempt": 1},
            }
        ]

    @pytest.mark.asyncio
    async def test_limit(self, db):
        repo = LogRepository(db)
        for i in range(5):
            await repo.write_log("INFO", f"tick {i}", timestamp=float(i))

        logs = await repo.get_logs(limit=2)

        assert [log["message"] for log in logs] == ["tick 4", "tick 3"]

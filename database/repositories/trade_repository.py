"""
Trade Repository - historical record of executed (or failed) grid trades
"""

from typing import Any, Dict, List, Optional

from databases import Database

from strategies.grid.models import TradeRecord


def _time_filters(start_time: Optional[float], end_time: Optional[float], params: Dict[str, Any]) -> str:
    clauses = ""
    if start_time is not None:
        clauses += " AND timestamp >= :start_time"
        params["start_time"] = start_time
    if end_time is not None:
        clauses += " AND timestamp <= :end_time"
        params["end_time"] = end_time
    return clauses


class TradeRepository:
    """Repository for trade history"""

    def __init__(self, db: Database):
        self.db = db

    async def insert_trade(self, record: TradeRecord) -> None:
        query = """
            INSERT INTO trades (id, digest, timestamp, side, amount_in, amount_out, price, status, error)
            VALUES (:id, :digest, :timestamp, :side, :amount_in, :amount_out, :price, :status, :error)
        """
        await self.db.execute(query, record.to_dict())

    async def get_trades(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        start_time: Optional[float] = None,
        end_time: Optional[float] = None,
    ) -> List[TradeRecord]:
        """
        Get trades, newest first.

        Args:
            limit: Maximum rows to return
            offset: Rows to skip (only applied together with a limit)
            start_time: Inclusive lower bound on the trade timestamp
            end_time: Inclusive upper bound on the trade timestamp
        """
        params: Dict[str, Any] = {}
        query = "SELECT * FROM trades WHERE 1=1" + _time_filters(start_time, end_time, params)
        query += " ORDER BY timestamp DESC"
        if limit:
            query += " LIMIT :limit"
            params["limit"] = limit
            if offset:
                query += " OFFSET :offset"
                params["offset"] = offset

        rows = await self.db.fetch_all(query, params)
        return [
            TradeRecord(
                id=row["id"],
                digest=row["digest"],
                timestamp=row["timestamp"],
                side=row["side"],
                amount_in=row["amount_in"],
                amount_out=row["amount_out"],
                price=row["price"],
                status=row["status"],
                error=row["error"],
            )
            for row in rows
        ]

    async def get_trade_stats(
        self,
        start_time: Optional[float] = None,
        end_time: Optional[float] = None,
    ) -> Dict[str, int]:
        """
        Aggregate trade counts and volumes.

        ``total_volume_a`` is coin A sold on successful SELLs and
        ``total_volume_b`` coin B spent on successful BUYs, both in base units.
        """
        params: Dict[str, Any] = {}
        query = """
            SELECT
                COUNT(*) AS total,
                SUM(CASE WHEN status = 'success' THEN 1 ELSE 0 END) AS successful,
                SUM(CASE WHEN status = 'failure' THEN 1 ELSE 0 END) AS failed,
                SUM(CASE WHEN side = 'A2B' AND status = 'success' THEN CAST(amount_in AS INTEGER) ELSE 0 END) AS volume_a,
                SUM(CASE WHEN side = 'B2A' AND status = 'success' THEN CAST(amount_in AS INTEGER) ELSE 0 END) AS volume_b
            FROM trades WHERE 1=1
        """ + _time_filters(start_time, end_time, params)

        row = await self.db.fetch_one(query, params)
        if row is None:
            return {"total_trades": 0, "successful_trades": 0, "failed_trades": 0,
                    "total_volume_a": 0, "total_volume_b": 0}

        return {
            "total_trades": int(row["total"] or 0),
            "successful_trades": int(row["successful"] or 0),
            "failed_trades": int(row["failed"] or 0),
            "total_volume_a": int(row["volume_a"] or 0),
            "total_volume_b": int(row["volume_b"] or 0),
        }

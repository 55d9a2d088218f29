"""
Quote Repository - every quote attempt made by the quote service
"""

from typing import Any, Dict, List, Optional

from databases import Database

from strategies.grid.models import QuoteRecord


class QuoteRepository:
    """Repository for quote history"""

    def __init__(self, db: Database):
        self.db = db

    async def insert_quote(self, record: QuoteRecord) -> None:
        query = """
            INSERT INTO quotes (
                id, timestamp, side, from_coin, target_coin,
                amount_in, amount_out, min_out, price, price_impact,
                by_amount_in, quote_id, status, error
            )
            VALUES (
                :id, :timestamp, :side, :from_coin, :target_coin,
                :amount_in, :amount_out, :min_out, :price, :price_impact,
                :by_amount_in, :quote_id, :status, :error
            )
            ON CONFLICT (id) DO NOTHING
        """
        values = record.to_dict()
        values["by_amount_in"] = 1 if record.by_amount_in else 0
        await self.db.execute(query, values)

    async def get_quotes(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        side: Optional[str] = None,
    ) -> List[QuoteRecord]:
        """Get quotes newest first, optionally restricted to one side ("A2B" / "B2A")."""
        params: Dict[str, Any] = {}
        query = "SELECT * FROM quotes WHERE 1=1"
        if side in ("A2B", "B2A"):
            query += " AND side = :side"
            params["side"] = side
        query += " ORDER BY timestamp DESC"
        if limit:
            query += " LIMIT :limit"
            params["limit"] = limit
            if offset:
                query += " OFFSET :offset"
                params["offset"] = offset

        rows = await self.db.fetch_all(query, params)
        return [
            QuoteRecord(
                id=row["id"],
                timestamp=row["timestamp"],
                side=row["side"],
                from_coin=row["from_coin"],
                target_coin=row["target_coin"],
                amount_in=row["amount_in"],
                amount_out=row["amount_out"],
                min_out=row["min_out"],
                price=row["price"],
                price_impact=row["price_impact"],
                by_amount_in=bool(row["by_amount_in"]),
                quote_id=row["quote_id"],
                status=row["status"],
                error=row["error"],
            )
            for row in rows
        ]

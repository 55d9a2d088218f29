"""
Log Repository - operator-visible event log
"""

import json
import time
from typing import Any, Dict, List, Optional

from databases import Database


class LogRepository:
    """Repository for the bot event log shown by the control API"""

    def __init__(self, db: Database):
        self.db = db

    async def write_log(
        self,
        level: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        timestamp: Optional[float] = None,
    ) -> None:
        query = """
            INSERT INTO logs (timestamp, level, message, metadata)
            VALUES (:timestamp, :level, :message, :metadata)
        """
        await self.db.execute(
            query,
            {
                "timestamp": timestamp if timestamp is not None else time.time(),
                "level": level.upper(),
                "message": message,
                "metadata": json.dumps(metadata, default=str) if metadata else None,
            },
        )

    async def get_logs(
        self,
        limit: Optional[int] = None,
        level: Optional[str] = None,
        start_time: Optional[float] = None,
        end_time: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        query = "SELECT * FROM logs WHERE 1=1"
        if level:
            query += " AND level = :level"
            params["level"] = level.upper()
        if start_time is not None:
            query += " AND timestamp >= :start_time"
            params["start_time"] = start_time
        if end_time is not None:
            query += " AND timestamp <= :end_time"
            params["end_time"] = end_time
        query += " ORDER BY timestamp DESC, id DESC"
        if limit:
            query += " LIMIT :limit"
            params["limit"] = limit

        rows = await self.db.fetch_all(query, params)
        return [
            {
                "id": row["id"],
                "timestamp": row["timestamp"],
                "level": row["level"],
                "message": row["message"],
                "metadata": json.loads(row["metadata"]) if row["metadata"] else None,
            }
            for row in rows
        ]

"""
Grid State Repository - durable band-tracking state per trading account
"""

import json
from typing import Optional

from databases import Database

from helpers.unified_logger import get_core_logger
from strategies.grid.models import GridState, PersistedState

logger = get_core_logger("state_repository")


class GridStateRepository:
    """Repository for the per-account grid state record"""

    def __init__(self, db: Database):
        self.db = db

    async def save_state(self, record: PersistedState) -> None:
        """
        Upsert the state record for ``record.account_id``.

        Errors propagate: the caller decides how loudly to report a failed
        persistence attempt.
        """
        query = """
            INSERT INTO state (vault_id, last_band, in_flight, last_trade_time, config_json, updated_at)
            VALUES (:vault_id, :last_band, :in_flight, :last_trade_time, :config_json, :updated_at)
            ON CONFLICT(vault_id) DO UPDATE SET
                last_band = excluded.last_band,
                in_flight = excluded.in_flight,
                last_trade_time = excluded.last_trade_time,
                config_json = excluded.config_json,
                updated_at = excluded.updated_at
        """
        state = record.grid_state
        await self.db.execute(
            query,
            {
                "vault_id": record.account_id,
                "last_band": state.last_band,
                "in_flight": 1 if state.in_flight else 0,
                "last_trade_time": state.last_trade_time,
                "config_json": json.dumps(record.config),
                "updated_at": record.updated_at,
            },
        )

    async def load_state(self, account_id: str) -> Optional[PersistedState]:
        """Load the state record for ``account_id``, or None if none exists."""
        query = """
            SELECT last_band, in_flight, last_trade_time, config_json, updated_at
            FROM state WHERE vault_id = :vault_id
        """
        row = await self.db.fetch_one(query, {"vault_id": account_id})
        if row is None:
            return None

        try:
            config = json.loads(row["config_json"])
        except (TypeError, ValueError) as e:
            logger.warning(f"Stored config for {account_id} is unreadable, ignoring it: {e}")
            config = {}

        return PersistedState(
            account_id=account_id,
            grid_state=GridState.from_dict(
                {
                    "last_band": row["last_band"],
                    "in_flight": row["in_flight"] == 1,
                    "last_trade_time": row["last_trade_time"],
                }
            ),
            config=config,
            updated_at=row["updated_at"],
        )

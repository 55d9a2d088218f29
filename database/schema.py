"""
Database schema for the GridVault bot.

Tables are created idempotently on startup; SQLite executes one statement per
call, so each DDL statement is issued separately.
"""

from typing import List

from databases import Database

from helpers.unified_logger import get_core_logger

logger = get_core_logger("schema")


SCHEMA_STATEMENTS: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS state (
        vault_id TEXT PRIMARY KEY,
        last_band INTEGER,
        in_flight INTEGER NOT NULL DEFAULT 0,
        last_trade_time REAL,
        config_json TEXT NOT NULL,
        updated_at REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS trades (
        id TEXT PRIMARY KEY,
        digest TEXT NOT NULL,
        timestamp REAL NOT NULL,
        side TEXT NOT NULL,
        amount_in TEXT NOT NULL,
        amount_out TEXT NOT NULL,
        price REAL NOT NULL,
        status TEXT NOT NULL,
        error TEXT,
        created_at REAL NOT NULL DEFAULT (strftime('%s', 'now'))
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS quotes (
        id TEXT PRIMARY KEY,
        timestamp REAL NOT NULL,
        side TEXT NOT NULL,
        from_coin TEXT NOT NULL,
        target_coin TEXT NOT NULL,
        amount_in TEXT NOT NULL,
        amount_out TEXT NOT NULL,
        min_out TEXT NOT NULL,
        price REAL,
        price_impact REAL,
        by_amount_in INTEGER NOT NULL DEFAULT 1,
        quote_id TEXT,
        status TEXT NOT NULL,
        error TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp REAL NOT NULL,
        level TEXT NOT NULL,
        message TEXT NOT NULL,
        metadata TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_trades_digest ON trades(digest)",
    "CREATE INDEX IF NOT EXISTS idx_trades_timestamp ON trades(timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_quotes_timestamp ON quotes(timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_logs_timestamp ON logs(timestamp)",
]


async def ensure_schema(db: Database) -> None:
    """Create all tables and indexes if they do not exist yet."""
    for statement in SCHEMA_STATEMENTS:
        await db.execute(statement)
    logger.debug(f"Schema ensured ({len(SCHEMA_STATEMENTS)} statements)")

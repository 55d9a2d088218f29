"""
Database connection management
"""

from databases import Database

from database.schema import ensure_schema
from helpers.unified_logger import get_core_logger

logger = get_core_logger("database")


def create_database(database_url: str) -> Database:
    """Create (but do not connect) a database handle for ``database_url``."""
    return Database(database_url)


async def connect_database(database_url: str) -> Database:
    """Connect to ``database_url`` and make sure the schema exists."""
    db = create_database(database_url)
    await db.connect()
    if db.url.dialect == "sqlite":
        # WAL keeps API reads from blocking the bot's writes
        await db.execute("PRAGMA journal_mode=WAL")
    await ensure_schema(db)
    logger.info(f"Database connected: {db.url.obscure_password}")
    return db

"""
Database repositories
"""

from database.repositories.state_repository import GridStateRepository
from database.repositories.trade_repository import TradeRepository
from database.repositories.quote_repository import QuoteRepository
from database.repositories.log_repository import LogRepository

__all__ = [
    "GridStateRepository",
    "TradeRepository",
    "QuoteRepository",
    "LogRepository",
]

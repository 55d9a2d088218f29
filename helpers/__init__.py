"""
Helper modules for the GridVault bot.
"""

from .unified_logger import (
    get_logger,
    get_bot_logger,
    get_strategy_logger,
    get_service_logger,
    get_core_logger,
    log_stage,
)

__all__ = [
    'get_logger',
    'get_bot_logger',
    'get_strategy_logger',
    'get_service_logger',
    'get_core_logger',
    'log_stage',
]

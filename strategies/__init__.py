"""
Trading Strategies Module

The bot runs a single grid strategy; the decision engine and its models live
in :mod:`strategies.grid`, the operator-facing API in :mod:`strategies.control`.
"""

from .grid import GridStrategy, GridConfig

__all__ = [
    'GridStrategy',
    'GridConfig',
]

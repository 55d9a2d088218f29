"""
Band arithmetic for the grid strategy.

Pure functions only: boundary computation, price-to-band lookup and the
slippage floor applied to quoted amounts.
"""

from __future__ import annotations

from bisect import bisect_right
from decimal import Decimal
from typing import List, Sequence

BPS_DENOMINATOR = 10_000


def compute_boundaries(lower: Decimal, upper: Decimal, levels: int) -> List[Decimal]:
    """Return ``levels + 1`` evenly spaced boundary prices from ``lower`` to ``upper``.

    ``boundary[i] = lower + i * (upper - lower) / levels``. The last element is
    pinned to ``upper`` so decimal rounding in the step can never leave the top
    boundary slightly off the configured bound.
    """
    if levels <= 0:
        raise ValueError(f"levels must be positive, got {levels}")

    lower = Decimal(lower)
    upper = Decimal(upper)
    step = (upper - lower) / levels

    boundaries = [lower + step * i for i in range(levels)]
    boundaries.append(upper)
    return boundaries


def locate_band(boundaries: Sequence[Decimal], price: Decimal) -> int:
    """Map ``price`` to a band index in ``[0, levels - 1]``.

    Prices at or below the first boundary clamp to band 0 and prices at or
    above the last boundary clamp to the top band. Inside the range a band
    includes its lower boundary and excludes its upper one.
    """
    levels = len(boundaries) - 1
    if levels <= 0:
        raise ValueError("at least two boundaries are required")

    if price <= boundaries[0]:
        return 0
    if price >= boundaries[-1]:
        return levels - 1

    # boundaries[i] <= price < boundaries[i + 1]
    return bisect_right(boundaries, price) - 1


def compute_min_out(estimated_out: int, slippage_bps: int) -> int:
    """Minimum acceptable output after applying ``slippage_bps`` (50 = 0.5%)."""
    if not 0 <= slippage_bps < BPS_DENOMINATOR:
        raise ValueError(f"slippage_bps out of range: {slippage_bps}")
    return (int(estimated_out) * (BPS_DENOMINATOR - slippage_bps)) // BPS_DENOMINATOR


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Convert a human amount into integer base units, truncating dust."""
    return int(Decimal(amount).scaleb(decimals))


def from_base_units(amount: int, decimals: int) -> Decimal:
    """Convert integer base units into a human amount."""
    return Decimal(int(amount)).scaleb(-decimals)

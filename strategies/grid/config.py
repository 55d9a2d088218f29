"""
Grid Trading Strategy Configuration

Pydantic model for the grid parameters and their validation.
"""

from decimal import Decimal
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


MIN_LEVELS = 2
MAX_LEVELS = 100


class GridConfig(BaseModel):
    """
    Configuration for the grid strategy.

    The model is frozen: an operator update builds a new instance through
    :meth:`with_updates`, which re-validates the merged values, so a tick
    always sees one consistent configuration.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    lower_price: Decimal = Field(
        ...,
        description="Lower bound of the grid price range",
        gt=0,
    )
    upper_price: Decimal = Field(
        ...,
        description="Upper bound of the grid price range",
        gt=0,
    )
    levels: int = Field(
        ...,
        description="Number of bands the range is divided into",
        ge=MIN_LEVELS,
        le=MAX_LEVELS,
    )
    amount_per_grid: Decimal = Field(
        ...,
        description="Stake per band crossed, denominated in coin B",
        gt=0,
    )
    slippage_bps: int = Field(
        50,
        description="Slippage tolerance in basis points (50 = 0.5%)",
        ge=0,
        lt=10_000,
    )
    coin_type_a: str = Field(
        "0x2::sui::SUI",
        description="Full type of the base asset (sold when price rises)",
    )
    coin_type_b: str = Field(
        "0x5d4b302506645c37ff133b98c4b50a5ae14841659738d6d733d59d0d217a93bf::coin::COIN",
        description="Full type of the quote asset (spent when price falls)",
    )

    @field_validator("coin_type_a", "coin_type_b")
    @classmethod
    def validate_coin_type(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Coin type must not be empty")
        return v

    @model_validator(mode="after")
    def validate_range(self) -> "GridConfig":
        if self.lower_price >= self.upper_price:
            raise ValueError("lower_price must be less than upper_price")
        if self.coin_type_a == self.coin_type_b:
            raise ValueError("coin_type_a and coin_type_b must differ")
        return self

    @property
    def grid_step(self) -> Decimal:
        """Width of a single band."""
        return (self.upper_price - self.lower_price) / self.levels

    def with_updates(self, **changes: Any) -> "GridConfig":
        """Return a validated copy with ``changes`` applied."""
        return type(self).model_validate({**self.model_dump(), **changes})

    def geometry_differs(self, other: "GridConfig") -> bool:
        """True when ``other`` places band boundaries differently."""
        return (
            self.lower_price != other.lower_price
            or self.upper_price != other.upper_price
            or self.levels != other.levels
        )

    def to_snapshot(self) -> Dict[str, Any]:
        """JSON-friendly representation used for persistence and the API."""
        return self.model_dump(mode="json")

"""
Runtime settings for the grid bot, loaded from environment variables / .env
"""

from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from strategies.grid.config import GridConfig


class BotSettings(BaseSettings):
    """Bot settings; field names map to upper-case env vars (``GRID_LEVELS`` etc.)"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Network
    sui_network: Literal["testnet", "mainnet", "localnet"] = "testnet"
    aggregator_api_url: Optional[str] = None

    # Vault / execution
    vault_id: Optional[str] = None
    trader_cap_id: Optional[str] = None
    execution_relay_url: Optional[str] = None
    execution_relay_api_key: Optional[str] = None
    tx_timeout_ms: int = Field(30_000, gt=0)
    # Extra allowance on top of tx_timeout_ms before the bot abandons an execution
    execution_timeout_margin_s: float = Field(15.0, ge=0)

    # Grid defaults
    grid_lower_price: Decimal = Decimal("0.5")
    grid_upper_price: Decimal = Decimal("2.0")
    grid_levels: int = 10
    grid_amount_per_grid: Decimal = Decimal("10")
    grid_slippage_bps: int = 50
    coin_type_a: str = "0x2::sui::SUI"
    coin_type_b: str = "0x5d4b302506645c37ff133b98c4b50a5ae14841659738d6d733d59d0d217a93bf::coin::COIN"

    # Runtime
    tick_interval_ms: int = Field(1000, gt=0)
    api_host: str = "0.0.0.0"
    api_port: int = 3215
    database_url: str = "sqlite:///./gridvault.db"
    auto_start: bool = False
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def account_id(self) -> str:
        """Key of the persisted state record; ``local`` when no vault is configured."""
        return self.vault_id or "local"

    @property
    def execution_timeout(self) -> float:
        """Seconds the bot waits for one execution before treating it as failed."""
        return self.tx_timeout_ms / 1000 + self.execution_timeout_margin_s

    def build_grid_config(self) -> GridConfig:
        """
        Build the grid config from the ``GRID_*`` / ``COIN_TYPE_*`` settings.

        Raises:
            pydantic.ValidationError: If the values do not form a valid grid
        """
        return GridConfig(
            lower_price=self.grid_lower_price,
            upper_price=self.grid_upper_price,
            levels=self.grid_levels,
            amount_per_grid=self.grid_amount_per_grid,
            slippage_bps=self.grid_slippage_bps,
            coin_type_a=self.coin_type_a,
            coin_type_b=self.coin_type_b,
        )

    def validate_for_trading(self) -> List[str]:
        """
        List the settings missing for live execution.

        An empty list means the relay executor can be used; otherwise the bot
        runs in simulation mode.
        """
        missing = []
        if not self.execution_relay_url:
            missing.append("EXECUTION_RELAY_URL")
        if not self.vault_id:
            missing.append("VAULT_ID")
        if not self.trader_cap_id:
            missing.append("TRADER_CAP_ID")
        return missing

    @property
    def simulation_mode(self) -> bool:
        return bool(self.validate_for_trading())

"""
Trade executors.

``SimulatedExecutor`` is used when no execution credentials are configured:
every trade "settles" at the quoted estimate. ``RelayExecutor`` hands the
quoted route to an execution relay that signs and submits the vault swap
(withdraw -> swap -> deposit), then polls the transaction until it settles.
"""

import asyncio
import time
import uuid
from typing import Any, Dict, Optional

import httpx

from helpers.unified_logger import get_service_logger
from strategies.grid.models import QuoteResult, TradeIntent, TradeOutcome


class SimulatedExecutor:
    """Paper executor: fills every trade at the quoted estimate and tracks balances."""

    def __init__(self, balance_a: int = 0, balance_b: int = 0):
        self.balances = {"a": int(balance_a), "b": int(balance_b)}
        self.logger = get_service_logger("executor", mode="simulated")

    async def execute_trade(self, intent: TradeIntent, quote: QuoteResult) -> TradeOutcome:
        if quote.side == "A2B":
            self.balances["a"] -= quote.amount_in
            self.balances["b"] += quote.estimated_out
        else:
            self.balances["b"] -= quote.amount_in
            self.balances["a"] += quote.estimated_out

        digest = f"sim-{uuid.uuid4().hex[:16]}"
        self.logger.info(
            f"[SIM] {intent.direction.value} x{intent.grid_steps} "
            f"{quote.amount_in} -> {quote.estimated_out} ({digest})"
        )
        return TradeOutcome(
            success=True,
            settlement_reference=digest,
            timestamp=time.time(),
            amount_out=quote.estimated_out,
        )

    async def get_balances(self) -> Dict[str, int]:
        return dict(self.balances)


class RelayExecutor:
    """
    Executes vault swaps through an HTTP execution relay.

    The relay owns the signing key. ``POST /execute`` submits the swap and
    returns the transaction digest; ``GET /transactions/{digest}`` reports
    ``pending``, ``success`` or ``failure``. Any transport error or a
    confirmation timeout produces a failed ``TradeOutcome``; nothing here raises.
    """

    def __init__(
        self,
        relay_url: str,
        vault_id: str,
        trader_cap_id: str,
        coin_type_a: str,
        coin_type_b: str,
        tx_timeout_ms: int = 60_000,
        poll_interval: float = 0.5,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.relay_url = relay_url.rstrip("/")
        self.vault_id = vault_id
        self.trader_cap_id = trader_cap_id
        self.coin_type_a = coin_type_a
        self.coin_type_b = coin_type_b
        self.tx_timeout_ms = tx_timeout_ms
        self.poll_interval = poll_interval
        self.headers = {"Content-Type": "application/json"}
        if api_key:
            self.headers["X-API-Key"] = api_key
        self._client = client
        self._owns_client = client is None
        self.logger = get_service_logger("executor", mode="relay", vault=vault_id[:10])

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30.0)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def execute_trade(self, intent: TradeIntent, quote: QuoteResult) -> TradeOutcome:
        payload = {
            "vault_id": self.vault_id,
            "trader_cap_id": self.trader_cap_id,
            "coin_type_a": self.coin_type_a,
            "coin_type_b": self.coin_type_b,
            "side": quote.side,
            "amount_in": str(quote.amount_in),
            "min_out": str(quote.min_out),
            "quote_id": quote.quote_id,
            "route": quote.route,
        }

        try:
            response = await self._get_client().post(
                f"{self.relay_url}/execute", json=payload, headers=self.headers
            )
            response.raise_for_status()
            digest = response.json()["digest"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            self.logger.error(f"Trade submission failed: {e}")
            return TradeOutcome(
                success=False,
                settlement_reference="",
                timestamp=time.time(),
                error=str(e) or type(e).__name__,
            )

        self.logger.info(f"Submitted {intent.direction.value} x{intent.grid_steps}: {digest}")
        status = await self._wait_for_confirmation(digest)

        if status.get("status") == "success":
            amount_out = status.get("amount_out")
            return TradeOutcome(
                success=True,
                settlement_reference=digest,
                timestamp=time.time(),
                amount_out=int(amount_out) if amount_out is not None else quote.estimated_out,
                events=status.get("events") or [],
            )

        error = status.get("error") or "Transaction failed or not confirmed within timeout"
        self.logger.warning(f"Transaction {digest} not successful: {error}")
        return TradeOutcome(
            success=False,
            settlement_reference=digest,
            timestamp=time.time(),
            error=error,
            events=status.get("events") or [],
        )

    async def _wait_for_confirmation(self, digest: str) -> Dict[str, Any]:
        """Poll the relay until the transaction settles or ``tx_timeout_ms`` elapses."""
        deadline = time.monotonic() + self.tx_timeout_ms / 1000
        while time.monotonic() < deadline:
            try:
                response = await self._get_client().get(
                    f"{self.relay_url}/transactions/{digest}", headers=self.headers
                )
                response.raise_for_status()
                status = response.json()
                if status.get("status") in ("success", "failure"):
                    return status
            except (httpx.HTTPError, ValueError) as e:
                # not indexed yet
                self.logger.debug(f"Status poll for {digest} failed: {e}")
            await asyncio.sleep(self.poll_interval)
        return {"status": "timeout"}

    async def get_balances(self) -> Dict[str, int]:
        response = await self._get_client().get(
            f"{self.relay_url}/vaults/{self.vault_id}/balances", headers=self.headers
        )
        response.raise_for_status()
        data = response.json()
        return {
            "a": int(data.get("balance_a", 0)),
            "b": int(data.get("balance_b", 0)),
        }

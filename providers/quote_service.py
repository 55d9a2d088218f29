"""
Aggregator quote service.

Talks to the DEX aggregator's route-finding endpoint over HTTP and turns the
best route into a slippage-bounded ``QuoteResult``. Also serves as the bot's
price source: the market price is estimated from a one-unit A -> B quote.
"""

import random
import string
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple

import httpx

from helpers.unified_logger import get_service_logger
from strategies.grid.geometry import compute_min_out, from_base_units, to_base_units
from strategies.grid.models import QuoteRecord, QuoteResult, TradeDirection


DEFAULT_DECIMALS = 9
STABLE_DECIMALS = 6

# Stable coins whose type name does not mention the ticker (wormhole USDC).
KNOWN_DECIMALS = {
    "0x5d4b302506645c37ff133b98c4b50a5ae14841659738d6d733d59d0d217a93bf::coin::COIN": 6,
}

# Slippage used for the price probe quote; the probe is never executed.
PRICE_PROBE_SLIPPAGE_BPS = 100

AGGREGATOR_URLS = {
    "mainnet": "https://api-sui.cetus.zone/router_v3/find_routes",
    "testnet": "https://api-sui-testnet.cetus.zone/router_v3/find_routes",
}


def coin_decimals(coin_type: str) -> int:
    """Decimals for a coin type: 6 for USDC/USDT stables, 9 otherwise (SUI included)."""
    if coin_type in KNOWN_DECIMALS:
        return KNOWN_DECIMALS[coin_type]
    upper = coin_type.upper()
    if "USDC" in upper or "USDT" in upper:
        return STABLE_DECIMALS
    return DEFAULT_DECIMALS


def _quote_record_id(timestamp: float) -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=8))
    return f"{int(timestamp * 1000)}-{suffix}"


class QuoteError(Exception):
    """Aggregator returned no usable route."""


class AggregatorQuoteService:
    """
    Quote provider and price source backed by the aggregator HTTP API.

    A single ``httpx.AsyncClient`` is reused for all requests. Pass ``client``
    to inject one (tests use ``httpx.MockTransport``); otherwise one is
    created lazily and closed by ``close()``.
    """

    def __init__(
        self,
        network: str = "testnet",
        aggregator_url: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.network = network
        self.aggregator_url = aggregator_url or AGGREGATOR_URLS.get(network, AGGREGATOR_URLS["testnet"])
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self.logger = get_service_logger("quote", network=network)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _find_routes(self, from_coin: str, target_coin: str, amount_in: int) -> Dict[str, Any]:
        params = {
            "from": from_coin,
            "target": target_coin,
            "amount": str(amount_in),
            "by_amount_in": "true",
        }
        response = await self._get_client().get(self.aggregator_url, params=params)
        response.raise_for_status()
        payload = response.json()

        code = payload.get("code", 200)
        if code != 200:
            raise QuoteError(payload.get("msg") or f"Router error (code {code})")

        data = payload.get("data")
        if not data:
            raise QuoteError("find_routes returned no data")
        if data.get("insufficient_liquidity"):
            raise QuoteError("Insufficient liquidity")
        return data

    async def get_quote(
        self,
        direction: TradeDirection,
        coin_type_a: str,
        coin_type_b: str,
        amount_in: int,
        slippage_bps: int,
    ) -> Tuple[Optional[QuoteResult], QuoteRecord]:
        """
        Quote a fixed-input swap in ``direction``.

        Args:
            direction: SELL swaps A -> B, BUY swaps B -> A
            amount_in: Input amount in base units of the input coin
            slippage_bps: Tolerance applied to the estimated output

        Returns:
            ``(quote, record)``; ``quote`` is None on any failure and
            ``record`` always describes the attempt.
        """
        side = direction.swap_side
        if direction is TradeDirection.SELL:
            from_coin, target_coin = coin_type_a, coin_type_b
        else:
            from_coin, target_coin = coin_type_b, coin_type_a

        timestamp = time.time()
        record = QuoteRecord(
            id=_quote_record_id(timestamp),
            timestamp=timestamp,
            side=side,
            from_coin=from_coin,
            target_coin=target_coin,
            amount_in=str(amount_in),
        )

        try:
            data = await self._find_routes(from_coin, target_coin, amount_in)
            quoted_in = int(data.get("amount_in", amount_in))
            estimated_out = int(data["amount_out"])
            min_out = compute_min_out(estimated_out, slippage_bps)
            price = self._compute_price(quoted_in, estimated_out, from_coin, target_coin)
        except (httpx.HTTPError, QuoteError, KeyError, ValueError, TypeError, InvalidOperation) as e:
            record.error = str(e) or type(e).__name__
            self.logger.warning(
                f"[{side}] Quote failed for {amount_in} {from_coin} -> {target_coin}: {record.error}"
            )
            return None, record

        price_impact = data.get("deviation_ratio")
        if not isinstance(price_impact, (int, float)):
            price_impact = None

        record.amount_out = str(estimated_out)
        record.min_out = str(min_out)
        record.price = float(price)
        record.price_impact = price_impact
        record.quote_id = data.get("request_id")
        record.status = "success"

        self.logger.debug(
            f"[{side}] Quote {amount_in} -> {estimated_out} (min {min_out}) price={price}"
        )
        quote = QuoteResult(
            side=side,
            amount_in=amount_in,
            estimated_out=estimated_out,
            min_out=min_out,
            price=price,
            price_impact=price_impact,
            route=data,
            quote_id=record.quote_id,
        )
        return quote, record

    async def get_market_price(self, coin_type_a: str, coin_type_b: str) -> Optional[Decimal]:
        """
        Estimate the price of one A in B.

        Uses a one-unit A -> B quote, falling back to the inverse of a
        one-unit B -> A quote.
        """
        one_a = to_base_units(Decimal(1), coin_decimals(coin_type_a))
        quote, _ = await self.get_quote(
            TradeDirection.SELL, coin_type_a, coin_type_b, one_a, PRICE_PROBE_SLIPPAGE_BPS
        )
        if quote is not None and quote.price > 0:
            return quote.price

        one_b = to_base_units(Decimal(1), coin_decimals(coin_type_b))
        quote, _ = await self.get_quote(
            TradeDirection.BUY, coin_type_a, coin_type_b, one_b, PRICE_PROBE_SLIPPAGE_BPS
        )
        if quote is not None and quote.price > 0:
            return Decimal(1) / quote.price

        self.logger.warning("Market price unavailable from both A2B and B2A probes")
        return None

    @staticmethod
    def _compute_price(amount_in: int, amount_out: int, from_coin: str, target_coin: str) -> Decimal:
        """Output per input in human units."""
        if amount_in <= 0:
            return Decimal(0)
        human_in = from_base_units(amount_in, coin_decimals(from_coin))
        human_out = from_base_units(amount_out, coin_decimals(target_coin))
        return human_out / human_in

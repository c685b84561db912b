"""
Spot prices for SOL and the reward token.
Every lookup has a short timeout and a conservative fallback; a price feed
outage must never block payments or settlement.
"""
import logging
import threading
import time
from decimal import Decimal

import httpx

from genr8.core.config import settings


logger = logging.getLogger(__name__)

MIN_SANE_TOKEN_PRICE = 1e-8

# Transport failures plus malformed payloads (wrong nesting, non-numeric prices)
FEED_ERRORS = (httpx.HTTPError, ValueError, TypeError, AttributeError, KeyError)


class PriceService:
    _cache: dict[str, tuple[float, float]] = {}
    _lock = threading.Lock()

    def __init__(self, transport: httpx.BaseTransport | None = None, clock=time.monotonic) -> None:
        self.transport = transport
        self.clock = clock
        self.timeout = settings.price_feed_timeout

    @classmethod
    def clear_cache(cls) -> None:
        with cls._lock:
            cls._cache.clear()

    def _get_json(self, url: str, params: dict | None = None) -> dict:
        """Decoded JSON object; any other body shape reads as empty."""
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
        return data if isinstance(data, dict) else {}

    def _dexscreener_price(self, mint: str) -> float | None:
        data = self._get_json(f"{settings.dexscreener_api_url}/{mint}")
        pairs = data.get("pairs") or []
        # Highest-liquidity pair first
        pairs = sorted(pairs, key=lambda p: float((p.get("liquidity") or {}).get("usd") or 0), reverse=True)
        for pair in pairs:
            price = pair.get("priceUsd")
            if price:
                return float(price)
        return None

    def _jupiter_price(self, mint: str) -> float | None:
        data = self._get_json(settings.jupiter_price_url, params={"ids": mint})
        entry = (data.get("data") or {}).get(mint) or {}
        price = entry.get("price")
        return float(price) if price else None

    def get_sol_price(self) -> float:
        """SOL/USD from DexScreener; configured fallback on any failure."""
        try:
            price = self._dexscreener_price(settings.wrapped_sol_mint)
        except FEED_ERRORS as e:
            logger.warning("sol_price_lookup_failed", extra={"error": str(e)})
            price = None
        if not price or price <= 0:
            return settings.sol_price_fallback_usd
        return price

    def get_token_price(self) -> float:
        """Reward token price in USD: override, cache, DexScreener, Jupiter, fallback."""
        if settings.gen_price_override_usd:
            return float(settings.gen_price_override_usd)

        mint = settings.payment_token_mint
        now = self.clock()
        with self._lock:
            cached = self._cache.get(mint)
        if cached and now - cached[1] < settings.price_cache_seconds:
            return cached[0]

        price = None
        for source in (self._dexscreener_price, self._jupiter_price):
            try:
                price = source(mint)
            except FEED_ERRORS as e:
                logger.warning("token_price_lookup_failed", extra={"error": f"{source.__name__}: {e}"})
                price = None
            if price:
                break

        if not price or price < MIN_SANE_TOKEN_PRICE:
            price = settings.gen_price_fallback_usd
        price = max(price, settings.gen_price_min_usd)

        with self._lock:
            self._cache[mint] = (price, now)
        return price

    def token_amount_for_usd(self, amount_usd: Decimal | float) -> Decimal:
        """Reward token amount (not base units) worth amount_usd."""
        price = Decimal(str(self.get_token_price()))
        return Decimal(str(amount_usd)) / price

    def native_amount_for_usd(self, amount_usd: Decimal | float) -> float:
        return float(Decimal(str(amount_usd)) / Decimal(str(self.get_sol_price())))

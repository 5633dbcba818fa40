from __future__ import annotations

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from agora.config import OracleConfig

from .exceptions import (
    PriceOracleError,
    PriceOracleRateLimitError,
    PriceOracleUnknownPairError,
)
from .models import ExchangeRate, parse_pair

logger = logging.getLogger(__name__)


class PriceOracleClient:
    """Fetches spot exchange rates from a CoinGecko-compatible API.

    Rates are fetched fresh on every call; nothing is cached.
    """

    def __init__(
        self,
        config: OracleConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or OracleConfig()
        self._transport = transport

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        )

    async def _request(self, params: dict[str, Any]) -> dict[str, Any]:
        last_error: Exception | None = None

        async with self._new_client() as client:
            for attempt in range(self.config.max_retries + 1):
                try:
                    response = await client.get("/simple/price", params=params)

                    if response.status_code == 429:
                        last_error = PriceOracleRateLimitError(
                            "Rate limited", status_code=429
                        )
                    elif response.status_code >= 500:
                        last_error = PriceOracleError(
                            f"Server error {response.status_code}",
                            status_code=response.status_code,
                        )
                    else:
                        response.raise_for_status()
                        return response.json()

                except httpx.TimeoutException as e:
                    last_error = e
                except httpx.HTTPStatusError as e:
                    raise PriceOracleError(
                        f"Oracle rejected request: {e}",
                        status_code=e.response.status_code,
                    ) from e
                except httpx.RequestError as e:
                    logger.error(f"Oracle network error: {e}")
                    last_error = e
                    break

                if attempt < self.config.max_retries:
                    wait_time = 2 ** attempt
                    logger.warning(f"Oracle request failed ({last_error}), retrying in {wait_time}s...")
                    await asyncio.sleep(wait_time)

        raise PriceOracleError(f"Oracle request failed: {last_error}")

    async def get_rate(self, currency_pair: str) -> ExchangeRate:
        """Return how many ``quote`` units one ``base`` unit costs, e.g. ``SOL/USD``."""
        base, quote = parse_pair(currency_pair)
        asset_id = self.config.asset_ids.get(base)
        if asset_id is None:
            raise PriceOracleUnknownPairError(f"No oracle asset id for {base}")

        data = await self._request({"ids": asset_id, "vs_currencies": quote.lower()})

        raw = data.get(asset_id, {}).get(quote.lower())
        if raw is None:
            raise PriceOracleUnknownPairError(f"Oracle has no price for {currency_pair}")

        try:
            rate = Decimal(str(raw))
        except InvalidOperation as e:
            raise PriceOracleError(f"Unparseable rate for {currency_pair}: {raw!r}") from e
        if rate <= 0:
            raise PriceOracleError(f"Non-positive rate for {currency_pair}: {rate}")

        logger.info(f"Fetched rate {currency_pair} = {rate}")
        return ExchangeRate(base=base, quote=quote, rate=rate)


def create_price_oracle_client(config: OracleConfig | None = None) -> PriceOracleClient:
    """Create a PriceOracleClient instance."""
    return PriceOracleClient(config=config)

"""Unit tests for the price oracle client using httpx mock transports."""

import asyncio
from decimal import Decimal

import httpx
import pytest

from agora.clients.price_oracle import (
    PriceOracleClient,
    PriceOracleError,
    PriceOracleUnknownPairError,
)
from agora.config import OracleConfig


def _client(handler, **config) -> PriceOracleClient:
    config.setdefault("max_retries", 0)
    return PriceOracleClient(OracleConfig(**config), transport=httpx.MockTransport(handler))


def test_get_rate_parses_simple_price() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"solana": {"usd": 142.5}})

    rate = asyncio.run(_client(handler).get_rate("SOL/USD"))

    assert rate.rate == Decimal("142.5")
    assert rate.pair == "SOL/USD"
    assert seen["path"].endswith("/simple/price")
    assert seen["params"] == {"ids": "solana", "vs_currencies": "usd"}
    assert rate.to_base(Decimal("285")) == Decimal("2")


def test_unknown_asset_rejected_without_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(PriceOracleUnknownPairError):
        asyncio.run(_client(handler).get_rate("DOGE/USD"))


def test_missing_quote_is_unknown_pair() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"solana": {}})

    with pytest.raises(PriceOracleUnknownPairError):
        asyncio.run(_client(handler).get_rate("SOL/EUR"))


def test_non_positive_rate_rejected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"solana": {"usd": 0}})

    with pytest.raises(PriceOracleError):
        asyncio.run(_client(handler).get_rate("SOL/USD"))


def test_server_errors_retry_then_fail() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    with pytest.raises(PriceOracleError):
        asyncio.run(_client(handler, max_retries=1).get_rate("SOL/USD"))
    assert len(calls) == 2


def test_rate_limit_then_success() -> None:
    responses = iter([httpx.Response(429), httpx.Response(200, json={"solana": {"usd": 100}})])

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    rate = asyncio.run(_client(handler, max_retries=1).get_rate("SOL/USD"))
    assert rate.rate == Decimal("100")


def test_client_error_is_not_retried() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, json={"error": "bad"})

    with pytest.raises(PriceOracleError) as exc_info:
        asyncio.run(_client(handler, max_retries=2).get_rate("SOL/USD"))
    assert exc_info.value.status_code == 400
    assert len(calls) == 1

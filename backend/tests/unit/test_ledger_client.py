"""Unit tests for the ledger client in paper and live mode."""

import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from agora.clients.ledger import LedgerClient, LedgerRPCError
from agora.config import LedgerConfig


def test_paper_mode_transfer_and_balance() -> None:
    client = LedgerClient(LedgerConfig(paper_mode=True, paper_balance=5.0))

    async def run() -> None:
        assert await client.get_balance("addr-1") == Decimal("5.0")
        result = await client.transfer("secret", "addr-1", Decimal("1.5"))
        assert result.success
        assert result.transfer_id.startswith("paper_")
        assert await client.get_balance("addr-1") == Decimal("6.5")

    asyncio.run(run())


def test_non_positive_amount_fails_without_submitting() -> None:
    client = LedgerClient(LedgerConfig(paper_mode=True))
    result = asyncio.run(client.transfer("secret", "addr-1", Decimal("0")))
    assert not result.success
    assert result.error == "invalid_amount"


def test_live_balance_scales_base_units() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["method"] == "getBalance"
        assert body["params"] == ["addr-1"]
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"value": 2_500_000_000}})

    client = LedgerClient(LedgerConfig(paper_mode=False), transport=httpx.MockTransport(handler))
    assert asyncio.run(client.get_balance("addr-1")) == Decimal("2.5")


def test_live_balance_rpc_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"message": "invalid param"}})

    client = LedgerClient(LedgerConfig(paper_mode=False), transport=httpx.MockTransport(handler))
    with pytest.raises(LedgerRPCError):
        asyncio.run(client.get_balance("addr-1"))


def test_live_transfer_success() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"transfer_id": "5xYz"})

    client = LedgerClient(
        LedgerConfig(paper_mode=False, signer_url="http://signer.local"),
        transport=httpx.MockTransport(handler),
    )
    result = asyncio.run(client.transfer("secret", "addr-1", Decimal("1.25"), "solana-devnet"))

    assert result.success
    assert result.transfer_id == "5xYz"
    assert seen["url"] == "http://signer.local/transfer"
    assert seen["body"] == {
        "secret": "secret",
        "to": "addr-1",
        "amount": "1.25",
        "network": "solana-devnet",
    }


def test_live_transfer_rejection_is_a_failed_result() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "insufficient_lamports", "reason": "treasury empty"})

    client = LedgerClient(LedgerConfig(paper_mode=False), transport=httpx.MockTransport(handler))
    result = asyncio.run(client.transfer("secret", "addr-1", Decimal("1")))

    assert not result.success
    assert result.error == "insufficient_lamports"
    assert result.reason == "treasury empty"


def test_live_transfer_timeout_is_a_failed_result() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    client = LedgerClient(LedgerConfig(paper_mode=False), transport=httpx.MockTransport(handler))
    result = asyncio.run(client.transfer("secret", "addr-1", Decimal("1")))

    assert not result.success
    assert result.error == "timeout"


def test_live_balance_non_json_body_raises_rpc_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>bad gateway</html>")

    client = LedgerClient(LedgerConfig(paper_mode=False), transport=httpx.MockTransport(handler))
    with pytest.raises(LedgerRPCError):
        asyncio.run(client.get_balance("addr-1"))

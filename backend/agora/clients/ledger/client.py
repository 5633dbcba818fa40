from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any
from uuid import uuid4

import httpx

from agora.config import LedgerConfig

from .exceptions import LedgerError, LedgerNetworkError, LedgerRPCError
from .models import TransferResult

logger = logging.getLogger(__name__)


class LedgerClient:
    """Submits value transfers and reads balances on the external network.

    Balances are read through the node's JSON-RPC ``getBalance``. Transfers go
    to a signing gateway which builds, signs, submits and confirms the
    transaction and answers with the transaction id. In paper mode nothing
    leaves the process.
    """

    def __init__(
        self,
        config: LedgerConfig | None = None,
        native_decimals: int = 9,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or LedgerConfig()
        self.native_decimals = native_decimals
        self._transport = transport
        self._paper_balances: dict[str, Decimal] = {}
        self._paper_transfers: list[TransferResult] = []

        logger.info(f"Initialized LedgerClient (paper_mode={self.config.paper_mode})")

    def _new_client(self, base_url: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=base_url,
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        )

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            async with self._new_client(self.config.rpc_url) as client:
                response = await client.post("", json=payload)
                response.raise_for_status()
                data = response.json()
        except ValueError as e:
            raise LedgerRPCError(f"RPC returned a non-JSON body: {e}") from e
        except httpx.HTTPStatusError as e:
            raise LedgerError(
                f"RPC HTTP error: {e}", status_code=e.response.status_code
            ) from e
        except httpx.RequestError as e:
            raise LedgerNetworkError(f"RPC unreachable: {e}") from e

        if not isinstance(data, dict):
            raise LedgerRPCError(f"Unexpected RPC response: {data!r}")
        error = data.get("error")
        if error:
            raise LedgerRPCError(str(error.get("message", error) if isinstance(error, dict) else error))
        return data.get("result")

    async def get_balance(self, address: str, network: str | None = None) -> Decimal:
        """Balance of ``address`` in native units."""
        if self.config.paper_mode:
            return self._paper_balances.get(address, Decimal(str(self.config.paper_balance)))

        result = await self._rpc("getBalance", [address])
        base_units = result["value"] if isinstance(result, dict) else result
        return Decimal(base_units).scaleb(-self.native_decimals)

    async def transfer(
        self,
        from_wallet_secret: str,
        to_address: str,
        amount: Decimal,
        network: str | None = None,
    ) -> TransferResult:
        """Submit a transfer and wait for confirmation.

        Ledger-side rejections are returned as a failed ``TransferResult``;
        only programming errors propagate.
        """
        network = network or self.config.network

        if amount <= 0:
            return TransferResult(
                success=False,
                error="invalid_amount",
                reason=f"Amount must be positive, got {amount}",
                amount=amount,
                to_address=to_address,
            )

        if self.config.paper_mode:
            return self._paper_transfer(to_address, amount)

        payload = {
            "secret": from_wallet_secret,
            "to": to_address,
            "amount": str(amount),
            "network": network,
        }
        try:
            async with self._new_client(self.config.signer_url) as client:
                response = await client.post("/transfer", json=payload)
                data = response.json()
        except httpx.TimeoutException:
            return TransferResult(
                success=False,
                error="timeout",
                reason="Timed out waiting for confirmation",
                amount=amount,
                to_address=to_address,
            )
        except (httpx.RequestError, ValueError) as e:
            return TransferResult(
                success=False,
                error="network_error",
                reason=str(e),
                amount=amount,
                to_address=to_address,
            )

        if response.status_code >= 400 or data.get("error"):
            return TransferResult(
                success=False,
                error=str(data.get("error") or f"http_{response.status_code}"),
                reason=data.get("reason"),
                amount=amount,
                to_address=to_address,
            )

        return TransferResult(
            success=True,
            transfer_id=data["transfer_id"],
            amount=amount,
            to_address=to_address,
        )

    def _paper_transfer(self, to_address: str, amount: Decimal) -> TransferResult:
        balance = self._paper_balances.get(to_address, Decimal(str(self.config.paper_balance)))
        self._paper_balances[to_address] = balance + amount

        result = TransferResult(
            success=True,
            transfer_id=f"paper_{uuid4().hex}",
            amount=amount,
            to_address=to_address,
        )
        self._paper_transfers.append(result)
        logger.info(f"[PAPER] {result}")
        return result


def create_ledger_client(
    config: LedgerConfig | None = None,
    native_decimals: int = 9,
) -> LedgerClient:
    """Create a LedgerClient instance."""
    return LedgerClient(config=config, native_decimals=native_decimals)

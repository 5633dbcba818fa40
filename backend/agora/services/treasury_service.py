"""Treasury registry: per-tenant funding wallets and budget counters."""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agora.config import get_settings
from agora.models import Treasury
from agora.utils.encryption import SecretResolver
from agora.utils.errors import SecretStoreUnavailableError, TreasuryNotFoundError

logger = logging.getLogger(__name__)


class TreasuryService:
    """
    Manages tenant treasuries.

    ``budget_spent`` only grows through ``record_spend`` (a single atomic
    UPDATE) and only an administrator reset brings it back to zero.
    """

    def __init__(self, secrets: Optional[SecretResolver] = None):
        self._secrets = secrets

    @property
    def secrets(self) -> SecretResolver:
        if self._secrets is None:
            self._secrets = SecretResolver(get_settings().treasury_encryption_key)
        return self._secrets

    @secrets.setter
    def secrets(self, resolver: Optional[SecretResolver]) -> None:
        self._secrets = resolver

    async def get_treasury(self, db: AsyncSession, tenant_id: str) -> Optional[Treasury]:
        result = await db.execute(select(Treasury).where(Treasury.tenant_id == tenant_id))
        return result.scalar_one_or_none()

    async def require_treasury(self, db: AsyncSession, tenant_id: str) -> Treasury:
        treasury = await self.get_treasury(db, tenant_id)
        if treasury is None:
            raise TreasuryNotFoundError(
                f"Tenant {tenant_id} has no treasury", {"tenant_id": tenant_id}
            )
        return treasury

    async def upsert_treasury(
        self,
        db: AsyncSession,
        tenant_id: str,
        wallet_address: str,
        secret: str,
        network: str,
        budget_total: Optional[Decimal] = None,
        budget_currency: Optional[str] = None,
    ) -> Treasury:
        """Create or replace a tenant's treasury; the secret is encrypted first."""
        if not self.secrets.enabled:
            raise SecretStoreUnavailableError(
                "Cannot store treasury secret: TREASURY_ENCRYPTION_KEY is not set"
            )
        encrypted = self.secrets.encrypt(secret)

        treasury = await self.get_treasury(db, tenant_id)
        if treasury is None:
            treasury = Treasury(
                tenant_id=tenant_id,
                wallet_address=wallet_address,
                encrypted_secret=encrypted,
                network=network,
                budget_total=budget_total if budget_total is not None else Decimal("0"),
                budget_spent=Decimal("0"),
                budget_currency=budget_currency or get_settings().settlement.native_currency,
            )
            db.add(treasury)
            logger.info(f"Registered treasury for tenant {tenant_id}")
        else:
            treasury.wallet_address = wallet_address
            treasury.encrypted_secret = encrypted
            treasury.network = network
            if budget_total is not None:
                treasury.budget_total = budget_total
            if budget_currency:
                treasury.budget_currency = budget_currency
            logger.info(f"Updated treasury for tenant {tenant_id}")

        await db.commit()
        await db.refresh(treasury)
        return treasury

    async def set_budget(self, db: AsyncSession, tenant_id: str, budget_total: Decimal) -> Treasury:
        treasury = await self.require_treasury(db, tenant_id)
        treasury.budget_total = budget_total
        await db.commit()
        await db.refresh(treasury)
        logger.info(f"Tenant {tenant_id} budget set to {budget_total}")
        return treasury

    async def reset_budget_spent(self, db: AsyncSession, tenant_id: str) -> Treasury:
        """Administrator reset of the spend counter."""
        treasury = await self.require_treasury(db, tenant_id)
        await db.execute(
            update(Treasury)
            .where(Treasury.id == treasury.id)
            .values(budget_spent=Decimal("0"))
        )
        await db.commit()
        await db.refresh(treasury)
        logger.info(f"Tenant {tenant_id} budget_spent reset")
        return treasury

    async def record_spend(self, db: AsyncSession, tenant_id: str, amount: Decimal) -> None:
        """Atomically add a confirmed outflow to ``budget_spent``. Caller commits."""
        if amount <= 0:
            return
        await db.execute(
            update(Treasury)
            .where(Treasury.tenant_id == tenant_id)
            .values(budget_spent=Treasury.budget_spent + amount)
        )


treasury_service = TreasuryService()

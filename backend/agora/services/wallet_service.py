"""Participant payout address registry."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agora.models import UserWallet

logger = logging.getLogger(__name__)


class WalletService:
    """Registered payout addresses, one per user."""

    async def get_wallet(self, db: AsyncSession, user_id: str) -> Optional[UserWallet]:
        result = await db.execute(select(UserWallet).where(UserWallet.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_payout_address(self, db: AsyncSession, user_id: str) -> Optional[str]:
        wallet = await self.get_wallet(db, user_id)
        return wallet.payout_address if wallet else None

    async def set_payout_address(
        self,
        db: AsyncSession,
        user_id: str,
        payout_address: str,
        network: Optional[str] = None,
    ) -> UserWallet:
        wallet = await self.get_wallet(db, user_id)
        if wallet is None:
            wallet = UserWallet(user_id=user_id, payout_address=payout_address, network=network)
            db.add(wallet)
        else:
            wallet.payout_address = payout_address
            wallet.network = network

        await db.commit()
        await db.refresh(wallet)
        logger.info(f"Payout address registered for user {user_id}")
        return wallet


wallet_service = WalletService()

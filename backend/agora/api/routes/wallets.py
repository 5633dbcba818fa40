"""Payout address registry routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agora.database.dependencies import get_db
from agora.schemas import WalletResponse, WalletUpdate
from agora.services import wallet_service
from agora.utils.errors import NoPayoutAddressError

router = APIRouter(prefix="/users/{user_id}/wallet", tags=["Wallets"])


@router.put("", response_model=WalletResponse)
async def set_wallet(
    user_id: str,
    request: WalletUpdate,
    db: AsyncSession = Depends(get_db),
):
    wallet = await wallet_service.set_payout_address(
        db, user_id, request.payout_address, request.network
    )
    return WalletResponse.model_validate(wallet)


@router.get("", response_model=WalletResponse)
async def get_wallet(user_id: str, db: AsyncSession = Depends(get_db)):
    wallet = await wallet_service.get_wallet(db, user_id)
    if wallet is None:
        raise NoPayoutAddressError(f"User {user_id} has no registered payout address")
    return WalletResponse.model_validate(wallet)

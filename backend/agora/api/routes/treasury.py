"""Treasury administration routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agora.database.dependencies import get_db
from agora.schemas import BudgetUpdate, TreasuryResponse, TreasuryUpsert
from agora.services import treasury_service

router = APIRouter(prefix="/tenants/{tenant_id}/treasury", tags=["Treasury"])


@router.put("", response_model=TreasuryResponse)
async def upsert_treasury(
    tenant_id: str,
    request: TreasuryUpsert,
    db: AsyncSession = Depends(get_db),
):
    treasury = await treasury_service.upsert_treasury(
        db,
        tenant_id,
        wallet_address=request.wallet_address,
        secret=request.secret,
        network=request.network,
        budget_total=request.budget_total,
        budget_currency=request.budget_currency,
    )
    return TreasuryResponse.model_validate(treasury)


@router.get("", response_model=TreasuryResponse)
async def get_treasury(tenant_id: str, db: AsyncSession = Depends(get_db)):
    treasury = await treasury_service.require_treasury(db, tenant_id)
    return TreasuryResponse.model_validate(treasury)


@router.put("/budget", response_model=TreasuryResponse)
async def set_budget(
    tenant_id: str,
    request: BudgetUpdate,
    db: AsyncSession = Depends(get_db),
):
    treasury = await treasury_service.set_budget(db, tenant_id, request.budget_total)
    return TreasuryResponse.model_validate(treasury)


@router.post("/budget/reset", response_model=TreasuryResponse)
async def reset_budget(tenant_id: str, db: AsyncSession = Depends(get_db)):
    """Zero the spend counter."""
    treasury = await treasury_service.reset_budget_spent(db, tenant_id)
    return TreasuryResponse.model_validate(treasury)

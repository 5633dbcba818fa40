"""Admin API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agora.database.dependencies import get_db
from agora.schemas import CancelRequest, EventResponse, SettlementResult
from agora.services import event_service, settlement_service
from agora.services.trigger_service import manual_settle

router = APIRouter(prefix="/events/{event_id}", tags=["Admin"])


@router.post("/publish", response_model=EventResponse)
async def publish_event(event_id: UUID, db: AsyncSession = Depends(get_db)):
    """Open a draft for entries; the deadline starts now."""
    event = await event_service.publish_event(db, event_id)
    return EventResponse.model_validate(event)


@router.post("/cancel", response_model=SettlementResult)
async def cancel_event(
    event_id: UUID,
    request: CancelRequest,
    db: AsyncSession = Depends(get_db),
):
    """Soft-cancel; active pot events refund committed fees."""
    await event_service.cancel_event(db, event_id, reason=request.reason)
    return await settlement_service.get_settlement_result(db, event_id)


@router.post("/settle", response_model=SettlementResult)
async def settle_event(event_id: UUID, db: AsyncSession = Depends(get_db)):
    """Manual settlement trigger; already-settled events return their result."""
    return await manual_settle(db, event_id)

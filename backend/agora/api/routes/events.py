"""Events API routes."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from agora.database.dependencies import get_db
from agora.models import EventStatus
from agora.schemas import EventCreate, EventResponse, SettlementResult
from agora.services import event_service, settlement_service

router = APIRouter(tags=["Events"])


@router.post("/tenants/{tenant_id}/events", response_model=EventResponse, status_code=201)
async def create_event(
    tenant_id: str,
    request: EventCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a draft event."""
    event = await event_service.create_event(db, tenant_id, request)
    return EventResponse.model_validate(event)


@router.get("/tenants/{tenant_id}/events", response_model=list[EventResponse])
async def list_events(
    tenant_id: str,
    status: Optional[EventStatus] = None,
    limit: int = Query(50, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List a tenant's events, newest first."""
    events = await event_service.list_events(
        db, tenant_id, status=status, limit=limit, offset=offset
    )
    return [EventResponse.model_validate(e) for e in events]


@router.get("/events/{event_id}", response_model=EventResponse)
async def get_event(event_id: UUID, db: AsyncSession = Depends(get_db)):
    event = await event_service.require_event(db, event_id)
    return EventResponse.model_validate(event)


@router.get("/events/{event_id}/settlement", response_model=SettlementResult)
async def get_settlement(event_id: UUID, db: AsyncSession = Depends(get_db)):
    """Settlement result payload; payout rows are the source of truth."""
    return await settlement_service.get_settlement_result(db, event_id)

"""Participant-facing entry routes."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agora.database.dependencies import get_db
from agora.schemas import CommitRequest, EntryResponse, JoinRequest, OptionChoiceRequest
from agora.services import entry_service

router = APIRouter(prefix="/events/{event_id}", tags=["Participation"])


@router.post("/join", response_model=EntryResponse, status_code=201)
async def join_event(
    event_id: UUID,
    request: JoinRequest,
    db: AsyncSession = Depends(get_db),
):
    entry = await entry_service.join_event(db, event_id, request.user_id)
    return EntryResponse.model_validate(entry)


@router.post("/vote", response_model=EntryResponse)
async def vote(
    event_id: UUID,
    request: OptionChoiceRequest,
    db: AsyncSession = Depends(get_db),
):
    entry = await entry_service.vote(db, event_id, request.user_id, request.option_id)
    return EntryResponse.model_validate(entry)


@router.post("/select", response_model=EntryResponse)
async def select_option(
    event_id: UUID,
    request: OptionChoiceRequest,
    db: AsyncSession = Depends(get_db),
):
    """Pick a wager slot (phase one for pot-mode wagers)."""
    entry = await entry_service.select_option(
        db, event_id, request.user_id, request.option_id
    )
    return EntryResponse.model_validate(entry)


@router.post("/commit", response_model=EntryResponse)
async def commit_entry(
    event_id: UUID,
    request: CommitRequest,
    db: AsyncSession = Depends(get_db),
):
    """Confirm a pot-mode selection (phase two)."""
    entry = await entry_service.commit_entry(db, event_id, request.user_id)
    return EntryResponse.model_validate(entry)

"""
Event endpoints. Every event belongs to the organizer who created it and is
only visible to them.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventpass.core.security import get_current_user_id
from eventpass.db.session import get_db
from eventpass.schemas.event import EventCreate, EventResponse, EventStats, EventUpdate
from eventpass.services.event_service import (
    create_event,
    delete_event,
    get_event_stats,
    get_owned_event,
    list_events,
    update_event,
)

router = APIRouter(prefix="/events", tags=["Events"])


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event owned by the caller."""
    return await create_event(db, event_data, user_id)


@router.get("", response_model=list[EventResponse])
async def list_events_endpoint(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """The caller's events, earliest first."""
    return await list_events(db, user_id)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_owned_event(db, event_id, user_id)


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: str,
    changes: EventUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    event = await get_owned_event(db, event_id, user_id)
    return await update_event(db, event, changes)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete an event together with all of its tickets."""
    event = await get_owned_event(db, event_id, user_id)
    await delete_event(db, event)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{event_id}/stats", response_model=EventStats)
async def event_stats_endpoint(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Dashboard counters: tickets issued, active, fully used, benefits redeemed."""
    await get_owned_event(db, event_id, user_id)
    return await get_event_stats(db, event_id)

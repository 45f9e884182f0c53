"""
Event endpoints: create, inspect, delete and reconcile inventory.
"""

import uuid

from fastapi import APIRouter, Depends, status

from ticket_booking.api.dependencies import get_orchestrator
from ticket_booking.schemas.event import (
    EventCreate,
    EventResponse,
    EventStatusResponse,
    EventDeleteResponse,
    ReconcileResponse,
)
from ticket_booking.services.booking_service import BookingOrchestrator

router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    """Create an event with every ticket available."""
    return await orchestrator.create_event(event_data.total_tickets)


@router.get("/{event_id}", response_model=EventStatusResponse)
async def get_event_endpoint(
    event_id: uuid.UUID,
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    """Ticket counters plus the number of users waiting for a ticket."""
    event_status = await orchestrator.get_event(event_id)
    return EventStatusResponse(
        **EventResponse.model_validate(event_status.event).model_dump(),
        waiting=event_status.waiting,
    )


@router.delete("/{event_id}", response_model=EventDeleteResponse)
async def delete_event_endpoint(
    event_id: uuid.UUID,
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    """Soft-delete an event. Its waiting list is dropped."""
    await orchestrator.delete_event(event_id)
    return EventDeleteResponse(message="Event deleted", event_id=event_id)


@router.post("/{event_id}/reconcile", response_model=ReconcileResponse)
async def reconcile_event_endpoint(
    event_id: uuid.UUID,
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    """Recount available tickets from confirmed bookings and promote waiting users into free slots."""
    result = await orchestrator.reconcile(event_id)
    return ReconcileResponse(
        event=EventResponse.model_validate(result.event),
        previous_available=result.previous_available,
        promoted_user_ids=[booking.user_id for booking in result.promoted],
        promoted_booking_ids=[booking.id for booking in result.promoted],
    )

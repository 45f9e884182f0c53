"""
Booking endpoints: book (or join the waiting list), cancel, list.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ticket_booking.api.dependencies import get_orchestrator
from ticket_booking.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingWithEventResponse,
    BookTicketResponse,
    BookingCancelResponse,
)
from ticket_booking.services.booking_service import BOOKED, BookingOrchestrator

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post(
    "/",
    response_model=BookTicketResponse,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_202_ACCEPTED: {"model": BookTicketResponse, "description": "Added to waiting list"}},
)
async def create_booking(
    booking_data: BookingCreate,
    response: Response,
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    """
    Book one ticket for an event.

    201 with the booking when a ticket was free. When the event is sold out
    the user joins the event's waiting list instead: 202 with the position
    in line, and no booking yet.
    """
    result = await orchestrator.book_ticket(booking_data.event_id, booking_data.user_id)

    if result.outcome == BOOKED:
        return BookTicketResponse(
            outcome=result.outcome,
            message="Ticket booked",
            event_id=result.event_id,
            user_id=result.user_id,
            booking=BookingResponse.model_validate(result.booking),
        )

    response.status_code = status.HTTP_202_ACCEPTED
    return BookTicketResponse(
        outcome=result.outcome,
        message="Added to waiting list",
        event_id=result.event_id,
        user_id=result.user_id,
        position=result.position,
    )


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: uuid.UUID,
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    """Cancel a booking. The ticket goes to the next waiting user, if any."""
    result = await orchestrator.cancel_booking(booking_id)
    return BookingCancelResponse(
        message="Booking canceled",
        booking_id=result.booking.id,
        status=result.booking.status,
        released=result.released,
        promoted=BookingResponse.model_validate(result.promoted) if result.promoted else None,
    )


@router.get("/", response_model=list[BookingWithEventResponse])
async def list_bookings_endpoint(
    event_id: Optional[uuid.UUID] = Query(None),
    user_id: Optional[str] = Query(None, max_length=64),
    include_canceled: bool = Query(False),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
):
    """All bookings, newest first, with their event's ticket counters."""
    return await orchestrator.list_bookings(
        event_id=event_id,
        user_id=user_id,
        include_canceled=include_canceled,
    )

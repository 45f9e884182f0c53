"""
Pydantic schemas for booking-related request/response validation.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from ticket_booking.schemas.event import EventSummary


class BookingCreate(BaseModel):
    event_id: uuid.UUID
    user_id: str = Field(..., min_length=1, max_length=64)


class BookingResponse(BaseModel):
    id: uuid.UUID
    event_id: uuid.UUID
    user_id: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingWithEventResponse(BookingResponse):
    updated_at: datetime
    deleted_at: Optional[datetime] = None
    event: Optional[EventSummary] = None


class BookTicketResponse(BaseModel):
    outcome: Literal["booked", "waitlisted"]
    message: str
    event_id: uuid.UUID
    user_id: str
    booking: Optional[BookingResponse] = None
    position: Optional[int] = None


class BookingCancelResponse(BaseModel):
    outcome: Literal["canceled"] = "canceled"
    message: str
    booking_id: uuid.UUID
    status: str
    released: bool
    promoted: Optional[BookingResponse] = None

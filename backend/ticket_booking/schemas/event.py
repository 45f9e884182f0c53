"""
Pydantic schemas for event-related request/response validation.
"""

import uuid
from datetime import datetime
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    # Negative counts are rejected by the orchestrator with InvalidInput (400)
    total_tickets: int = Field(..., strict=True)


class EventResponse(BaseModel):
    id: uuid.UUID
    total_tickets: int
    available_tickets: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EventStatusResponse(EventResponse):
    waiting: int = 0


class EventSummary(BaseModel):
    """Event attributes joined into booking listings."""

    id: uuid.UUID
    total_tickets: int
    available_tickets: int

    model_config = {"from_attributes": True}


class EventDeleteResponse(BaseModel):
    message: str
    event_id: uuid.UUID


class ReconcileResponse(BaseModel):
    event: EventResponse
    previous_available: int
    promoted_user_ids: list[str]
    promoted_booking_ids: list[uuid.UUID]

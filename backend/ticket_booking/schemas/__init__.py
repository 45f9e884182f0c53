from ticket_booking.schemas.event import (
    EventCreate, EventResponse, EventStatusResponse, EventSummary, EventDeleteResponse, ReconcileResponse,
)
from ticket_booking.schemas.booking import (
    BookingCreate, BookingResponse, BookingWithEventResponse, BookTicketResponse, BookingCancelResponse,
)

__all__ = [
    "EventCreate", "EventResponse", "EventStatusResponse", "EventSummary", "EventDeleteResponse",
    "ReconcileResponse",
    "BookingCreate", "BookingResponse", "BookingWithEventResponse", "BookTicketResponse",
    "BookingCancelResponse",
]

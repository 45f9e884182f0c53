from ticket_booking.models.event import Event
from ticket_booking.models.booking import Booking, BookingStatus

__all__ = ["Event", "Booking", "BookingStatus"]

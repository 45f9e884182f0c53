"""
Error taxonomy of the booking core.

Services raise these; the API layer turns them into JSON responses
(see ticket_booking.api.errors). Each kind has one stable HTTP status.
"""


class BookingError(Exception):
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInput(BookingError):
    """Malformed request data, e.g. a negative ticket count."""

    status_code = 400


class NotFound(BookingError):
    """Event or booking id does not resolve to a live record."""

    status_code = 404


class Conflict(BookingError):
    status_code = 409


class StorageError(BookingError):
    """A durable store operation failed."""

    status_code = 500

    def __init__(self, message: str = "operation failed"):
        super().__init__(message)

"""
Event/Booking store interface.

The booking core only talks to this abstraction, never to a concrete
storage client.
"""

import uuid
from abc import ABC, abstractmethod
from typing import AsyncContextManager, Optional

from ticket_booking.models.event import Event
from ticket_booking.models.booking import Booking, BookingStatus


class EventBookingStore(ABC):
    """
    Durable storage of events and bookings.

    Implementations:
    - SqlAlchemyStore: PostgreSQL (or any async SQLAlchemy dialect)
    - InMemoryStore: process-local dictionaries, for tests and local runs

    Every method may raise StorageError. Lookups of missing or soft-deleted
    records raise NotFound.
    """

    @abstractmethod
    def transaction(self) -> AsyncContextManager["EventBookingStore"]:
        """
        Open a unit of work.

        Yields a store whose calls all commit together when the block exits
        normally, and are all discarded when it raises. Calling
        transaction() on the yielded store joins the open unit.
        """

    @abstractmethod
    async def create_event(self, event_id: uuid.UUID, total_tickets: int, available_tickets: int) -> Event:
        pass

    @abstractmethod
    async def get_event(self, event_id: uuid.UUID) -> Event:
        pass

    @abstractmethod
    async def save_event(self, event: Event, expected_available: Optional[int] = None) -> None:
        """
        Persist the event's ticket counters.

        With expected_available set, the write only happens while the stored
        available_tickets still has that value; otherwise Conflict.
        """

    @abstractmethod
    async def reserve_ticket(self, event_id: uuid.UUID) -> int:
        """
        Take one ticket in the store, if one is left.

        Returns the remaining available_tickets. Raises Conflict when the
        event is sold out, whatever any in-process counter believes.
        """

    @abstractmethod
    async def release_ticket(self, event_id: uuid.UUID) -> int:
        """Give one ticket back. Conflict if available_tickets is already at total_tickets."""

    @abstractmethod
    async def soft_delete_event(self, event_id: uuid.UUID) -> None:
        pass

    @abstractmethod
    async def create_booking(self, event_id: uuid.UUID, user_id: str, status: BookingStatus) -> Booking:
        pass

    @abstractmethod
    async def get_booking(self, booking_id: uuid.UUID) -> Booking:
        pass

    @abstractmethod
    async def soft_delete_booking(self, booking_id: uuid.UUID) -> None:
        """Mark the booking CANCELED and hide it from lookups."""

    @abstractmethod
    async def list_bookings(
        self,
        join_event: bool = True,
        event_id: Optional[uuid.UUID] = None,
        user_id: Optional[str] = None,
        include_canceled: bool = False,
    ) -> list[Booking]:
        """Bookings newest first, with `booking.event` loaded when join_event is set."""

    @abstractmethod
    async def count_confirmed(self, event_id: uuid.UUID) -> int:
        """Live CONFIRMED bookings of an event."""

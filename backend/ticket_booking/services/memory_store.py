"""
In-memory implementation of the event/booking store.

Used for local runs (STORE_BACKEND=memory) and for tests of the booking
core. Rows are kept as plain dicts and handed out as fresh model
instances, so callers never share mutable state with the store.

transaction() keeps an undo log of the rows it touched and restores them
if the block raises. Only touched rows are restored, so concurrent units
on other rows are left alone.
"""

import copy
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from ticket_booking.core.exceptions import Conflict, NotFound
from ticket_booking.db.base import utcnow
from ticket_booking.models.event import Event
from ticket_booking.models.booking import Booking, BookingStatus
from ticket_booking.services.interfaces.store import EventBookingStore


class _Tables:
    def __init__(self):
        self.events: dict[uuid.UUID, dict] = {}
        self.bookings: dict[uuid.UUID, dict] = {}


class InMemoryStore(EventBookingStore):

    def __init__(self):
        self._tables = _Tables()
        self._undo_log: Optional[list] = None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["InMemoryStore"]:
        if self._undo_log is not None:
            yield self
            return

        undo_log: list = []
        try:
            unit = copy.copy(self)
            unit._undo_log = undo_log
            yield unit
        except BaseException:
            for table, key, previous in reversed(undo_log):
                if previous is None:
                    table.pop(key, None)
                else:
                    table[key] = previous
            raise

    def _write(self, table: dict, key: uuid.UUID, row: dict) -> None:
        if self._undo_log is not None:
            previous = table.get(key)
            self._undo_log.append((table, key, dict(previous) if previous is not None else None))
        table[key] = row

    @staticmethod
    def _event(row: dict) -> Event:
        return Event(**row)

    @staticmethod
    def _booking(row: dict, event_row: Optional[dict] = None) -> Booking:
        booking = Booking(**row)
        if event_row is not None:
            booking.event = Event(**event_row)
        return booking

    def _live_event_row(self, event_id: uuid.UUID) -> dict:
        row = self._tables.events.get(event_id)
        if row is None or row["deleted_at"] is not None:
            raise NotFound(f"Event {event_id} not found")
        return row

    def _live_booking_row(self, booking_id: uuid.UUID) -> dict:
        row = self._tables.bookings.get(booking_id)
        if row is None or row["deleted_at"] is not None:
            raise NotFound(f"Booking {booking_id} not found")
        return row

    async def create_event(self, event_id: uuid.UUID, total_tickets: int, available_tickets: int) -> Event:
        now = utcnow()
        row = {
            "id": event_id,
            "total_tickets": total_tickets,
            "available_tickets": available_tickets,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        }
        self._write(self._tables.events, event_id, row)
        return self._event(row)

    async def get_event(self, event_id: uuid.UUID) -> Event:
        return self._event(self._live_event_row(event_id))

    async def save_event(self, event: Event, expected_available: Optional[int] = None) -> None:
        row = dict(self._live_event_row(event.id))
        if expected_available is not None and row["available_tickets"] != expected_available:
            raise Conflict(f"Event {event.id} inventory changed concurrently")
        row.update(
            total_tickets=event.total_tickets,
            available_tickets=event.available_tickets,
            updated_at=utcnow(),
        )
        self._write(self._tables.events, event.id, row)

    async def reserve_ticket(self, event_id: uuid.UUID) -> int:
        row = dict(self._live_event_row(event_id))
        if row["available_tickets"] < 1:
            raise Conflict(f"Event {event_id} is sold out")
        row.update(available_tickets=row["available_tickets"] - 1, updated_at=utcnow())
        self._write(self._tables.events, event_id, row)
        return row["available_tickets"]

    async def release_ticket(self, event_id: uuid.UUID) -> int:
        row = dict(self._live_event_row(event_id))
        if row["available_tickets"] >= row["total_tickets"]:
            raise Conflict(f"Event {event_id} has no reserved ticket to release")
        row.update(available_tickets=row["available_tickets"] + 1, updated_at=utcnow())
        self._write(self._tables.events, event_id, row)
        return row["available_tickets"]

    async def soft_delete_event(self, event_id: uuid.UUID) -> None:
        row = dict(self._live_event_row(event_id))
        row.update(deleted_at=utcnow(), updated_at=utcnow())
        self._write(self._tables.events, event_id, row)

    async def create_booking(self, event_id: uuid.UUID, user_id: str, status: BookingStatus) -> Booking:
        if event_id not in self._tables.events:
            raise NotFound(f"Event {event_id} not found")
        now = utcnow()
        row = {
            "id": uuid.uuid4(),
            "event_id": event_id,
            "user_id": user_id,
            "status": status.value,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        }
        self._write(self._tables.bookings, row["id"], row)
        return self._booking(row)

    async def get_booking(self, booking_id: uuid.UUID) -> Booking:
        return self._booking(self._live_booking_row(booking_id))

    async def soft_delete_booking(self, booking_id: uuid.UUID) -> None:
        row = dict(self._live_booking_row(booking_id))
        now = utcnow()
        row.update(status=BookingStatus.CANCELED.value, deleted_at=now, updated_at=now)
        self._write(self._tables.bookings, booking_id, row)

    async def list_bookings(
        self,
        join_event: bool = True,
        event_id: Optional[uuid.UUID] = None,
        user_id: Optional[str] = None,
        include_canceled: bool = False,
    ) -> list[Booking]:
        rows = [
            row for row in self._tables.bookings.values()
            if (event_id is None or row["event_id"] == event_id)
            and (user_id is None or row["user_id"] == user_id)
            and (include_canceled or row["deleted_at"] is None)
        ]
        # dicts keep insertion order, reversed() breaks created_at ties newest first
        rows = sorted(reversed(rows), key=lambda row: row["created_at"], reverse=True)
        return [
            self._booking(row, self._tables.events.get(row["event_id"]) if join_event else None)
            for row in rows
        ]

    async def count_confirmed(self, event_id: uuid.UUID) -> int:
        return sum(
            1 for row in self._tables.bookings.values()
            if row["event_id"] == event_id
            and row["status"] == BookingStatus.CONFIRMED.value
            and row["deleted_at"] is None
        )

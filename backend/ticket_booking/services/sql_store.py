"""
SQLAlchemy implementation of the event/booking store.

Each call outside transaction() runs in its own short session. Inside
transaction() all calls share one session and one database transaction.
SQLAlchemy errors never leave this module: they are logged and re-raised
as StorageError.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from ticket_booking.core.exceptions import Conflict, NotFound, StorageError
from ticket_booking.core.logging import get_logger
from ticket_booking.db.base import utcnow
from ticket_booking.models.event import Event
from ticket_booking.models.booking import Booking, BookingStatus
from ticket_booking.services.interfaces.store import EventBookingStore

logger = get_logger(__name__)


class SqlAlchemyStore(EventBookingStore):

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        session: Optional[AsyncSession] = None,
    ):
        self._session_factory = session_factory
        self._session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SqlAlchemyStore"]:
        if self._session is not None:
            yield self
            return

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield SqlAlchemyStore(self._session_factory, session)
        except SQLAlchemyError as e:
            logger.error("store_transaction_failed", error=str(e))
            raise StorageError() from e

    async def create_event(self, event_id: uuid.UUID, total_tickets: int, available_tickets: int) -> Event:
        async with self.transaction() as tx:
            event = Event(id=event_id, total_tickets=total_tickets, available_tickets=available_tickets)
            tx._session.add(event)
            await tx._session.flush()
            return event

    async def get_event(self, event_id: uuid.UUID) -> Event:
        async with self.transaction() as tx:
            result = await tx._session.execute(
                select(Event).where(Event.id == event_id, Event.deleted_at.is_(None))
            )
            event = result.scalar_one_or_none()

        if event is None:
            raise NotFound(f"Event {event_id} not found")
        return event

    async def save_event(self, event: Event, expected_available: Optional[int] = None) -> None:
        conditions = [Event.id == event.id, Event.deleted_at.is_(None)]
        if expected_available is not None:
            conditions.append(Event.available_tickets == expected_available)

        async with self.transaction() as tx:
            result = await tx._session.execute(
                update(Event)
                .where(*conditions)
                .values(
                    total_tickets=event.total_tickets,
                    available_tickets=event.available_tickets,
                    updated_at=utcnow(),
                )
            )
            if result.rowcount == 0:
                await tx._raise_unchanged(event.id, f"Event {event.id} inventory changed concurrently")

    async def reserve_ticket(self, event_id: uuid.UUID) -> int:
        # Atomic conditional decrement, the database refuses to oversell
        async with self.transaction() as tx:
            result = await tx._session.execute(
                update(Event)
                .where(
                    Event.id == event_id,
                    Event.deleted_at.is_(None),
                    Event.available_tickets >= 1,
                )
                .values(available_tickets=Event.available_tickets - 1, updated_at=utcnow())
            )
            if result.rowcount == 0:
                await tx._raise_unchanged(event_id, f"Event {event_id} is sold out")
            return await tx._available(event_id)

    async def release_ticket(self, event_id: uuid.UUID) -> int:
        async with self.transaction() as tx:
            result = await tx._session.execute(
                update(Event)
                .where(
                    Event.id == event_id,
                    Event.deleted_at.is_(None),
                    Event.available_tickets < Event.total_tickets,
                )
                .values(available_tickets=Event.available_tickets + 1, updated_at=utcnow())
            )
            if result.rowcount == 0:
                await tx._raise_unchanged(event_id, f"Event {event_id} has no reserved ticket to release")
            return await tx._available(event_id)

    async def _available(self, event_id: uuid.UUID) -> int:
        result = await self._session.execute(
            select(Event.available_tickets).where(Event.id == event_id)
        )
        return result.scalar_one()

    async def _raise_unchanged(self, event_id: uuid.UUID, conflict_message: str):
        """A conditional update matched no row: the event is gone, or the condition failed."""
        result = await self._session.execute(
            select(Event.id).where(Event.id == event_id, Event.deleted_at.is_(None))
        )
        if result.scalar_one_or_none() is None:
            raise NotFound(f"Event {event_id} not found")
        raise Conflict(conflict_message)

    async def soft_delete_event(self, event_id: uuid.UUID) -> None:
        async with self.transaction() as tx:
            result = await tx._session.execute(
                update(Event)
                .where(Event.id == event_id, Event.deleted_at.is_(None))
                .values(deleted_at=utcnow(), updated_at=utcnow())
            )
            if result.rowcount == 0:
                raise NotFound(f"Event {event_id} not found")

    async def create_booking(self, event_id: uuid.UUID, user_id: str, status: BookingStatus) -> Booking:
        async with self.transaction() as tx:
            booking = Booking(id=uuid.uuid4(), event_id=event_id, user_id=user_id, status=status.value)
            tx._session.add(booking)
            await tx._session.flush()
            return booking

    async def get_booking(self, booking_id: uuid.UUID) -> Booking:
        async with self.transaction() as tx:
            result = await tx._session.execute(
                select(Booking).where(Booking.id == booking_id, Booking.deleted_at.is_(None))
            )
            booking = result.scalar_one_or_none()

        if booking is None:
            raise NotFound(f"Booking {booking_id} not found")
        return booking

    async def soft_delete_booking(self, booking_id: uuid.UUID) -> None:
        async with self.transaction() as tx:
            now = utcnow()
            result = await tx._session.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.deleted_at.is_(None))
                .values(status=BookingStatus.CANCELED.value, deleted_at=now, updated_at=now)
            )
            if result.rowcount == 0:
                raise NotFound(f"Booking {booking_id} not found")

    async def list_bookings(
        self,
        join_event: bool = True,
        event_id: Optional[uuid.UUID] = None,
        user_id: Optional[str] = None,
        include_canceled: bool = False,
    ) -> list[Booking]:
        query = select(Booking)
        if join_event:
            query = query.options(selectinload(Booking.event))
        if event_id is not None:
            query = query.where(Booking.event_id == event_id)
        if user_id is not None:
            query = query.where(Booking.user_id == user_id)
        if not include_canceled:
            query = query.where(Booking.deleted_at.is_(None))

        async with self.transaction() as tx:
            result = await tx._session.execute(query.order_by(Booking.created_at.desc()))
            return list(result.scalars().all())

    async def count_confirmed(self, event_id: uuid.UUID) -> int:
        async with self.transaction() as tx:
            result = await tx._session.execute(
                select(func.count(Booking.id)).where(
                    Booking.event_id == event_id,
                    Booking.status == BookingStatus.CONFIRMED.value,
                    Booking.deleted_at.is_(None),
                )
            )
            return int(result.scalar() or 0)

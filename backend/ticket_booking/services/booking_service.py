"""
Booking orchestrator: book, cancel and reassign tickets.

CONCURRENCY STRATEGY: Per-event units over an in-memory ledger,
backed by conditional updates in the store
=============================================================

Problem:
  Two users try to book the last ticket simultaneously.
  Both read available_tickets=1, both decrement to 0, both succeed.
  Result: Overbooking.

  And when a ticket is freed while someone is waiting, the slot must go to
  the first person in line, exactly once, and never sit idle.

Solution:
  1. InventoryLedger.try_reserve() is an atomic check-and-decrement under
     a per-event lock. Exactly one of the two racers gets the last ticket;
     the other is put on the waiting list instead of failing.

  2. Every booking or cancellation for an event runs as one unit behind
     that event's gate (an asyncio.Lock):

       decide in memory  ->  commit one store transaction  ->  compensate

     Book:    reserve or enqueue; persist booking + decremented event;
              on failure release the reservation.
     Cancel:  dequeue the next waiting user or plan a release; persist
              cancellation + promoted booking (or incremented event);
              on failure put the user back at the head of the line.

     Units for the same event never interleave between decision and
     commit, so the ledger, the waiting list and the store agree after
     every unit. Units for different events never wait on each other.

  3. A cancellation always looks at the waiting list before it releases
     inventory. The promoted booking takes the freed slot directly and
     never goes through try_reserve().

  4. The store changes counters only with conditional updates
     (UPDATE ... WHERE available_tickets >= 1). Several API processes can
     share one database and one Redis waiting list: each has its own
     ledger, which is re-synced from the event row at the start of every
     unit, and a reservation the database refuses is retried from fresh
     counters or ends on the waiting list.

Recovery policy:
  The cancellation commit is retried up to PERSIST_RETRY_ATTEMPTS times.
  If it still fails the booking stays CONFIRMED, a dequeued user is put
  back at the head of the queue and StorageError is raised. Nothing is
  lost and no slot changes hands. reconcile() recomputes an event's
  inventory from its bookings and promotes waiting users into any free
  slots.
"""

import asyncio
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional

from ticket_booking.core.exceptions import Conflict, InvalidInput, NotFound, StorageError
from ticket_booking.core.logging import get_logger
from ticket_booking.core.metrics import (
    booking_latency,
    forget_waitlist_size,
    record_booking,
    record_cancellation,
    record_reconciliation,
    record_store_retry,
    record_waitlist_size,
)
from ticket_booking.models.event import Event
from ticket_booking.models.booking import Booking, BookingStatus
from ticket_booking.services.interfaces.store import EventBookingStore
from ticket_booking.services.interfaces.waiting_list import WaitingList
from ticket_booking.services.inventory import Inventory, InventoryLedger

logger = get_logger(__name__)

DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_MAX_TICKETS = 1_000_000

BOOKED = "booked"
WAITLISTED = "waitlisted"


@dataclass
class BookingResult:
    outcome: str
    event_id: uuid.UUID
    user_id: str
    booking: Optional[Booking] = None
    position: Optional[int] = None  # place in line when waitlisted


@dataclass
class CancellationResult:
    booking: Booking
    promoted: Optional[Booking] = None
    released: bool = False


@dataclass
class EventStatus:
    event: Event
    waiting: int


@dataclass
class ReconcileResult:
    event: Event
    previous_available: int
    promoted: list[Booking] = field(default_factory=list)


class _Gate:
    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0  # tasks holding or waiting for the lock


class BookingOrchestrator:

    def __init__(
        self,
        store: EventBookingStore,
        waiting_list: WaitingList,
        ledger: Optional[InventoryLedger] = None,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        max_tickets: int = DEFAULT_MAX_TICKETS,
    ):
        self.store = store
        self.waiting_list = waiting_list
        self.ledger = ledger if ledger is not None else InventoryLedger()
        self.retry_attempts = max(1, retry_attempts)
        self.max_tickets = max_tickets
        self._gates: dict[str, _Gate] = {}

    @asynccontextmanager
    async def _gate(self, event_id: uuid.UUID) -> AsyncIterator[None]:
        """Serialize units for one event. Idle gates are dropped."""
        key = str(event_id)
        gate = self._gates.get(key)
        if gate is None:
            gate = self._gates[key] = _Gate()
        gate.users += 1
        try:
            async with gate.lock:
                yield
        finally:
            gate.users -= 1
            if gate.users == 0:
                del self._gates[key]

    def _refresh_inventory(self, event: Event) -> None:
        """Bring the ledger in line with the event row just read from the store."""
        key = str(event.id)
        stored = Inventory(event.total_tickets, event.available_tickets)
        try:
            current = self.ledger.lookup(key)
        except NotFound:
            current = None

        if current == stored:
            return
        self.ledger.sync(key, event.total_tickets, event.available_tickets)
        logger.info(
            "inventory_loaded" if current is None else "inventory_resynced",
            event_id=key,
            total=event.total_tickets,
            available=event.available_tickets,
        )

    async def _with_retry(self, operation: str, func, *args):
        for attempt in range(1, self.retry_attempts + 1):
            try:
                return await func(*args)
            except StorageError:
                if attempt == self.retry_attempts:
                    raise
                record_store_retry(operation)
                logger.warning("store_retry", operation=operation, attempt=attempt)

    async def create_event(self, total_tickets: int) -> Event:
        """Create an event with its whole inventory available."""
        if isinstance(total_tickets, bool) or not isinstance(total_tickets, int):
            raise InvalidInput("total_tickets must be a non-negative integer")
        if total_tickets < 0:
            raise InvalidInput("total_tickets must be a non-negative integer")
        if total_tickets > self.max_tickets:
            raise InvalidInput(f"total_tickets must not exceed {self.max_tickets}")

        event_id = uuid.uuid4()
        # The ledger entry only appears once the event is durable
        event = await self.store.create_event(event_id, total_tickets, total_tickets)
        self.ledger.create_inventory(str(event_id), total_tickets)

        logger.info("event_created", event_id=str(event_id), tickets=total_tickets)
        return event

    async def get_event(self, event_id: uuid.UUID) -> EventStatus:
        event = await self.store.get_event(event_id)
        waiting = await self.waiting_list.size(str(event_id))
        return EventStatus(event=event, waiting=waiting)

    async def delete_event(self, event_id: uuid.UUID) -> None:
        """Soft-delete an event and drop its inventory and waiting list."""
        key = str(event_id)
        async with self._gate(event_id):
            await self.store.soft_delete_event(event_id)
            self.ledger.forget(key)
            await self.waiting_list.clear(key)
            forget_waitlist_size(key)

        logger.info("event_deleted", event_id=key)

    async def book_ticket(self, event_id: uuid.UUID, user_id: str) -> BookingResult:
        """
        Book one ticket, or join the waiting list when none is left.

        Sold out is not an error: the user is queued and the result says so.
        Repeated calls are independent attempts.
        """
        key = str(event_id)
        with booking_latency.labels(operation="book").time():
            async with self._gate(event_id):
                for _ in range(self.retry_attempts):
                    event = await self.store.get_event(event_id)
                    self._refresh_inventory(event)
                    if not self.ledger.try_reserve(key):
                        break

                    try:
                        booking, available = await self._commit_booking(event_id, user_id)
                    except Conflict:
                        # Sold out in the store by another process since the event was read
                        self.ledger.release(key)
                        logger.warning("booking_reservation_refused", event_id=key, user_id=user_id)
                        continue
                    except BaseException:
                        self.ledger.release(key)
                        record_booking("error")
                        logger.error("booking_rolled_back", event_id=key, user_id=user_id)
                        raise

                    event.available_tickets = available
                    self.ledger.sync(key, event.total_tickets, available)
                    record_booking(BOOKED)
                    logger.info(
                        "booking_created",
                        booking_id=str(booking.id),
                        event_id=key,
                        user_id=user_id,
                        available=available,
                    )
                    return BookingResult(BOOKED, event_id, user_id, booking=booking)

                position = await self.waiting_list.enqueue(key, user_id)

        record_booking(WAITLISTED)
        record_waitlist_size(key, position)
        logger.info("booking_waitlisted", event_id=key, user_id=user_id, position=position)
        return BookingResult(WAITLISTED, event_id, user_id, position=position)

    async def _commit_booking(self, event_id: uuid.UUID, user_id: str) -> tuple[Booking, int]:
        async with self.store.transaction() as tx:
            available = await tx.reserve_ticket(event_id)
            booking = await tx.create_booking(event_id, user_id, BookingStatus.CONFIRMED)
            return booking, available

    async def cancel_booking(self, booking_id: uuid.UUID) -> CancellationResult:
        """
        Cancel a booking and hand its slot to the next waiting user.

        Only when nobody is waiting does the ticket go back to the inventory.
        """
        with booking_latency.labels(operation="cancel").time():
            booking = await self.store.get_booking(booking_id)

            async with self._gate(booking.event_id):
                # A concurrent cancel of the same booking may have won the gate
                booking = await self.store.get_booking(booking_id)
                key = str(booking.event_id)

                try:
                    event = await self.store.get_event(booking.event_id)
                except NotFound:
                    await self.store.soft_delete_booking(booking.id)
                    booking.status = BookingStatus.CANCELED.value
                    logger.info("booking_cancelled_event_gone", booking_id=str(booking.id), event_id=key)
                    return CancellationResult(booking=booking)

                self._refresh_inventory(event)
                next_user = await self.waiting_list.dequeue_next(key)

                try:
                    promoted, available = await self._with_retry(
                        "cancel", self._commit_cancellation, booking, next_user
                    )
                except BaseException:
                    if next_user is not None:
                        await self.waiting_list.requeue_front(key, next_user)
                        logger.error(
                            "promotion_rolled_back",
                            booking_id=str(booking.id),
                            event_id=key,
                            user_id=next_user,
                        )
                    record_cancellation("error")
                    raise

                event.available_tickets = available
                self.ledger.sync(key, event.total_tickets, available)
                if next_user is not None:
                    record_waitlist_size(key, await self.waiting_list.size(key))

        booking.status = BookingStatus.CANCELED.value
        if promoted is not None:
            record_cancellation("reassigned")
            logger.info(
                "waitlist_promoted",
                booking_id=str(booking.id),
                promoted_booking_id=str(promoted.id),
                event_id=key,
                user_id=promoted.user_id,
            )
        else:
            record_cancellation("released")
            logger.info(
                "booking_cancelled",
                booking_id=str(booking.id),
                event_id=key,
                available=available,
            )
        return CancellationResult(booking=booking, promoted=promoted, released=next_user is None)

    async def _commit_cancellation(
        self, booking: Booking, next_user: Optional[str]
    ) -> tuple[Optional[Booking], int]:
        async with self.store.transaction() as tx:
            await tx.soft_delete_booking(booking.id)
            if next_user is None:
                return None, await tx.release_ticket(booking.event_id)

            promoted = await tx.create_booking(booking.event_id, next_user, BookingStatus.CONFIRMED)
            event = await tx.get_event(booking.event_id)
            return promoted, event.available_tickets

    async def list_bookings(
        self,
        event_id: Optional[uuid.UUID] = None,
        user_id: Optional[str] = None,
        include_canceled: bool = False,
    ) -> list[Booking]:
        """Bookings with their event attributes joined in, newest first."""
        return await self.store.list_bookings(
            join_event=True,
            event_id=event_id,
            user_id=user_id,
            include_canceled=include_canceled,
        )

    async def reconcile(self, event_id: uuid.UUID) -> ReconcileResult:
        """
        Rebuild an event's inventory from its confirmed bookings.

        Any ticket found free while users are waiting goes to them in
        queue order, the rest is made available again.
        """
        key = str(event_id)
        async with self._gate(event_id):
            event = await self.store.get_event(event_id)
            previous = event.available_tickets
            confirmed = await self.store.count_confirmed(event_id)

            if confirmed > event.total_tickets:
                logger.error(
                    "inventory_overbooked",
                    event_id=key,
                    confirmed=confirmed,
                    total=event.total_tickets,
                )
            available = max(event.total_tickets - confirmed, 0)

            waiting_users = []
            while available > 0:
                user_id = await self.waiting_list.dequeue_next(key)
                if user_id is None:
                    break
                waiting_users.append(user_id)
                available -= 1

            event.available_tickets = available
            try:
                promoted = await self._commit_reconciliation(event, previous, waiting_users)
            except BaseException:
                for user_id in reversed(waiting_users):
                    await self.waiting_list.requeue_front(key, user_id)
                raise

            self.ledger.sync(key, event.total_tickets, available)
            record_waitlist_size(key, await self.waiting_list.size(key))

        repaired = previous != available or bool(promoted)
        record_reconciliation(repaired)
        logger.info(
            "inventory_reconciled",
            event_id=key,
            previous=previous,
            available=available,
            promoted=len(promoted),
        )
        return ReconcileResult(event=event, previous_available=previous, promoted=promoted)

    async def _commit_reconciliation(
        self, event: Event, previous: int, waiting_users: list[str]
    ) -> list[Booking]:
        async with self.store.transaction() as tx:
            promoted = [
                await tx.create_booking(event.id, user_id, BookingStatus.CONFIRMED)
                for user_id in waiting_users
            ]
            # Conflict if a booking or cancellation elsewhere moved the counter meanwhile
            await tx.save_event(event, expected_available=previous)
            return promoted

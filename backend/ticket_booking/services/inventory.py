"""
Inventory ledger: the in-process view of how many tickets an event has left.

Counters are held in process memory, one lock per event. Every method is
synchronous and does no I/O, so a lock is held for a handful of integer
operations at most. Two callers racing for the last ticket of an event
serialize on that event's lock: one gets it, the other is denied.

The ledger is filled from the store with sync() (whenever the booking
orchestrator reads an event, and by reconciliation). The store's
conditional updates have the final word when several processes share
one database. Forgotten events leave nothing behind.
"""

from dataclasses import dataclass

from ticket_booking.core.exceptions import Conflict, InvalidInput, NotFound
from ticket_booking.services.keyed_locks import Slot, SlotRegistry


@dataclass(frozen=True)
class Inventory:
    total_tickets: int
    available_tickets: int


class _Counter(Slot):
    def __init__(self):
        super().__init__()
        self.total_tickets = 0
        self.available_tickets = 0

    def snapshot(self) -> Inventory:
        return Inventory(self.total_tickets, self.available_tickets)


class InventoryLedger:

    def __init__(self):
        self._counters: SlotRegistry[_Counter] = SlotRegistry(_Counter)

    def __len__(self) -> int:
        return len(self._counters)

    def create_inventory(self, event_id: str, total_tickets: int) -> Inventory:
        if total_tickets < 0:
            raise InvalidInput("total_tickets must be a non-negative integer")
        return self._load(event_id, total_tickets, total_tickets)

    def sync(self, event_id: str, total_tickets: int, available_tickets: int) -> Inventory:
        """Load counters from durable state, replacing whatever is tracked."""
        if not 0 <= available_tickets <= total_tickets:
            raise InvalidInput(
                f"Inconsistent inventory for event {event_id}: {available_tickets}/{total_tickets}"
            )
        return self._load(event_id, total_tickets, available_tickets)

    def _load(self, event_id: str, total_tickets: int, available_tickets: int) -> Inventory:
        with self._counters.hold(event_id, create=True) as counter:
            counter.total_tickets = total_tickets
            counter.available_tickets = available_tickets
            return counter.snapshot()

    def is_tracked(self, event_id: str) -> bool:
        return event_id in self._counters

    def try_reserve(self, event_id: str) -> bool:
        """Take one ticket if any is left. Returns False without changes otherwise."""
        with self._counters.hold(event_id) as counter:
            if counter is None:
                raise NotFound(f"No inventory for event {event_id}")
            if counter.available_tickets <= 0:
                return False
            counter.available_tickets -= 1
            return True

    def release(self, event_id: str) -> Inventory:
        """Give one reserved ticket back."""
        with self._counters.hold(event_id) as counter:
            if counter is None:
                raise NotFound(f"No inventory for event {event_id}")
            if counter.available_tickets >= counter.total_tickets:
                raise Conflict(f"Event {event_id} has no reserved ticket to release")
            counter.available_tickets += 1
            return counter.snapshot()

    def lookup(self, event_id: str) -> Inventory:
        with self._counters.hold(event_id) as counter:
            if counter is None:
                raise NotFound(f"No inventory for event {event_id}")
            return counter.snapshot()

    def forget(self, event_id: str):
        with self._counters.hold(event_id) as counter:
            if counter is not None:
                self._counters.discard(event_id, counter)

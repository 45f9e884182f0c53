"""
Tests for the inventory ledger: atomic reservation and release bounds.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from ticket_booking.core.exceptions import Conflict, InvalidInput, NotFound
from ticket_booking.services.inventory import Inventory, InventoryLedger


def test_create_inventory_makes_every_ticket_available(ledger: InventoryLedger):
    assert ledger.create_inventory("e1", 5) == Inventory(total_tickets=5, available_tickets=5)
    assert ledger.lookup("e1") == Inventory(5, 5)


def test_create_inventory_rejects_negative_total(ledger: InventoryLedger):
    with pytest.raises(InvalidInput):
        ledger.create_inventory("e1", -1)
    assert not ledger.is_tracked("e1")


def test_try_reserve_decrements_until_empty(ledger: InventoryLedger):
    ledger.create_inventory("e1", 2)

    assert ledger.try_reserve("e1") is True
    assert ledger.try_reserve("e1") is True
    assert ledger.try_reserve("e1") is False
    assert ledger.lookup("e1").available_tickets == 0


def test_denied_reservation_does_not_mutate(ledger: InventoryLedger):
    ledger.create_inventory("e1", 0)

    assert ledger.try_reserve("e1") is False
    assert ledger.lookup("e1") == Inventory(0, 0)


def test_release_gives_ticket_back(ledger: InventoryLedger):
    ledger.create_inventory("e1", 1)
    ledger.try_reserve("e1")

    assert ledger.release("e1") == Inventory(1, 1)


def test_release_never_exceeds_total(ledger: InventoryLedger):
    ledger.create_inventory("e1", 3)

    with pytest.raises(Conflict):
        ledger.release("e1")
    assert ledger.lookup("e1").available_tickets == 3


def test_lookup_untracked_event(ledger: InventoryLedger):
    with pytest.raises(NotFound):
        ledger.lookup("missing")
    with pytest.raises(NotFound):
        ledger.try_reserve("missing")


def test_sync_replaces_counters(ledger: InventoryLedger):
    ledger.create_inventory("e1", 10)
    ledger.sync("e1", 10, 4)

    assert ledger.lookup("e1") == Inventory(10, 4)


def test_sync_rejects_out_of_bounds_counters(ledger: InventoryLedger):
    with pytest.raises(InvalidInput):
        ledger.sync("e1", 2, 3)
    with pytest.raises(InvalidInput):
        ledger.sync("e1", 2, -1)


def test_forget_drops_event(ledger: InventoryLedger):
    ledger.create_inventory("e1", 1)
    ledger.forget("e1")

    assert not ledger.is_tracked("e1")
    assert len(ledger) == 0


def test_untracked_lookups_leave_nothing_behind(ledger: InventoryLedger):
    for i in range(20):
        assert ledger.is_tracked(f"e{i}") is False
        with pytest.raises(NotFound):
            ledger.try_reserve(f"e{i}")

    assert len(ledger) == 0


def test_sync_blocked_on_a_forgotten_event_starts_fresh(ledger: InventoryLedger):
    """A writer waiting on a counter that gets forgotten re-registers instead of writing into it."""
    ledger.create_inventory("e1", 5)
    counters = ledger._counters

    with counters.hold("e1") as counter:
        worker = threading.Thread(target=ledger.sync, args=("e1", 3, 2))
        worker.start()
        worker.join(timeout=0.05)
        counters.discard("e1", counter)
    worker.join()

    assert ledger.lookup("e1") == Inventory(3, 2)
    assert len(ledger) == 1


def test_concurrent_reservations_from_threads_never_oversell(ledger: InventoryLedger):
    """200 threads race for 7 tickets: exactly 7 win."""
    ledger.create_inventory("e1", 7)

    with ThreadPoolExecutor(max_workers=32) as executor:
        results = list(executor.map(lambda _: ledger.try_reserve("e1"), range(200)))

    assert results.count(True) == 7
    assert ledger.lookup("e1").available_tickets == 0


def test_events_are_counted_independently(ledger: InventoryLedger):
    ledger.create_inventory("e1", 1)
    ledger.create_inventory("e2", 1)

    assert ledger.try_reserve("e1") is True
    assert ledger.try_reserve("e2") is True
    assert ledger.try_reserve("e1") is False

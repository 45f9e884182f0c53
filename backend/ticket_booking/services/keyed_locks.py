"""
Per-key state guarded by per-key locks, with entries that can be dropped.

The inventory ledger and the in-memory waiting list keep one small piece
of state per event. Each piece lives in a Slot together with its own
lock, and SlotRegistry hands slots out already locked. A discarded slot
is marked dead under its lock, so a caller that was blocked on it retries
against the registry instead of writing into a slot nobody can see.

discard() takes the registry lock while holding a slot lock. The only
place the registry lock is held while taking a slot lock is for a slot
that is not yet published, so the two never deadlock.
"""

import threading
from contextlib import contextmanager
from typing import Callable, Generic, Iterator, Optional, TypeVar


class Slot:
    def __init__(self):
        self.lock = threading.Lock()
        self.live = True


S = TypeVar("S", bound=Slot)


class SlotRegistry(Generic[S]):

    def __init__(self, factory: Callable[[], S]):
        self._factory = factory
        self._slots: dict[str, S] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._slots

    @contextmanager
    def hold(self, key: str, create: bool = False) -> Iterator[Optional[S]]:
        """
        Lock and yield the slot for key.

        Yields None when there is no slot and create is False. With create
        set, a missing slot is created already locked.
        """
        while True:
            fresh = False
            with self._lock:
                slot = self._slots.get(key)
                if slot is None and create:
                    slot = self._factory()
                    slot.lock.acquire()
                    self._slots[key] = slot
                    fresh = True

            if slot is None:
                yield None
                return

            if not fresh:
                slot.lock.acquire()
            try:
                if slot.live:
                    yield slot
                    return
            finally:
                slot.lock.release()
            # discarded while we waited for its lock

    def discard(self, key: str, slot: S) -> None:
        """Drop a slot. The caller must hold slot.lock."""
        slot.live = False
        with self._lock:
            if self._slots.get(key) is slot:
                del self._slots[key]

"""
In-process waiting list.

Entries live only in this process: a restart drops everybody in line.
Set WAITLIST_BACKEND=redis for a queue that survives restarts.
"""

from collections import deque
from typing import Optional

from ticket_booking.services.interfaces.waiting_list import WaitingList
from ticket_booking.services.keyed_locks import Slot, SlotRegistry


class _Queue(Slot):
    def __init__(self):
        super().__init__()
        self.users: deque[str] = deque()


class InMemoryWaitingList(WaitingList):
    """
    One deque per event, each guarded by its own lock.

    Critical sections are a single push or pop and never await, so the
    locks are held only briefly. They also make the registry safe to share
    with threadpool code. A queue that runs empty is dropped together with
    its lock.
    """

    def __init__(self):
        self._queues: SlotRegistry[_Queue] = SlotRegistry(_Queue)

    def __len__(self) -> int:
        return len(self._queues)

    async def enqueue(self, event_id: str, user_id: str) -> int:
        with self._queues.hold(event_id, create=True) as queue:
            queue.users.append(user_id)
            return len(queue.users)

    async def dequeue_next(self, event_id: str) -> Optional[str]:
        with self._queues.hold(event_id) as queue:
            if queue is None or not queue.users:
                return None
            user_id = queue.users.popleft()
            if not queue.users:
                self._queues.discard(event_id, queue)
            return user_id

    async def requeue_front(self, event_id: str, user_id: str):
        with self._queues.hold(event_id, create=True) as queue:
            queue.users.appendleft(user_id)

    async def size(self, event_id: str) -> int:
        with self._queues.hold(event_id) as queue:
            return len(queue.users) if queue is not None else 0

    async def clear(self, event_id: str):
        with self._queues.hold(event_id) as queue:
            if queue is not None:
                self._queues.discard(event_id, queue)

"""
Waiting list interface.
Allows swapping between an in-process queue and a durable Redis queue.
"""

from abc import ABC, abstractmethod
from typing import Optional


class WaitingList(ABC):
    """
    Per-event FIFO queue of users waiting for a ticket.

    Implementations:
    - InMemoryWaitingList: process-local, lost on restart
    - RedisWaitingList: one Redis list per event, survives restarts

    Dequeue order equals enqueue order within one event. Queues of
    different events are independent.
    """

    @abstractmethod
    async def enqueue(self, event_id: str, user_id: str) -> int:
        """
        Append a user to the tail of the event's queue.

        Returns:
            The queue length after the append (the user's 1-based position)
        """
        pass

    @abstractmethod
    async def dequeue_next(self, event_id: str) -> Optional[str]:
        """
        Remove and return the head of the event's queue.

        Returns:
            The waiting user id, or None when nobody is waiting
        """
        pass

    @abstractmethod
    async def requeue_front(self, event_id: str, user_id: str):
        """Put a previously dequeued user back at the head of the queue."""
        pass

    @abstractmethod
    async def size(self, event_id: str) -> int:
        pass

    @abstractmethod
    async def clear(self, event_id: str):
        pass

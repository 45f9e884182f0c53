"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .store import EventBookingStore
from .waiting_list import WaitingList

__all__ = ['EventBookingStore', 'WaitingList']

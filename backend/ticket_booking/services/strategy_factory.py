"""
Backend factory.
Builds the booking orchestrator with the store and waiting list selected
in the settings.
"""

from ticket_booking.core.config import Settings, get_settings
from ticket_booking.core.logging import get_logger
from ticket_booking.services.booking_service import BookingOrchestrator
from ticket_booking.services.interfaces.store import EventBookingStore
from ticket_booking.services.interfaces.waiting_list import WaitingList
from ticket_booking.services.inventory import InventoryLedger
from ticket_booking.services.memory_store import InMemoryStore
from ticket_booking.services.waiting_list import InMemoryWaitingList

logger = get_logger(__name__)


def get_store(settings: Settings) -> EventBookingStore:
    """
    STORE_BACKEND:
    - sql: SQLAlchemy over DATABASE_URL (default)
    - memory: process-local, for local runs without a database
    """
    if settings.STORE_BACKEND == "memory":
        return InMemoryStore()
    if settings.STORE_BACKEND != "sql":
        raise ValueError(f"Unknown STORE_BACKEND {settings.STORE_BACKEND!r}")

    from ticket_booking.db.session import get_session_factory
    from ticket_booking.services.sql_store import SqlAlchemyStore

    return SqlAlchemyStore(get_session_factory())


def get_waiting_list(settings: Settings) -> WaitingList:
    """
    WAITLIST_BACKEND:
    - memory: in-process queue, dropped on restart (default)
    - redis: durable queue shared by every API process
    """
    if settings.WAITLIST_BACKEND == "redis":
        from ticket_booking.infrastructure.redis_client import get_redis
        from ticket_booking.services.redis_waitlist import RedisWaitingList

        return RedisWaitingList(get_redis(), prefix=settings.REDIS_WAITLIST_PREFIX)
    if settings.WAITLIST_BACKEND != "memory":
        raise ValueError(f"Unknown WAITLIST_BACKEND {settings.WAITLIST_BACKEND!r}")
    return InMemoryWaitingList()


def build_orchestrator(settings: Settings = None) -> BookingOrchestrator:
    settings = settings or get_settings()
    orchestrator = BookingOrchestrator(
        store=get_store(settings),
        waiting_list=get_waiting_list(settings),
        ledger=InventoryLedger(),
        retry_attempts=settings.PERSIST_RETRY_ATTEMPTS,
        max_tickets=settings.MAX_TICKETS_PER_EVENT,
    )
    logger.info(
        "orchestrator_ready",
        store=settings.STORE_BACKEND,
        waiting_list=settings.WAITLIST_BACKEND,
    )
    return orchestrator

"""
Tests for the waiting list backends: FIFO order, independence of events,
and the head-of-line requeue used by cancellation recovery.
"""

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError

from ticket_booking.core.exceptions import StorageError
from ticket_booking.services.redis_waitlist import RedisWaitingList
from ticket_booking.services.waiting_list import InMemoryWaitingList


@pytest_asyncio.fixture(params=["memory", "redis"])
async def queue(request, fake_redis):
    if request.param == "memory":
        return InMemoryWaitingList()
    return RedisWaitingList(fake_redis, prefix="test-waitlist")


@pytest.mark.asyncio
async def test_dequeue_order_matches_enqueue_order(queue):
    for user_id in ("u1", "u2", "u3"):
        await queue.enqueue("event-a", user_id)

    assert await queue.dequeue_next("event-a") == "u1"
    assert await queue.dequeue_next("event-a") == "u2"
    assert await queue.dequeue_next("event-a") == "u3"


@pytest.mark.asyncio
async def test_enqueue_returns_position_in_line(queue):
    assert await queue.enqueue("event-a", "u1") == 1
    assert await queue.enqueue("event-a", "u2") == 2
    assert await queue.enqueue("event-b", "u3") == 1


@pytest.mark.asyncio
async def test_dequeue_unknown_event_returns_none(queue):
    """An empty or never-created queue is not an error."""
    assert await queue.dequeue_next("nobody-waits-here") is None
    assert await queue.size("nobody-waits-here") == 0


@pytest.mark.asyncio
async def test_dequeue_drained_queue_returns_none(queue):
    await queue.enqueue("event-a", "u1")
    await queue.dequeue_next("event-a")

    assert await queue.dequeue_next("event-a") is None


@pytest.mark.asyncio
async def test_size_tracks_waiting_users(queue):
    await queue.enqueue("event-a", "u1")
    await queue.enqueue("event-a", "u2")
    assert await queue.size("event-a") == 2

    await queue.dequeue_next("event-a")
    assert await queue.size("event-a") == 1


@pytest.mark.asyncio
async def test_events_have_independent_queues(queue):
    await queue.enqueue("event-a", "a1")
    await queue.enqueue("event-b", "b1")
    await queue.enqueue("event-a", "a2")

    assert await queue.dequeue_next("event-b") == "b1"
    assert await queue.dequeue_next("event-b") is None
    assert await queue.size("event-a") == 2


@pytest.mark.asyncio
async def test_requeue_front_restores_head_of_line(queue):
    await queue.enqueue("event-a", "u1")
    await queue.enqueue("event-a", "u2")

    head = await queue.dequeue_next("event-a")
    await queue.requeue_front("event-a", head)

    assert await queue.dequeue_next("event-a") == "u1"
    assert await queue.dequeue_next("event-a") == "u2"


@pytest.mark.asyncio
async def test_same_user_can_wait_twice(queue):
    """Requests are counted, not deduplicated."""
    await queue.enqueue("event-a", "u1")
    await queue.enqueue("event-a", "u1")

    assert await queue.size("event-a") == 2


@pytest.mark.asyncio
async def test_clear_drops_queue(queue):
    await queue.enqueue("event-a", "u1")
    await queue.clear("event-a")

    assert await queue.size("event-a") == 0
    assert await queue.dequeue_next("event-a") is None


@pytest.mark.asyncio
async def test_redis_queue_survives_new_client_instance(fake_redis):
    """A second RedisWaitingList on the same server sees the same line (restart)."""
    before_restart = RedisWaitingList(fake_redis, prefix="test-waitlist")
    await before_restart.enqueue("event-a", "u1")
    await before_restart.enqueue("event-a", "u2")

    after_restart = RedisWaitingList(fake_redis, prefix="test-waitlist")
    assert await after_restart.dequeue_next("event-a") == "u1"
    assert await after_restart.size("event-a") == 1


@pytest.mark.asyncio
async def test_redis_errors_surface_as_storage_error(fake_redis, monkeypatch):
    queue = RedisWaitingList(fake_redis, prefix="test-waitlist")

    async def broken(*args, **kwargs):
        raise RedisConnectionError("redis is down")

    monkeypatch.setattr(fake_redis, "rpush", broken)

    with pytest.raises(StorageError):
        await queue.enqueue("event-a", "u1")


@pytest.mark.asyncio
async def test_memory_queues_are_dropped_once_drained():
    queue = InMemoryWaitingList()
    for i in range(30):
        await queue.enqueue(f"event-{i}", "u1")
    await queue.enqueue("event-0", "u2")

    for i in range(30):
        await queue.dequeue_next(f"event-{i}")
    assert len(queue) == 1

    await queue.clear("event-0")
    assert len(queue) == 0
    assert await queue.size("event-0") == 0
    assert await queue.dequeue_next("event-0") is None


@pytest.mark.asyncio
async def test_memory_queue_refills_after_being_drained():
    queue = InMemoryWaitingList()
    await queue.enqueue("event-a", "u1")
    await queue.dequeue_next("event-a")

    assert await queue.enqueue("event-a", "u2") == 1
    await queue.requeue_front("event-a", "u3")
    assert await queue.dequeue_next("event-a") == "u3"
    assert await queue.dequeue_next("event-a") == "u2"

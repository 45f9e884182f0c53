"""
Redis-backed waiting list.

One Redis list per event, key "{prefix}:{event_id}". RPUSH, LPOP and
LPUSH are atomic on the server, so FIFO order holds across any number of
API processes and survives restarts.

Unlike a cache, the waiting list must not fail open: a Redis error
surfaces as StorageError instead of silently dropping a user from line.
"""

from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from ticket_booking.core.exceptions import StorageError
from ticket_booking.core.logging import get_logger
from ticket_booking.services.interfaces.waiting_list import WaitingList

logger = get_logger(__name__)


class RedisWaitingList(WaitingList):
    """
    Durable waiting list.

    Use when:
    - waiting users must survive an API restart or deploy
    - the queue has to be inspected from outside the service
    """

    def __init__(self, client: redis.Redis, prefix: str = "waitlist"):
        self.redis = client
        self.prefix = prefix

    def _key(self, event_id: str) -> str:
        return f"{self.prefix}:{event_id}"

    async def enqueue(self, event_id: str, user_id: str) -> int:
        try:
            return int(await self.redis.rpush(self._key(event_id), user_id))
        except RedisError as e:
            logger.error("waitlist_enqueue_failed", event_id=event_id, error=str(e))
            raise StorageError() from e

    async def dequeue_next(self, event_id: str) -> Optional[str]:
        try:
            return await self.redis.lpop(self._key(event_id))
        except RedisError as e:
            logger.error("waitlist_dequeue_failed", event_id=event_id, error=str(e))
            raise StorageError() from e

    async def requeue_front(self, event_id: str, user_id: str):
        try:
            await self.redis.lpush(self._key(event_id), user_id)
        except RedisError as e:
            # The user is out of line now; leave a trace an operator can act on
            logger.critical("waitlist_requeue_failed", event_id=event_id, user_id=user_id, error=str(e))
            raise StorageError() from e

    async def size(self, event_id: str) -> int:
        try:
            return int(await self.redis.llen(self._key(event_id)))
        except RedisError as e:
            logger.error("waitlist_size_failed", event_id=event_id, error=str(e))
            raise StorageError() from e

    async def clear(self, event_id: str):
        try:
            await self.redis.delete(self._key(event_id))
        except RedisError as e:
            logger.error("waitlist_clear_failed", event_id=event_id, error=str(e))
            raise StorageError() from e

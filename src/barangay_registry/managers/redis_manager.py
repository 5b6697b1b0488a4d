"""
# Redis Manager

This module owns the connection to **Redis**, the only persistence layer of the
registry. Records, membership sets, sequence counters and staff accounts all live
in Redis under the key layout below.

## Key Layout

| Key                           | Type    | Contents                                   |
|-------------------------------|---------|--------------------------------------------|
| `resident:<id>`               | hash    | Resident fields                            |
| `familyHead:<id>`             | hash    | Family head fields                         |
| `familyMembers:<familyHeadId>`| set     | Resident ids belonging to the family head  |
| `residents:count`             | string  | Lifetime resident creation counter         |
| `familyHeads:count`           | string  | Lifetime family head creation counter      |
| `user:<username>`             | hash    | Staff account (bcrypt password hash)       |

## Lifecycle

1. **Connection**: `connect()` in the FastAPI lifespan, with exponential backoff retries.
2. **Operations**: `await redis_manager.get_redis()` returns the shared `redis.asyncio.Redis`.
3. **Health**: `health_check()` pings the server for the readiness probe.
4. **Shutdown**: `disconnect()` closes the connection pool.

Attributes:
    redis_manager (RedisManager): Global singleton used throughout the application.
"""

import asyncio
import time
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from barangay_registry.config import settings
from barangay_registry.managers.logging_manager import get_logger

logger = get_logger(prefix="[REDIS]")
perf_logger = get_logger(prefix="[REDIS_PERFORMANCE]")

# --- Key layout ---
RESIDENT_KEY_PREFIX = "resident"
FAMILY_HEAD_KEY_PREFIX = "familyHead"
FAMILY_MEMBERS_KEY_PREFIX = "familyMembers"
RESIDENTS_COUNTER_KEY = "residents:count"
FAMILY_HEADS_COUNTER_KEY = "familyHeads:count"
USER_KEY_PREFIX = "user"


def resident_key(resident_id: str) -> str:
    return f"{RESIDENT_KEY_PREFIX}:{resident_id}"


def family_head_key(family_head_id: str) -> str:
    return f"{FAMILY_HEAD_KEY_PREFIX}:{family_head_id}"


def family_members_key(family_head_id: str) -> str:
    return f"{FAMILY_MEMBERS_KEY_PREFIX}:{family_head_id}"


def user_key(username: str) -> str:
    return f"{USER_KEY_PREFIX}:{username}"


class RedisManager:
    """
    Manages the asyncio Redis client.

    Attributes:
        client (`Optional[redis.asyncio.Redis]`): The shared client. `None` until `connect()`
            succeeds.
    """

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self.client: Optional[aioredis.Redis] = None
        self._connection_retries = settings.REDIS_CONNECT_RETRIES

    async def connect(self) -> aioredis.Redis:
        """
        Establish the Redis connection with exponential backoff retry logic.

        Raises:
            RedisError: If Redis is unreachable after all retry attempts.
        """
        if self.client is not None:
            return self.client

        start_time = time.time()
        for attempt in range(self._connection_retries):
            attempt_start = time.time()
            try:
                logger.info("Connection attempt %d/%d to Redis", attempt + 1, self._connection_retries)
                client = aioredis.from_url(self.url, decode_responses=True)
                await client.ping()
                self.client = client
                perf_logger.info("Redis connection established in %.3fs", time.time() - start_time)
                return client
            except (RedisError, OSError) as e:
                perf_logger.warning(
                    "Connection attempt %d failed after %.3fs", attempt + 1, time.time() - attempt_start
                )
                logger.warning("Redis connection attempt %d failed: %s", attempt + 1, e)
                if attempt == self._connection_retries - 1:
                    logger.error("All Redis connection attempts failed after %.3fs", time.time() - start_time)
                    raise
                backoff_time = 2**attempt
                logger.info("Waiting %.1fs before retry (exponential backoff)", backoff_time)
                await asyncio.sleep(backoff_time)

        raise RedisError("Redis connection could not be established")

    async def get_redis(self) -> aioredis.Redis:
        """Return the shared client, connecting on first use."""
        if self.client is None:
            return await self.connect()
        return self.client

    async def health_check(self) -> bool:
        """Ping Redis. Returns `False` instead of raising when the server is unreachable."""
        if self.client is None:
            logger.warning("Health check failed: No Redis client available")
            return False
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError) as e:
            logger.error("Redis health check failed: %s", e)
            return False

    async def disconnect(self) -> None:
        """Close the client and its connection pool."""
        if self.client is None:
            logger.warning("Disconnect called but no active Redis connection found")
            return
        try:
            await self.client.aclose()
            logger.info("Redis connection closed")
        finally:
            self.client = None


redis_manager = RedisManager()

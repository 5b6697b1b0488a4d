"""
Identifier generation for residents and family heads.

Identifiers look like `R-2024001` / `F-2024001`: a type prefix, the current year, and
the value of a per-type Redis counter padded to `ID_SEQUENCE_WIDTH` digits. Counters
are bumped with `INCR`, which Redis executes atomically, so concurrent callers never
observe the same value. Counters are never decremented, so deleted ids are never
handed out again. Padding is cosmetic: the 1000th id simply has a longer suffix.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from barangay_registry.config import settings
from barangay_registry.exceptions import StoreError
from barangay_registry.managers.logging_manager import get_logger
from barangay_registry.managers.redis_manager import FAMILY_HEADS_COUNTER_KEY, RESIDENTS_COUNTER_KEY

logger = get_logger(prefix="[IdGenerator]")

RESIDENT_PREFIX = "R"
FAMILY_HEAD_PREFIX = "F"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_id(prefix: str, year: int, sequence: int, width: int = 3) -> str:
    """Render `<prefix>-<year><sequence>` with the sequence zero-padded to `width`."""
    return f"{prefix}-{year}{str(sequence).zfill(width)}"


class IdGenerator:
    """Mints identifiers from atomic Redis counters."""

    def __init__(
        self,
        redis: aioredis.Redis,
        clock: Callable[[], datetime] = utc_now,
        width: Optional[int] = None,
    ):
        self.redis = redis
        self.clock = clock
        self.width = width or settings.ID_SEQUENCE_WIDTH

    async def next(self, prefix: str, counter_key: str) -> str:
        """
        Atomically increment `counter_key` and return the new identifier.

        Raises:
            StoreError: If the counter could not be incremented.
        """
        try:
            sequence = await self.redis.incr(counter_key)
        except RedisError as e:
            logger.error("Failed to increment counter %s: %s", counter_key, e)
            raise StoreError(f"Could not allocate identifier from {counter_key}") from e

        new_id = format_id(prefix, self.clock().year, int(sequence), self.width)
        logger.debug("Minted %s from %s=%s", new_id, counter_key, sequence)
        return new_id

    async def next_resident_id(self) -> str:
        return await self.next(RESIDENT_PREFIX, RESIDENTS_COUNTER_KEY)

    async def next_family_head_id(self) -> str:
        return await self.next(FAMILY_HEAD_PREFIX, FAMILY_HEADS_COUNTER_KEY)

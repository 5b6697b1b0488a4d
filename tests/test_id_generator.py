from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from barangay_registry.exceptions import StoreError
from barangay_registry.managers.redis_manager import FAMILY_HEADS_COUNTER_KEY, RESIDENTS_COUNTER_KEY
from barangay_registry.services.id_generator import IdGenerator, format_id

from conftest import fixed_clock


def test_format_id_pads_sequence():
    assert format_id("R", 2024, 1) == "R-2024001"
    assert format_id("F", 2024, 42) == "F-2024042"


def test_format_id_widens_past_padding():
    assert format_id("R", 2024, 1000) == "R-20241000"
    assert format_id("R", 2024, 7, width=5) == "R-202400007"


@pytest.mark.asyncio
async def test_ids_are_unique_and_increasing(redis_client):
    generator = IdGenerator(redis_client, clock=fixed_clock)

    ids = [await generator.next_resident_id() for _ in range(25)]

    assert len(set(ids)) == 25
    suffixes = [int(record_id[len("R-2024"):]) for record_id in ids]
    assert suffixes == sorted(suffixes)
    assert suffixes[0] == 1
    assert await redis_client.get(RESIDENTS_COUNTER_KEY) == "25"


@pytest.mark.asyncio
async def test_counters_are_independent_per_type(redis_client):
    generator = IdGenerator(redis_client, clock=fixed_clock)

    assert await generator.next_resident_id() == "R-2024001"
    assert await generator.next_family_head_id() == "F-2024001"
    assert await generator.next_resident_id() == "R-2024002"
    assert await redis_client.get(FAMILY_HEADS_COUNTER_KEY) == "1"


@pytest.mark.asyncio
async def test_year_comes_from_clock(redis_client):
    generator = IdGenerator(redis_client, clock=lambda: datetime(2031, 1, 1, tzinfo=timezone.utc))
    assert await generator.next_family_head_id() == "F-2031001"


@pytest.mark.asyncio
async def test_store_failure_raises_store_error():
    redis = MagicMock()
    redis.incr = AsyncMock(side_effect=RedisConnectionError("connection refused"))
    generator = IdGenerator(redis, clock=fixed_clock)

    with pytest.raises(StoreError):
        await generator.next_resident_id()

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from barangay_registry.managers.redis_manager import (
    RedisManager,
    family_head_key,
    family_members_key,
    resident_key,
    user_key,
)


def test_key_layout():
    assert resident_key("R-2024001") == "resident:R-2024001"
    assert family_head_key("F-2024001") == "familyHead:F-2024001"
    assert family_members_key("F-2024001") == "familyMembers:F-2024001"
    assert user_key("admin") == "user:admin"


@pytest.mark.asyncio
async def test_connect_retries_with_backoff():
    client = MagicMock()
    client.ping = AsyncMock(side_effect=[RedisConnectionError("refused"), True])
    manager = RedisManager(url="redis://localhost:6379/0")

    with patch("barangay_registry.managers.redis_manager.aioredis.from_url", return_value=client), patch(
        "barangay_registry.managers.redis_manager.asyncio.sleep", new=AsyncMock()
    ) as sleep:
        assert await manager.connect() is client

    sleep.assert_awaited_once_with(1)
    assert await manager.get_redis() is client


@pytest.mark.asyncio
async def test_connect_gives_up_after_retries():
    client = MagicMock()
    client.ping = AsyncMock(side_effect=RedisConnectionError("refused"))
    manager = RedisManager(url="redis://localhost:6379/0")

    with patch("barangay_registry.managers.redis_manager.aioredis.from_url", return_value=client), patch(
        "barangay_registry.managers.redis_manager.asyncio.sleep", new=AsyncMock()
    ):
        with pytest.raises(RedisConnectionError):
            await manager.connect()

    assert manager.client is None
    assert client.ping.await_count == manager._connection_retries


@pytest.mark.asyncio
async def test_health_check(redis_client):
    manager = RedisManager(url="redis://localhost:6379/0")
    assert await manager.health_check() is False

    manager.client = redis_client
    assert await manager.health_check() is True


@pytest.mark.asyncio
async def test_disconnect_clears_client():
    client = MagicMock()
    client.aclose = AsyncMock()
    manager = RedisManager(url="redis://localhost:6379/0")
    manager.client = client

    await manager.disconnect()

    client.aclose.assert_awaited_once()
    assert manager.client is None

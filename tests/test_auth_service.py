from datetime import timedelta

from pydantic import ValidationError
import pytest

from barangay_registry.exceptions import AuthenticationError, RecordNotFoundError, RecordValidationError
from barangay_registry.managers.redis_manager import FAMILY_HEADS_COUNTER_KEY, RESIDENTS_COUNTER_KEY, user_key
from barangay_registry.models.auth_models import ChangePasswordRequest, UserPublic
from barangay_registry.services.auth_service import (
    AuthService,
    create_access_token,
    decode_access_token,
    hash_password,
    seed_initial_data,
    verify_password,
)


def test_password_hash_round_trip():
    hashed = hash_password("s3cret!")
    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret!", "not-a-bcrypt-hash")


def test_token_carries_user_claims():
    user = UserPublic(username="admin", name="Juan Dela Cruz", role="admin")
    assert decode_access_token(create_access_token(user)) == user


def test_expired_token_is_rejected():
    token = create_access_token(UserPublic(username="admin"), expires_delta=timedelta(minutes=-1))
    with pytest.raises(AuthenticationError):
        decode_access_token(token)


def test_garbage_token_is_rejected():
    with pytest.raises(AuthenticationError):
        decode_access_token("not.a.token")


@pytest.mark.asyncio
async def test_seed_creates_admin_and_counters(redis_client):
    await seed_initial_data(redis_client)

    account = await redis_client.hgetall(user_key("admin"))
    assert account["role"] == "admin"
    assert account["name"] == "Juan Dela Cruz"
    assert verify_password("admin123", account["password"])
    assert await redis_client.get(RESIDENTS_COUNTER_KEY) == "0"
    assert await redis_client.get(FAMILY_HEADS_COUNTER_KEY) == "0"


@pytest.mark.asyncio
async def test_seed_keeps_existing_counters_and_password(redis_client):
    await seed_initial_data(redis_client)
    await redis_client.set(RESIDENTS_COUNTER_KEY, 7)
    service = AuthService(redis_client)
    await service.change_password("admin", "admin123", "new-password")

    await seed_initial_data(redis_client)

    assert await redis_client.get(RESIDENTS_COUNTER_KEY) == "7"
    assert (await service.login("admin", "new-password")).user.username == "admin"


@pytest.mark.asyncio
async def test_login_returns_token_and_user(redis_client):
    await seed_initial_data(redis_client)

    response = await AuthService(redis_client).login("admin", "admin123")

    assert response.user == UserPublic(username="admin", name="Juan Dela Cruz", role="admin")
    assert decode_access_token(response.token).username == "admin"


@pytest.mark.asyncio
@pytest.mark.parametrize("username,password", [("admin", "wrong"), ("nobody", "admin123")])
async def test_login_rejects_bad_credentials(redis_client, username, password):
    await seed_initial_data(redis_client)

    with pytest.raises(AuthenticationError) as exc_info:
        await AuthService(redis_client).login(username, password)
    assert exc_info.value.message == "Invalid username or password"


@pytest.mark.asyncio
async def test_change_password_requires_current_password(redis_client):
    await seed_initial_data(redis_client)
    service = AuthService(redis_client)

    with pytest.raises(AuthenticationError):
        await service.change_password("admin", "wrong", "another-password")

    await service.login("admin", "admin123")


@pytest.mark.asyncio
async def test_profile_of_unknown_user(redis_client):
    with pytest.raises(RecordNotFoundError):
        await AuthService(redis_client).get_profile("ghost")


@pytest.mark.asyncio
async def test_upsert_admin_reset_restores_default_password(redis_client):
    service = AuthService(redis_client)
    assert await service.upsert_admin() is True
    await service.change_password("admin", "admin123", "forgotten-password")

    assert await service.upsert_admin(reset_password=True) is False

    await service.login("admin", "admin123")


@pytest.mark.asyncio
async def test_change_password_rejects_passwords_bcrypt_cannot_hash(redis_client):
    await seed_initial_data(redis_client)
    service = AuthService(redis_client)

    with pytest.raises(RecordValidationError) as exc_info:
        await service.change_password("admin", "admin123", "x" * 80)

    assert exc_info.value.status_code == 400
    assert exc_info.value.errors[0]["field"] == "newPassword"
    await service.login("admin", "admin123")


def test_new_password_limit_counts_bytes():
    assert ChangePasswordRequest(currentPassword="admin123", newPassword="x" * 72)
    with pytest.raises(ValidationError):
        ChangePasswordRequest(currentPassword="admin123", newPassword="x" * 73)
    with pytest.raises(ValidationError):
        ChangePasswordRequest(currentPassword="admin123", newPassword="ñ" * 40)

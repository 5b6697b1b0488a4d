"""
# Staff Authentication Service

Staff accounts are Redis hashes at `user:<username>` holding `username`, `name`,
`role` and a bcrypt `password` hash. The registry has one role, `admin`; the admin
account is seeded at startup from the `ADMIN_*` settings when it does not exist.

Access tokens are HS256 JWTs signed with `SECRET_KEY` and carrying
`{username, name, role, exp}`.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import redis.asyncio as aioredis
from jose import JWTError, jwt
from redis.exceptions import RedisError

from barangay_registry.config import settings
from barangay_registry.exceptions import AuthenticationError, RecordNotFoundError, RecordValidationError, StoreError
from barangay_registry.managers.logging_manager import get_logger
from barangay_registry.managers.redis_manager import FAMILY_HEADS_COUNTER_KEY, RESIDENTS_COUNTER_KEY, user_key
from barangay_registry.models.auth_models import MAX_PASSWORD_BYTES, LoginResponse, UserPublic

logger = get_logger(prefix="[AuthService]")

ADMIN_ROLE = "admin"
INVALID_CREDENTIALS = "Invalid username or password"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash
        return False


def _secret_key() -> str:
    return settings.SECRET_KEY.get_secret_value()


def create_access_token(user: UserPublic, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"username": user.username, "name": user.name, "role": user.role, "exp": expire}
    return jwt.encode(claims, _secret_key(), algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> UserPublic:
    """
    Validate a bearer token and return the principal it names.

    Raises:
        AuthenticationError: If the token is malformed, expired, or lacks a username.
    """
    try:
        payload = jwt.decode(token, _secret_key(), algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise AuthenticationError("Invalid or expired token") from e

    username = payload.get("username")
    if not username:
        raise AuthenticationError("Invalid or expired token")
    return UserPublic(username=username, name=payload.get("name") or "", role=payload.get("role") or "")


def _public(account: Dict[str, Any], username: str) -> UserPublic:
    return UserPublic(
        username=account.get("username", username), name=account.get("name", ""), role=account.get("role", "")
    )


class AuthService:
    """Login, profile lookup and password changes for staff accounts."""

    def __init__(self, redis: aioredis.Redis):
        self.redis = redis

    async def _get_account(self, username: str) -> Dict[str, Any]:
        try:
            return await self.redis.hgetall(user_key(username))
        except RedisError as e:
            logger.error("Failed to load account %s: %s", username, e)
            raise StoreError("Could not read user account") from e

    async def login(self, username: str, password: str) -> LoginResponse:
        account = await self._get_account(username)
        if not account:
            logger.info("Login rejected for unknown user %s", username)
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not account.get("password"):
            logger.error("Account %s has no password hash", username)
            raise StoreError("Server error during login")
        if not verify_password(password, account["password"]):
            logger.info("Login rejected for %s: wrong password", username)
            raise AuthenticationError(INVALID_CREDENTIALS)

        user = _public(account, username)
        logger.info("User %s logged in", user.username)
        return LoginResponse(token=create_access_token(user), user=user)

    async def get_profile(self, username: str) -> UserPublic:
        account = await self._get_account(username)
        if not account:
            raise RecordNotFoundError("User", username)
        return _public(account, username)

    async def change_password(self, username: str, current_password: str, new_password: str) -> None:
        if len(new_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise RecordValidationError(
                "Invalid request",
                [{"field": "newPassword", "message": f"Password must be at most {MAX_PASSWORD_BYTES} bytes"}],
            )
        account = await self._get_account(username)
        if not account:
            raise RecordNotFoundError("User", username)
        if not account.get("password"):
            logger.error("Account %s has no password hash", username)
            raise StoreError("Server error during password change")
        if not verify_password(current_password, account["password"]):
            raise AuthenticationError("Current password is incorrect")

        try:
            await self.redis.hset(user_key(username), "password", hash_password(new_password))
        except RedisError as e:
            logger.error("Failed to store new password for %s: %s", username, e)
            raise StoreError("Could not update password") from e
        logger.info("Password changed for %s", username)

    async def upsert_admin(self, reset_password: bool = False) -> bool:
        """
        Create the admin account, or repair it.

        An existing account keeps its password unless `reset_password` is set or the
        stored hash is missing.

        Returns:
            bool: `True` if the account was created, `False` if it already existed.
        """
        username = settings.ADMIN_USERNAME
        key = user_key(username)
        account = await self._get_account(username)

        try:
            if not account:
                await self.redis.hset(
                    key,
                    mapping={
                        "username": username,
                        "password": hash_password(settings.ADMIN_PASSWORD.get_secret_value()),
                        "role": ADMIN_ROLE,
                        "name": settings.ADMIN_NAME,
                    },
                )
                logger.info("Default admin user created")
                return True

            if reset_password or not account.get("password"):
                await self.redis.hset(key, "password", hash_password(settings.ADMIN_PASSWORD.get_secret_value()))
                logger.info("Admin password reset")
        except RedisError as e:
            logger.error("Failed to write admin account: %s", e)
            raise StoreError("Could not write admin account") from e
        return False


async def seed_initial_data(redis: aioredis.Redis) -> None:
    """Seed the admin account and initialise the record counters if they are missing."""
    await AuthService(redis).upsert_admin()
    try:
        residents_set = await redis.setnx(RESIDENTS_COUNTER_KEY, 0)
        family_heads_set = await redis.setnx(FAMILY_HEADS_COUNTER_KEY, 0)
    except RedisError as e:
        logger.error("Failed to initialise record counters: %s", e)
        raise StoreError("Could not initialise record counters") from e
    if residents_set or family_heads_set:
        logger.info("Initialized resident and family head counts")

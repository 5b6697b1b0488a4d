"""
Command-line interface for registry maintenance.

Commands:
    reset-admin   Create the admin account, or reset its password to `ADMIN_PASSWORD`.
    seed          Create the admin account and record counters if they are missing.
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from barangay_registry.config import settings
from barangay_registry.exceptions import StoreError
from barangay_registry.managers.logging_manager import get_logger
from barangay_registry.managers.redis_manager import user_key
from barangay_registry.services.auth_service import AuthService, seed_initial_data

logger = get_logger(prefix="[AdminCLI]")


class AdminCLI:
    """CLI tool for admin account maintenance."""

    def __init__(self, redis_url: str, redis: Optional[aioredis.Redis] = None):
        self.redis_url = redis_url
        self._redis = redis

    async def _client(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = aioredis.from_url(self.redis_url, decode_responses=True)
        return self._redis

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def reset_admin(self) -> bool:
        """
        Recreate or repair the admin account.

        Returns:
            True if the account now has a password hash, False otherwise.
        """
        logger.info("Starting admin user fix...")
        try:
            redis = await self._client()
            created = await AuthService(redis).upsert_admin(reset_password=True)
            logger.info("Created new admin user" if created else "Reset password of existing admin user")

            account = await redis.hgetall(user_key(settings.ADMIN_USERNAME))
            logger.info(f"Admin user fields: {sorted(account)}")
            return bool(account.get("password"))
        except (RedisError, StoreError, OSError) as e:
            logger.error(f"Admin user fix failed: {e}", exc_info=True)
            return False

    async def seed(self) -> bool:
        logger.info("Seeding bootstrap data...")
        try:
            await seed_initial_data(await self._client())
            return True
        except (RedisError, StoreError, OSError) as e:
            logger.error(f"Seeding failed: {e}", exc_info=True)
            return False


async def _run(cli: AdminCLI, command: str) -> bool:
    try:
        if command == "reset-admin":
            return await cli.reset_admin()
        return await cli.seed()
    finally:
        await cli.close()


def main(argv: Optional[Sequence[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="barangay-registry-admin",
        description="Barangay Registry maintenance CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--redis-url",
        default=settings.REDIS_URL,
        help="Redis connection URL (default: from REDIS_URL / REDIS_HOST settings)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")
    subparsers.add_parser("reset-admin", help="Create the admin account or reset its password")
    subparsers.add_parser("seed", help="Create the admin account and counters if missing")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    success = asyncio.run(_run(AdminCLI(redis_url=args.redis_url), args.command))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()

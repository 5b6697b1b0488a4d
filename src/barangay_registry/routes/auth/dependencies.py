"""
# Authentication Dependencies

FastAPI dependencies shared by every protected router.

- `get_redis_client`: the shared Redis client (overridable in tests).
- `get_current_user_dep`: validates the bearer JWT and returns `{username, name, role}`.

**Usage:**
```python
@router.get("/residents")
async def list_residents(current_user: UserPublic = Depends(get_current_user_dep)):
    ...
```

Attributes:
    oauth2_scheme (OAuth2PasswordBearer): FastAPI bearer token extractor
"""

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from barangay_registry.config import settings
from barangay_registry.exceptions import AuthenticationError
from barangay_registry.managers.logging_manager import get_logger
from barangay_registry.managers.redis_manager import redis_manager
from barangay_registry.models.auth_models import UserPublic
from barangay_registry.services.auth_service import decode_access_token

logger = get_logger(prefix="[Security Dependencies]")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login")


async def get_redis_client() -> aioredis.Redis:
    return await redis_manager.get_redis()


async def get_current_user_dep(token: str = Depends(oauth2_scheme)) -> UserPublic:
    """
    Validate the bearer token and return the authenticated principal.

    Raises:
        HTTPException(401): If the token is invalid or expired.
    """
    try:
        user = decode_access_token(token)
    except AuthenticationError as e:
        logger.info("Rejected bearer token: %s", e.message)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
    logger.debug("Authenticated request for user %s", user.username)
    return user

"""
# Authentication Routes

Staff login and account endpoints.

| Method | Path                     | Description                              |
|--------|--------------------------|------------------------------------------|
| POST   | `/auth/login`            | Exchange credentials for a bearer token  |
| GET    | `/auth/me`               | Current account, without password        |
| POST   | `/auth/change-password`  | Change the current account's password    |

Wrong credentials are reported as `400 Invalid username or password`, the same
response for unknown users and wrong passwords.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from barangay_registry.exceptions import AuthenticationError
from barangay_registry.managers.logging_manager import get_logger
from barangay_registry.models.auth_models import ChangePasswordRequest, LoginRequest, LoginResponse, UserPublic
from barangay_registry.models.record_models import MessageResponse
from barangay_registry.routes.auth.dependencies import get_current_user_dep
from barangay_registry.routes.dependencies import get_auth_service
from barangay_registry.services.auth_service import AuthService

logger = get_logger(prefix="[Auth Routes]")

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    """
    Authenticate a staff account.

    Returns:
        LoginResponse: `{token, user}` on success.

    Raises:
        HTTPException(400): If the username or password is wrong.
    """
    try:
        return await auth_service.login(request.username, request.password)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e


@router.get("/me", response_model=UserPublic)
async def me(
    current_user: UserPublic = Depends(get_current_user_dep),
    auth_service: AuthService = Depends(get_auth_service),
):
    return await auth_service.get_profile(current_user.username)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    current_user: UserPublic = Depends(get_current_user_dep),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Change the authenticated user's password.

    Raises:
        HTTPException(400): If `currentPassword` is wrong or `newPassword` is shorter than 6 characters.
    """
    try:
        await auth_service.change_password(current_user.username, request.currentPassword, request.newPassword)
    except AuthenticationError as e:
        logger.info("Password change rejected for %s", current_user.username)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    return MessageResponse(message="Password changed successfully")

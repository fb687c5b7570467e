"""Authentication endpoints."""

from fastapi import APIRouter, status

from app.dependencies import CurrentUser, DatabaseSession
from app.schemas.auth import (
    ChangePasswordRequest,
    LoginResponse,
    ProfileUpdate,
    SignInRequest,
    SignUpRequest,
    Token,
    TokenRefresh,
    UserResponse,
)
from app.services.auth_service import AuthService
from app.services.user_service import UserService

router = APIRouter()


@router.post(
    "/signup",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Authentication"],
    summary="Create account",
)
async def signup(request: SignUpRequest, db: DatabaseSession) -> LoginResponse:
    """
    Register an admin (with a new clinic) or a patient (in the default clinic).

    Args:
        request: Account details
        db: Database session

    Returns:
        Access token, refresh token, and user information
    """
    user, tokens = await AuthService(db).sign_up(request)
    return LoginResponse(**tokens.model_dump(), user=UserResponse.model_validate(user))


@router.post(
    "/signin",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Sign in with email and password",
)
async def signin(request: SignInRequest, db: DatabaseSession) -> LoginResponse:
    """
    Verify credentials and return JWT tokens.

    Args:
        request: Email and password
        db: Database session

    Returns:
        Access token, refresh token, and user information
    """
    user, tokens = await AuthService(db).sign_in(request)
    return LoginResponse(**tokens.model_dump(), user=UserResponse.model_validate(user))


@router.post(
    "/refresh",
    response_model=Token,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Refresh access token",
)
async def refresh_token(request: TokenRefresh, db: DatabaseSession) -> Token:
    """
    Refresh access token using refresh token.

    Args:
        request: Refresh token
        db: Database session

    Returns:
        New access token and refresh token
    """
    return await AuthService(db).refresh_access_token(request.refresh_token)


@router.get(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Current user profile",
)
async def get_profile(current_user: CurrentUser) -> UserResponse:
    """Return the signed-in user's profile."""
    return UserResponse.model_validate(current_user)


@router.put(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Update profile",
)
async def update_profile(
    data: ProfileUpdate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> UserResponse:
    """Update the signed-in user's profile."""
    user = await UserService(db).update_profile(current_user["id"], data)
    return UserResponse.model_validate(user or current_user)


@router.post(
    "/change-password",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Authentication"],
    summary="Change password",
)
async def change_password(
    data: ChangePasswordRequest,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> None:
    """Change the signed-in user's password."""
    await AuthService(db).change_password(current_user, data)

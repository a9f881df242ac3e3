"""Account endpoints - register, login, logout, me, upgrade."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from backend.app.api.auth import get_current_user_record
from backend.app.auth import (
    TOKEN_COOKIE_NAME,
    TOKEN_TTL_SECONDS,
    create_token,
    hash_password,
    is_valid_email,
    validate_password,
    verify_password,
)
from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_storage
from backend.app.db.repositories import DuplicateEmailError, Storage
from backend.app.models.common import ApiModel, Plan
from backend.app.models.users import PublicUser, User
from backend.app.plans import effective_plan, plan_window, remaining_daily

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class CredentialsRequest(BaseModel):
    """Request body for register and login."""

    email: str = ""
    password: str = ""


class UpgradeRequest(BaseModel):
    """Request body for POST /auth/upgrade."""

    plan: str


class UserResponse(ApiModel):
    """Envelope returned by the account endpoints."""

    user: PublicUser
    remaining_daily: int | None = None


def set_session_cookie(response: Response, user: User, settings: Settings) -> None:
    """Issue a fresh session token as an httpOnly cookie."""
    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value=create_token(user),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=TOKEN_TTL_SECONDS,
    )


def _user_response(user: User, settings: Settings) -> UserResponse:
    return UserResponse(
        user=PublicUser.from_user(user),
        remaining_daily=remaining_daily(
            effective_plan(user), user.daily_usage_count, user.daily_usage_date, settings.free_daily_limit
        ),
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: CredentialsRequest,
    response: Response,
    storage: Annotated[Storage, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserResponse:
    """Create a FREE account and start a session.

    Raises:
        HTTPException: 400 for invalid input, 409 if the email is taken
    """
    if not request.email or not request.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password required")
    if not is_valid_email(request.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email format")
    errors = validate_password(request.password)
    if errors:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=", ".join(errors))

    if storage.get_user_by_email(request.email) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")

    try:
        user = storage.create_user(
            User(email=request.email, password_hash=hash_password(request.password))
        )
    except DuplicateEmailError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")

    logger.info("User registered", extra={"structured": {"user_id": user.id}})
    set_session_cookie(response, user, settings)
    return _user_response(user, settings)


@router.post("/login", response_model=UserResponse)
async def login(
    request: CredentialsRequest,
    response: Response,
    storage: Annotated[Storage, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserResponse:
    """Verify credentials and start a session.

    Raises:
        HTTPException: 400 if a field is missing, 401 for bad credentials
    """
    if not request.email or not request.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password required")

    user = storage.get_user_by_email(request.email)
    if user is None or not verify_password(request.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    set_session_cookie(response, user, settings)
    return _user_response(user, settings)


@router.post("/logout")
async def logout(response: Response) -> dict[str, bool]:
    """Clear the session cookie."""
    response.delete_cookie(TOKEN_COOKIE_NAME)
    return {"success": True}


@router.get("/me", response_model=UserResponse)
async def me(
    user: Annotated[User, Depends(get_current_user_record)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserResponse:
    """Current account."""
    return _user_response(user, settings)


@router.post("/upgrade", response_model=UserResponse)
async def upgrade(
    request: UpgradeRequest,
    response: Response,
    user: Annotated[User, Depends(get_current_user_record)],
    storage: Annotated[Storage, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserResponse:
    """Switch the current account's plan and reissue the session token.

    Raises:
        HTTPException: 400 for an unknown plan
    """
    try:
        plan = Plan(request.plan)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid plan")

    started_at, expires_at = plan_window(plan)
    updated = storage.update_user(
        user.id,
        {"plan": plan, "plan_started_at": started_at, "plan_expires_at": expires_at},
    )
    if updated is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    logger.info("Plan changed", extra={"structured": {"user_id": user.id, "plan": plan.value}})
    set_session_cookie(response, updated, settings)
    return _user_response(updated, settings)

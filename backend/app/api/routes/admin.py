"""Admin endpoints - user listing, plan changes, usage resets, stats."""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from backend.app.api.auth import require_admin
from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_storage
from backend.app.db.repositories import Storage
from backend.app.models.common import ApiModel, Plan, Role
from backend.app.models.users import User
from backend.app.plans import effective_plan, is_free_plan, is_paid_plan, plan_window, today_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


class AdminUser(ApiModel):
    """User row as shown to admins (no password hash)."""

    id: str
    email: str
    plan: Plan
    role: Role
    daily_usage_count: int
    daily_usage_date: str | None
    created_at: datetime
    plan_started_at: datetime | None
    plan_expires_at: datetime | None

    @classmethod
    def from_user(cls, user: User) -> "AdminUser":
        return cls.model_validate(user.model_dump())


class AdminUsersResponse(ApiModel):
    """Response for GET /api/admin/users."""

    users: list[AdminUser]


class AdminUserResponse(ApiModel):
    """Response for user mutations."""

    message: str
    user: AdminUser


class PlanRequest(ApiModel):
    """Request body for PUT /api/admin/users/{id}/plan."""

    plan: str


class AdminStats(ApiModel):
    """System-wide usage numbers."""

    total_users: int
    free_users: int
    pro_users: int
    total_daily_usage: int
    free_daily_limit: int


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


@router.get("/users", response_model=AdminUsersResponse)
async def list_users(storage: Annotated[Storage, Depends(get_storage)]) -> AdminUsersResponse:
    """Every user with usage information."""
    return AdminUsersResponse(users=[AdminUser.from_user(u) for u in storage.list_users()])


@router.put("/users/{user_id}/plan", response_model=AdminUserResponse)
async def update_plan(
    user_id: str,
    request: PlanRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> AdminUserResponse:
    """Set a user's plan; paid plans get a fresh 30 or 365 day window.

    Raises:
        HTTPException: 400 for an unknown plan, 404 for an unknown user
    """
    try:
        plan = Plan(request.plan)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid plan")

    started_at, expires_at = plan_window(plan)
    user = storage.update_user(
        user_id, {"plan": plan, "plan_started_at": started_at, "plan_expires_at": expires_at}
    )
    if user is None:
        raise _not_found()

    logger.info("Admin changed plan", extra={"structured": {"user_id": user_id, "plan": plan.value}})
    return AdminUserResponse(message="Plan updated successfully", user=AdminUser.from_user(user))


@router.put("/users/{user_id}/reset-usage", response_model=AdminUserResponse)
async def reset_usage(
    user_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> AdminUserResponse:
    """Zero a user's usage counter for today."""
    user = storage.update_user(user_id, {"daily_usage_count": 0, "daily_usage_date": today_utc()})
    if user is None:
        raise _not_found()
    return AdminUserResponse(message="Usage reset successfully", user=AdminUser.from_user(user))


@router.get("/stats", response_model=AdminStats)
async def stats(
    storage: Annotated[Storage, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AdminStats:
    """User counts by effective plan and today's total usage."""
    users = storage.list_users()
    today = today_utc()
    plans = [effective_plan(u) for u in users]
    return AdminStats(
        total_users=len(users),
        free_users=sum(1 for plan in plans if is_free_plan(plan)),
        pro_users=sum(1 for plan in plans if is_paid_plan(plan)),
        total_daily_usage=sum(u.daily_usage_count for u in users if u.daily_usage_date == today),
        free_daily_limit=settings.free_daily_limit,
    )

"""User domain models."""

from datetime import datetime

from pydantic import Field

from backend.app.models.common import ApiModel, Plan, Role, new_id, utcnow


class User(ApiModel):
    """Stored user account."""

    id: str = Field(default_factory=new_id)
    email: str
    password_hash: str = Field(exclude=True)
    plan: Plan = Plan.FREE
    role: Role = Role.user
    daily_usage_count: int = 0
    daily_usage_date: str | None = None  # YYYY-MM-DD (UTC)
    plan_started_at: datetime | None = None
    plan_expires_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PublicUser(ApiModel):
    """User fields safe to return to the client."""

    id: str
    email: str
    plan: Plan
    role: Role = Role.user
    daily_usage_count: int = 0
    plan_started_at: datetime | None = None
    plan_expires_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> "PublicUser":
        return cls(
            id=user.id,
            email=user.email,
            plan=user.plan,
            role=user.role,
            daily_usage_count=user.daily_usage_count,
            plan_started_at=user.plan_started_at,
            plan_expires_at=user.plan_expires_at,
        )


class TokenPayload(ApiModel):
    """Claims carried by the session token."""

    user_id: str
    email: str
    plan: Plan
    iat: int
    exp: int

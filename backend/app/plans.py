"""Plan helpers: FREE (daily-limited) vs paid (unlimited)."""

from datetime import UTC, datetime, timedelta

from backend.app.models.common import Plan
from backend.app.models.users import User

PLAN_DURATIONS: dict[Plan, timedelta] = {
    Plan.PRO_MONTHLY: timedelta(days=30),
    Plan.PRO_YEARLY: timedelta(days=365),
}


def is_free_plan(plan: Plan) -> bool:
    return plan == Plan.FREE


def is_paid_plan(plan: Plan) -> bool:
    return plan in (Plan.PRO_MONTHLY, Plan.PRO_YEARLY)


def today_utc(now: datetime | None = None) -> str:
    """Today's date as YYYY-MM-DD in UTC."""
    current = now if now is not None else datetime.now(UTC)
    return current.astimezone(UTC).strftime("%Y-%m-%d")


def effective_plan(user: User, now: datetime | None = None) -> Plan:
    """Plan used for limiting. A paid plan past its expiry counts as FREE."""
    if not is_paid_plan(user.plan) or user.plan_expires_at is None:
        return user.plan

    current = now if now is not None else datetime.now(UTC)
    expires_at = user.plan_expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return user.plan if expires_at > current else Plan.FREE


def plan_window(plan: Plan, now: datetime | None = None) -> tuple[datetime | None, datetime | None]:
    """Start and expiry timestamps for a newly activated plan.

    Returns:
        (plan_started_at, plan_expires_at); both None for FREE
    """
    if not is_paid_plan(plan):
        return (None, None)
    started = now if now is not None else datetime.now(UTC)
    return (started, started + PLAN_DURATIONS[plan])


def has_exceeded_daily_limit(
    plan: Plan, daily_usage_count: int, daily_usage_date: str | None, limit: int
) -> bool:
    """Whether a user on ``plan`` is already at the limit for today."""
    if is_paid_plan(plan):
        return False
    if daily_usage_date != today_utc():
        return False
    return daily_usage_count >= limit


def remaining_daily(
    plan: Plan, daily_usage_count: int, daily_usage_date: str | None, limit: int
) -> int | None:
    """Remaining operations today; None means unlimited."""
    if is_paid_plan(plan):
        return None
    if daily_usage_date != today_utc():
        return limit
    return max(0, limit - daily_usage_count)

"""Daily AI-operation limit for FREE plans."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Response, status

from backend.app.api.auth import get_current_user_record
from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_storage
from backend.app.db.repositories import Storage
from backend.app.models.users import User
from backend.app.plans import effective_plan, is_paid_plan, today_utc
from backend.app.utils.metrics import metrics

logger = logging.getLogger(__name__)

REMAINING_HEADER = "X-Remaining-Daily"


class DailyLimiter:
    """Consumes one unit of a FREE user's daily allowance per call.

    The check and the increment happen in a single storage operation, so
    concurrent requests cannot slip past the limit together.
    """

    def __init__(self, storage: Storage, limit: int) -> None:
        """Initialize limiter.

        Args:
            storage: Storage providing the atomic usage counter
            limit: Operations allowed per UTC day on the FREE plan
        """
        self._storage = storage
        self._limit = limit

    def consume(self, user: User) -> int | None:
        """Consume one operation for ``user``.

        Args:
            user: Stored user row

        Returns:
            Remaining operations today, or None for unlimited plans

        Raises:
            HTTPException: 429 with FREE_DAILY_LIMIT_REACHED when exhausted
        """
        if is_paid_plan(effective_plan(user)):
            return None

        decision = self._storage.consume_daily_usage(user.id, today_utc(), self._limit)
        if not decision.allowed:
            metrics.inc_limit_rejection()
            logger.info(
                "Daily limit reached",
                extra={"structured": {"user_id": user.id, "used": decision.used}},
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "error": "FREE_DAILY_LIMIT_REACHED",
                    "message": (
                        f"You have reached your free daily limit of {self._limit} generations. "
                        "Upgrade to the paid plan for unlimited use."
                    ),
                    "limit": self._limit,
                    "used": decision.used,
                },
            )

        return max(0, self._limit - decision.used)


async def check_daily_limit(
    response: Response,
    user: Annotated[User, Depends(get_current_user_record)],
    storage: Annotated[Storage, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """FastAPI dependency enforcing the FREE daily limit on AI endpoints.

    Sets the X-Remaining-Daily header for limited users.
    """
    remaining = DailyLimiter(storage, settings.free_daily_limit).consume(user)
    if remaining is not None:
        response.headers[REMAINING_HEADER] = str(remaining)
    return user

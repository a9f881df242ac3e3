"""Session dependencies: current user, admin and paid-plan guards.

The session token is read from the ``token`` cookie, falling back to an
``Authorization: Bearer <token>`` header for API clients.
"""

from typing import Annotated

from fastapi import Cookie, Depends, Header, HTTPException, Request, status

from backend.app.auth import TOKEN_COOKIE_NAME, verify_token
from backend.app.db.engine import get_storage
from backend.app.db.repositories import Storage
from backend.app.models.common import Role
from backend.app.models.users import TokenPayload, User
from backend.app.plans import effective_plan, is_paid_plan


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Cookie(alias=TOKEN_COOKIE_NAME)] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> TokenPayload:
    """Resolve the authenticated session from cookie or bearer header.

    Args:
        request: Incoming request (the payload is stashed on request.state)
        token: Session cookie value
        authorization: Authorization header (e.g., "Bearer <token>")

    Returns:
        Verified token payload

    Raises:
        HTTPException: 401 if no valid token is present
    """
    raw = token
    if not raw and authorization and authorization.startswith("Bearer "):
        raw = authorization[7:]  # Strip "Bearer "

    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    payload = verify_token(raw)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    request.state.user_id = payload.user_id
    return payload


async def get_current_user_record(
    session: Annotated[TokenPayload, Depends(get_current_user)],
    storage: Annotated[Storage, Depends(get_storage)],
) -> User:
    """Load the stored user row behind the session.

    Raises:
        HTTPException: 401 if the user no longer exists
    """
    user = storage.get_user(session.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


async def require_admin(
    user: Annotated[User, Depends(get_current_user_record)],
) -> User:
    """Allow only users whose stored role is admin.

    Raises:
        HTTPException: 403 FORBIDDEN_ADMIN_ONLY for everyone else
    """
    if user.role != Role.admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="FORBIDDEN_ADMIN_ONLY",
        )
    return user


async def require_paid_plan(
    user: Annotated[User, Depends(get_current_user_record)],
) -> User:
    """Allow only users with an active paid plan.

    Raises:
        HTTPException: 403 PAID_PLAN_REQUIRED for FREE or expired plans
    """
    if not is_paid_plan(effective_plan(user)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="PAID_PLAN_REQUIRED",
        )
    return user

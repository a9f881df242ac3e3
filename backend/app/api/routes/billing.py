"""Billing endpoints - Stripe checkout, webhook and plan status."""

import logging
from datetime import datetime
from typing import Annotated, Any

import stripe
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from starlette.concurrency import run_in_threadpool

from backend.app.api.auth import get_current_user_record
from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_storage
from backend.app.db.repositories import Storage
from backend.app.models.common import ApiModel, Plan
from backend.app.models.users import User
from backend.app.plans import effective_plan, is_paid_plan, plan_window

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/billing", tags=["billing"])

PLAN_TYPES = {"monthly": Plan.PRO_MONTHLY, "yearly": Plan.PRO_YEARLY}


class CheckoutRequest(ApiModel):
    """Request body for POST /api/billing/create-checkout-session."""

    plan_type: str


class CheckoutResponse(ApiModel):
    """Hosted checkout URL."""

    url: str | None


class BillingStatus(ApiModel):
    """Current plan of the signed-in user."""

    plan: Plan
    plan_started_at: datetime | None
    plan_expires_at: datetime | None
    is_active: bool


@router.post("/create-checkout-session", response_model=CheckoutResponse)
async def create_checkout_session(
    request: CheckoutRequest,
    user: Annotated[User, Depends(get_current_user_record)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CheckoutResponse:
    """Start a Stripe subscription checkout for the monthly or yearly plan.

    Raises:
        HTTPException: 400 for an unknown plan type, 500 if Stripe is not configured
    """
    plan = PLAN_TYPES.get(request.plan_type)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid plan type")
    if not settings.stripe_secret_key:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Stripe not configured")

    price_id = (
        settings.stripe_price_id_monthly if plan == Plan.PRO_MONTHLY else settings.stripe_price_id_yearly
    )
    if not price_id:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Stripe price ID for {request.plan_type} plan not configured",
        )

    frontend_url = settings.frontend_url.rstrip("/")
    session = await run_in_threadpool(
        stripe.checkout.Session.create,
        api_key=settings.stripe_secret_key,
        mode="subscription",
        customer_email=user.email,
        line_items=[{"price": price_id, "quantity": 1}],
        success_url=f"{frontend_url}/upgrade/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{frontend_url}/plans?canceled=true",
        metadata={"userId": user.id, "email": user.email, "planType": plan.value},
    )
    return CheckoutResponse(url=session.url)


def _metadata_value(metadata: Any, key: str) -> str | None:
    if metadata is None or key not in metadata:
        return None
    value = metadata[key]
    return str(value) if value else None


@router.post("/webhook")
async def webhook(
    request: Request,
    storage: Annotated[Storage, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_settings)],
    stripe_signature: Annotated[str | None, Header(alias="stripe-signature")] = None,
) -> dict[str, bool]:
    """Apply Stripe events. No session required; the signature authenticates the call.

    Raises:
        HTTPException: 400 without a webhook secret, without a signature or for a bad signature
    """
    if not settings.stripe_webhook_secret:
        logger.warning("STRIPE_WEBHOOK_SECRET not set, rejecting webhook")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook secret not configured")
    if not stripe_signature:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing stripe-signature header")

    payload = await request.body()
    try:
        event = stripe.Webhook.construct_event(payload, stripe_signature, settings.stripe_webhook_secret)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    event_type = event["type"]
    obj = event["data"]["object"]

    if event_type == "checkout.session.completed":
        metadata = obj["metadata"] if "metadata" in obj else None
        user_id = _metadata_value(metadata, "userId")
        plan_type = _metadata_value(metadata, "planType")
        if user_id and plan_type in (Plan.PRO_MONTHLY.value, Plan.PRO_YEARLY.value):
            plan = Plan(plan_type)
            started_at, expires_at = plan_window(plan)
            updated = storage.update_user(
                user_id, {"plan": plan, "plan_started_at": started_at, "plan_expires_at": expires_at}
            )
            if updated is None:
                logger.warning("Checkout completed for unknown user", extra={"structured": {"user_id": user_id}})
            else:
                logger.info("User upgraded", extra={"structured": {"user_id": user_id, "plan": plan.value}})

    elif event_type == "customer.subscription.deleted":
        logger.info(f"Subscription deleted: {obj['id'] if 'id' in obj else 'unknown'}")

    return {"received": True}


@router.get("/status", response_model=BillingStatus)
async def billing_status(user: Annotated[User, Depends(get_current_user_record)]) -> BillingStatus:
    """Plan, plan window and whether a paid plan is active."""
    return BillingStatus(
        plan=user.plan,
        plan_started_at=user.plan_started_at,
        plan_expires_at=user.plan_expires_at,
        is_active=is_paid_plan(effective_plan(user)),
    )

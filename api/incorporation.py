"""
api.incorporation
=================

Flow control endpoints: start an incorporation, look up a draft, push the
user to pricing (pending order), confirm payment, and the reminder sweep.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlmodel import Session

from offshore.errors import OffshoreError, Unauthenticated
from offshore.mailer import Mailer
from offshore.models import Identity
from offshore.onboarding import find_latest_draft, start_incorporation
from offshore.orders import confirm_payment, ensure_pending_order, pricing_url_for, remind_due_orders
from .deps import get_current_session, get_mailer, get_session, get_settings
from .schemas import OnboardingRef, StartOrderRequest

router = APIRouter(tags=["incorporation"])

logger = logging.getLogger(__name__)


@router.post("/api/incorporation/start")
def start(
    jurisdiction: str = Query("bvi", description="Jurisdiction slug"),
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Create a new onboarding plus a draft incorporation for the caller."""
    onboarding, inc = start_incorporation(s, identity, jurisdiction)
    return {"ok": True, "onboardingId": onboarding.id, "jurisdiction": inc.jurisdiction}


@router.get("/api/incorporation/lookup")
def lookup(
    jurisdiction: str = Query("bvi", description="Jurisdiction slug"),
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Find the caller's latest draft in one jurisdiction."""
    inc = find_latest_draft(s, identity, jurisdiction)
    if inc is None:
        return {"found": False}
    return {
        "found": True,
        "status": inc.status,
        "onboardingId": inc.onboarding_id,
        "token": inc.jurisdiction,
    }


@router.post("/api/incorporation/start-order")
async def start_order(
    body: StartOrderRequest,
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
    mailer: Mailer = Depends(get_mailer),
) -> Dict[str, Any]:
    """
    Make sure a pending order exists for the onboarding and email the
    payment link. Always answers with the pricing URL.
    """
    pricing_url = pricing_url_for(body.onboarding_id)
    try:
        order = await ensure_pending_order(
            s,
            identity,
            body.onboarding_id,
            body.jurisdiction,
            pricing_url=pricing_url,
            company_name_hint=body.company_name_hint,
            mailer=mailer,
        )
    except OffshoreError:
        raise
    except Exception as e:
        logger.error(f"[start-order] {e}")
        raise HTTPException(status_code=500, detail="Something went wrong, please try again")

    return {"ok": True, "orderCode": order.order_code, "pricingUrl": pricing_url}


@router.post("/api/incorporation/mark-paid")
def mark_paid(
    body: OnboardingRef,
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Confirm payment: order → paid, incorporation → paid."""
    order = confirm_payment(s, identity, body.onboarding_id)
    return {"ok": True, "orderId": order.id, "status": order.status.value}


@router.post("/api/orders/remind-due")
async def remind_due(
    x_cron_secret: Optional[str] = Header(None),
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
    mailer: Mailer = Depends(get_mailer),
    settings=Depends(get_settings),
) -> Dict[str, Any]:
    """Reminder sweep, callable by the scheduler (``X-Cron-Secret``) or an admin session."""
    is_cron = bool(settings.cron_secret) and x_cron_secret == settings.cron_secret
    is_admin = bool(identity and identity.email and identity.email.endswith(settings.admin_email_domain))
    if not (is_cron or is_admin):
        raise Unauthenticated("Unauthorized")
    return await remind_due_orders(s, mailer=mailer, app_url=settings.app_url)

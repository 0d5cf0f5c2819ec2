"""
offshore.orders
===============

Order store, order-code generator and payment reminders.

Invariant: at most one ``pending_payment`` order per onboarding. The
look-before-create in :pyfunc:`ensure_pending_order` is backed by a partial
unique index (see :class:`offshore.db.Order`); a losing concurrent insert
rolls back and returns the winner's row.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from html import escape
from typing import Any, Dict, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .db import ClientOnboarding, Order
from .errors import NotFound
from .lifecycle import advance_incorporation, advance_order, can_advance
from .mailer import Mailer, default_mailer
from .models import EmailMessage, Identity, IncorporationStatus, OrderStatus, utcnow
from .onboarding import assert_owner, get_incorporation
from .settings import settings

logger = logging.getLogger(__name__)

ORDER_CODE_PREFIX = "SCG"
MAX_CREATE_ATTEMPTS = 3


# ---------------------------------------------------------------------------
# Order codes
# ---------------------------------------------------------------------------
def generate_order_code(s: Session, jurisdiction: Optional[str], now: Optional[datetime] = None) -> str:
    """
    Build a readable, day-scoped code such as ``SCG-BVI-20251021-0007``.

    The sequence is one more than the number of orders created during the
    current UTC day, so it is best-effort only; ``Order.order_code`` is unique
    and :pyfunc:`ensure_pending_order` retries on collision.
    """
    j = (jurisdiction or "BVI").strip().upper() or "BVI"
    now = now or utcnow()
    start = datetime(now.year, now.month, now.day)
    end = start + timedelta(days=1)

    count_today = s.exec(
        select(func.count()).select_from(Order).where(Order.created_at >= start, Order.created_at < end)
    ).one()
    return f"{ORDER_CODE_PREFIX}-{j}-{start:%Y%m%d}-{count_today + 1:04d}"


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------
def find_pending_order(s: Session, onboarding_id: str) -> Optional[Order]:
    return s.exec(
        select(Order).where(Order.onboarding_id == onboarding_id, Order.status == OrderStatus.PENDING_PAYMENT)
    ).first()


def pricing_url_for(onboarding_id: str, app_url: Optional[str] = None) -> str:
    base = (app_url or settings.app_url).rstrip("/")
    return f"{base}/pricing?onboardingId={onboarding_id}"


# ---------------------------------------------------------------------------
# Emails
# ---------------------------------------------------------------------------
def order_email(order: Order, jurisdiction: str, company_name_hint: Optional[str], pricing_url: str) -> EmailMessage:
    first_pref = escape(company_name_hint or "Your company")
    html = f"""
    <div style="font-family: system-ui, sans-serif; line-height:1.6">
      <h2>Complete your order</h2>
      <p>Order Code: <strong>{escape(order.order_code)}</strong></p>
      <p>Jurisdiction: <strong>{escape(jurisdiction)}</strong></p>
      <p>Company name (first preference): <strong>{first_pref}</strong></p>
      <p>Please complete your payment to proceed:</p>
      <p><a href="{escape(pricing_url)}" target="_blank" rel="noopener">Go to payment</a></p>
      <hr/>
      <p>If you already paid, you can ignore this email.</p>
    </div>
    """
    return EmailMessage(
        to=order.user_email or "",
        subject=f"SCG: Complete your order {order.order_code}",
        html=html,
    )


def reminder_email(order: Order, to: str, pricing_url: str) -> EmailMessage:
    html = f"""
      <div style="font-family: system-ui, sans-serif; line-height:1.6">
        <h2>Reminder: Complete your order</h2>
        <p>Order Code: <strong>{escape(order.order_code)}</strong></p>
        <p>Jurisdiction: <strong>{escape(order.jurisdiction)}</strong></p>
        <p>Please complete your payment:</p>
        <p><a href="{escape(pricing_url)}" target="_blank" rel="noopener">Go to payment</a></p>
      </div>
    """
    return EmailMessage(to=to, subject=f"Reminder: Order {order.order_code}", html=html)


# ---------------------------------------------------------------------------
# Order store
# ---------------------------------------------------------------------------
def _create_pending_order(s: Session, identity: Identity, onboarding_id: str, jurisdiction: str) -> Order:
    """Insert a pending order, or return the one a concurrent request just inserted."""
    last_error: Optional[IntegrityError] = None
    for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
        order = Order(
            user_id=identity.user_id,
            user_email=identity.email or None,
            onboarding_id=onboarding_id,
            jurisdiction=jurisdiction,
            order_code=generate_order_code(s, jurisdiction),
            status=OrderStatus.PENDING_PAYMENT,
        )
        s.add(order)
        try:
            s.commit()
        except IntegrityError as e:
            s.rollback()
            last_error = e
            existing = find_pending_order(s, onboarding_id)
            if existing is not None:
                logger.info(f"Pending order for {onboarding_id} created concurrently; reusing {existing.order_code}")
                return existing
            logger.warning(f"Order code {order.order_code} collided (attempt {attempt}); regenerating")
            continue
        s.refresh(order)
        logger.info(f"Created order {order.order_code} for onboarding {onboarding_id}")
        return order
    raise last_error


async def ensure_pending_order(
    s: Session,
    identity: Optional[Identity],
    onboarding_id: str,
    jurisdiction: Optional[str],
    pricing_url: str,
    company_name_hint: Optional[str] = None,
    mailer: Optional[Mailer] = None,
) -> Order:
    """
    Return the onboarding's pending order, creating it if needed, and send
    the "complete your payment" email.

    Ownership is checked before anything is written. The email is sent on
    every call, and ``last_notified_at`` is recorded even when the send is
    simulated or fails; a failed send never reaches the caller.
    """
    assert_owner(s, identity, onboarding_id)
    token = (jurisdiction or "BVI").strip().upper() or "BVI"

    order = find_pending_order(s, onboarding_id)
    if order is None:
        order = _create_pending_order(s, identity, onboarding_id, token)
    elif identity.email and not order.user_email:
        order.user_email = identity.email

    mailer = mailer or default_mailer()
    try:
        result = await mailer.send(order_email(order, token, company_name_hint, pricing_url))
        if not result.ok:
            logger.warning(f"Order email for {order.order_code} not delivered")
    except Exception as e:
        logger.error(f"Order email for {order.order_code} failed: {e}")

    order.last_notified_at = utcnow()
    s.add(order)
    s.commit()
    s.refresh(order)
    return order


def mark_order_paid(s: Session, onboarding_id: str) -> Optional[Order]:
    """
    Flip the onboarding's pending order to ``paid``.

    Returns None, without writing, when there is nothing to mark. The caller
    must have verified ownership of the onboarding.
    """
    order = find_pending_order(s, onboarding_id)
    if order is None:
        return None
    advance_order(order, OrderStatus.PAID)
    s.add(order)
    s.commit()
    s.refresh(order)
    logger.info(f"Order {order.order_code} marked paid")
    return order


def confirm_payment(s: Session, identity: Optional[Identity], onboarding_id: str) -> Order:
    """Ownership check, then mark the order paid and advance the incorporation to ``paid``."""
    assert_owner(s, identity, onboarding_id)
    order = mark_order_paid(s, onboarding_id)
    if order is None:
        raise NotFound("No pending order to mark paid")

    inc = get_incorporation(s, onboarding_id)
    if inc is not None:
        if can_advance(IncorporationStatus.parse(inc.status), IncorporationStatus.PAID):
            advance_incorporation(inc, IncorporationStatus.PAID)
            s.add(inc)
            s.commit()
        else:
            logger.warning(f"Incorporation {inc.id} is {inc.status}; not moving to paid")
    return order


# ---------------------------------------------------------------------------
# Reminder sweep
# ---------------------------------------------------------------------------
async def remind_due_orders(
    s: Session,
    mailer: Optional[Mailer] = None,
    now: Optional[datetime] = None,
    app_url: Optional[str] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Re-send payment reminders for pending orders not notified within the
    reminder interval. Scheduled batch job; individual failures are counted
    and skipped.
    """
    mailer = mailer or default_mailer()
    now = now or utcnow()
    cutoff = now - timedelta(hours=settings.reminder_interval_hours)

    rows = s.exec(
        select(Order, ClientOnboarding)
        .join(ClientOnboarding, ClientOnboarding.id == Order.onboarding_id, isouter=True)
        .where(Order.status == OrderStatus.PENDING_PAYMENT)
        .where(or_(Order.last_notified_at.is_(None), Order.last_notified_at < cutoff))
        .order_by(Order.created_at)
        .limit(limit or settings.reminder_batch_size)
    ).all()

    sent = 0
    for order, onboarding in rows:
        to = order.user_email or (onboarding.project_email if onboarding else None) or settings.email_fallback
        msg = reminder_email(order, to, pricing_url_for(order.onboarding_id, app_url))
        try:
            result = await mailer.send(msg)
        except Exception as e:
            logger.error(f"Reminder for {order.order_code} failed: {e}")
            continue
        if not result.ok:
            logger.warning(f"Reminder for {order.order_code} not delivered")
            continue
        order.last_notified_at = utcnow()
        s.add(order)
        s.commit()
        sent += 1

    logger.info(f"Reminder sweep: {sent}/{len(rows)} sent")
    return {
        "sent": sent,
        "skipped": len(rows) - sent,
        "totalMatched": len(rows),
        "simulation": mailer.simulate,
    }

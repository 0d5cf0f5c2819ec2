"""
tests/test_orders.py
====================

Order store: idempotent pending orders, order codes, payment confirmation
and the reminder sweep. Async services are driven with ``asyncio.run``.
"""

import asyncio
from datetime import datetime, timedelta

import pytest
from sqlmodel import select

from offshore import orders
from offshore.db import Order
from offshore.errors import Forbidden, NotFound, Unauthenticated
from offshore.models import OrderStatus, utcnow
from offshore.onboarding import get_incorporation, start_incorporation
from offshore.orders import (
    confirm_payment,
    ensure_pending_order,
    find_pending_order,
    generate_order_code,
    mark_order_paid,
    pricing_url_for,
    remind_due_orders,
)


def _ensure(session, identity, onboarding_id, mailer, jurisdiction="BVI", hint=None):
    return asyncio.run(
        ensure_pending_order(
            session,
            identity,
            onboarding_id,
            jurisdiction,
            pricing_url=pricing_url_for(onboarding_id, "https://app.test"),
            company_name_hint=hint,
            mailer=mailer,
        )
    )


def _orders(session):
    return session.exec(select(Order)).all()


# ---------------------------------------------------------------------------
# Order codes
# ---------------------------------------------------------------------------
def test_order_code_counts_only_the_current_day(session, alice):
    onboarding, _ = start_incorporation(session, alice, "cayman")
    day = datetime(2025, 10, 21, 9, 30)
    for i, created in enumerate([day - timedelta(days=1), day, day.replace(hour=1), day.replace(hour=23)]):
        session.add(Order(
            user_id=alice.user_id,
            onboarding_id=onboarding.id,
            order_code=f"SEED-{i}",
            status=OrderStatus.PAID,
            created_at=created,
        ))
    session.commit()

    assert generate_order_code(session, "cayman", now=day) == "SCG-CAYMAN-20251021-0004"


def test_order_code_defaults_to_bvi(session):
    assert generate_order_code(session, None, now=datetime(2026, 1, 2)) == "SCG-BVI-20260102-0001"


# ---------------------------------------------------------------------------
# ensure_pending_order
# ---------------------------------------------------------------------------
def test_ensure_pending_order_is_idempotent(session, alice, mailer):
    onboarding, _ = start_incorporation(session, alice, "bvi")

    first = _ensure(session, alice, onboarding.id, mailer, hint="Acme Ltd")
    second = _ensure(session, alice, onboarding.id, mailer)

    assert first.id == second.id
    assert first.order_code.startswith("SCG-BVI-")
    assert len(_orders(session)) == 1
    # an email goes out on every call
    assert len(mailer.sent) == 2
    assert mailer.sent[0].recipients == ["alice@example.com"]
    assert first.order_code in mailer.sent[0].subject
    assert "Acme Ltd" in mailer.sent[0].html
    assert second.last_notified_at is not None


def test_company_name_hint_is_escaped(session, alice, mailer):
    onboarding, _ = start_incorporation(session, alice, "bvi")
    _ensure(session, alice, onboarding.id, mailer, hint="<script>x</script>")
    assert "<script>" not in mailer.sent[0].html
    assert "&lt;script&gt;" in mailer.sent[0].html


def test_other_users_cannot_create_orders(session, alice, bob, mailer):
    onboarding, _ = start_incorporation(session, alice, "bvi")

    with pytest.raises(Forbidden):
        _ensure(session, bob, onboarding.id, mailer)
    with pytest.raises(Unauthenticated):
        _ensure(session, None, onboarding.id, mailer)
    with pytest.raises(NotFound):
        _ensure(session, alice, "does-not-exist", mailer)

    assert _orders(session) == []
    assert mailer.sent == []


def test_mail_failure_does_not_fail_the_order(session, alice, exploding_mailer):
    onboarding, _ = start_incorporation(session, alice, "panama")

    order = _ensure(session, alice, onboarding.id, exploding_mailer, jurisdiction="PANAMA")

    assert exploding_mailer.calls == 1
    assert order.status is OrderStatus.PENDING_PAYMENT
    assert order.last_notified_at is not None
    assert order.jurisdiction == "PANAMA"


def test_concurrent_create_reuses_the_winner(session, alice, mailer, monkeypatch):
    onboarding, _ = start_incorporation(session, alice, "bvi")
    winner = Order(
        user_id=alice.user_id,
        onboarding_id=onboarding.id,
        order_code="SCG-BVI-WINNER",
        status=OrderStatus.PENDING_PAYMENT,
    )
    session.add(winner)
    session.commit()

    real_find = orders.find_pending_order
    calls = {"n": 0}

    def stale_first_lookup(s, onboarding_id):
        # the first lookup runs before the other request commits
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_find(s, onboarding_id)

    monkeypatch.setattr(orders, "find_pending_order", stale_first_lookup)

    order = _ensure(session, alice, onboarding.id, mailer)

    assert order.order_code == "SCG-BVI-WINNER"
    assert len(_orders(session)) == 1


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------
def test_mark_paid_without_pending_order_writes_nothing(session, alice):
    onboarding, _ = start_incorporation(session, alice, "bvi")
    assert mark_order_paid(session, onboarding.id) is None
    assert _orders(session) == []


def test_confirm_payment_advances_order_and_incorporation(session, alice, mailer):
    onboarding, _ = start_incorporation(session, alice, "bvi")
    _ensure(session, alice, onboarding.id, mailer)

    order = confirm_payment(session, alice, onboarding.id)

    assert order.status is OrderStatus.PAID
    assert find_pending_order(session, onboarding.id) is None
    assert get_incorporation(session, onboarding.id).status == "paid"

    # nothing left to pay
    with pytest.raises(NotFound):
        confirm_payment(session, alice, onboarding.id)


def test_paid_orders_do_not_block_a_new_pending_order(session, alice, mailer):
    onboarding, _ = start_incorporation(session, alice, "bvi")
    first = _ensure(session, alice, onboarding.id, mailer)
    mark_order_paid(session, onboarding.id)

    second = _ensure(session, alice, onboarding.id, mailer)

    assert second.id != first.id
    assert second.order_code != first.order_code
    assert len(_orders(session)) == 2


def test_confirm_payment_checks_ownership(session, alice, bob, mailer):
    onboarding, _ = start_incorporation(session, alice, "bvi")
    _ensure(session, alice, onboarding.id, mailer)

    with pytest.raises(Forbidden):
        confirm_payment(session, bob, onboarding.id)
    assert find_pending_order(session, onboarding.id) is not None


# ---------------------------------------------------------------------------
# Reminder sweep
# ---------------------------------------------------------------------------
def test_remind_due_orders_only_touches_stale_pending_orders(session, alice, bob, mailer):
    stale, _ = start_incorporation(session, alice, "bvi")
    fresh, _ = start_incorporation(session, bob, "cayman")
    paid, _ = start_incorporation(session, alice, "panama")

    _ensure(session, alice, stale.id, mailer)
    _ensure(session, bob, fresh.id, mailer)
    _ensure(session, alice, paid.id, mailer)
    mark_order_paid(session, paid.id)

    stale_order = find_pending_order(session, stale.id)
    stale_order.last_notified_at = utcnow() - timedelta(days=2)
    session.add(stale_order)
    session.commit()
    mailer.sent.clear()

    summary = asyncio.run(remind_due_orders(session, mailer=mailer, app_url="https://app.test"))

    assert summary == {"sent": 1, "skipped": 0, "totalMatched": 1, "simulation": True}
    assert len(mailer.sent) == 1
    assert stale_order.order_code in mailer.sent[0].subject
    assert f"https://app.test/pricing?onboardingId={stale.id}" in mailer.sent[0].html
    assert find_pending_order(session, stale.id).last_notified_at > utcnow() - timedelta(minutes=5)


def test_remind_due_orders_counts_failures(session, alice, mailer, exploding_mailer):
    onboarding, _ = start_incorporation(session, alice, "bvi")
    _ensure(session, alice, onboarding.id, mailer)

    later = utcnow() + timedelta(days=3)
    summary = asyncio.run(remind_due_orders(session, mailer=exploding_mailer, now=later))

    assert summary["sent"] == 0
    assert summary["skipped"] == 1
    assert summary["simulation"] is False

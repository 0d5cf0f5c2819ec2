"""
tests/test_db.py
================

Timestamp columns store naive UTC and give it back unchanged.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import DateTime

from offshore.db import ClientOnboarding, CompanyIncorporation, Order, Prospect
from offshore.models import OrderStatus, utcnow


@pytest.mark.parametrize(
    "table, column",
    [
        (ClientOnboarding, "created_at"),
        (ClientOnboarding, "updated_at"),
        (CompanyIncorporation, "signed_at"),
        (Order, "created_at"),
        (Order, "last_notified_at"),
        (Prospect, "updated_at"),
    ],
)
def test_timestamp_columns_are_plain_datetime(table, column):
    col_type = table.__table__.c[column].type
    assert type(col_type) is DateTime
    assert col_type.timezone is False


def test_created_at_round_trips_its_utc_value(session):
    stamp = datetime(2025, 10, 21, 23, 30, 15)
    session.add(ClientOnboarding(id="ob-ts", user_id="u-ts", created_at=stamp))
    session.commit()
    session.expire_all()

    row = session.get(ClientOnboarding, "ob-ts")
    assert row.created_at == stamp
    assert row.created_at.tzinfo is None


def test_default_timestamps_are_current_utc(session):
    before = utcnow()
    session.add(ClientOnboarding(id="ob-now", user_id="u-now"))
    session.commit()
    session.add(Order(
        user_id="u-now",
        onboarding_id="ob-now",
        order_code="SCG-BVI-20250101-0001",
        status=OrderStatus.PENDING_PAYMENT,
        last_notified_at=before,
    ))
    session.commit()
    session.expire_all()

    onboarding = session.get(ClientOnboarding, "ob-now")
    order = session.get(Order, 1)
    assert before - timedelta(seconds=1) <= onboarding.created_at <= utcnow()
    assert order.last_notified_at == before

"""
offshore.lifecycle
==================

State‑transition guards for incorporations and orders.

Two tiny finite‑state‑machines describe which statuses are legal successors
of each status. :pyfunc:`advance_incorporation` and :pyfunc:`advance_order`
mutate a row **in‑place** after validating the transition; they never touch
the session.
"""

from __future__ import annotations

from .db import CompanyIncorporation, Order
from .errors import IllegalTransition
from .models import IncorporationStatus, OrderStatus, utcnow

# ---------------------------------------------------------------------
# Allowed transitions: source status → set[valid target statuses]
# ---------------------------------------------------------------------
INCORPORATION_RULES = {
    IncorporationStatus.DRAFT:     {IncorporationStatus.SUBMITTED, IncorporationStatus.PAID},
    IncorporationStatus.SUBMITTED: {IncorporationStatus.PAID},
    IncorporationStatus.PAID:      set(),
}

ORDER_RULES = {
    OrderStatus.PENDING_PAYMENT: {OrderStatus.PAID},
    OrderStatus.PAID:            set(),
}


def can_advance(current: IncorporationStatus | None, new_status: IncorporationStatus) -> bool:
    """True for a forward move or a same-status save. Unknown stored statuses may move anywhere."""
    if current is None or current is new_status:
        return True
    return new_status in INCORPORATION_RULES[current]


def advance_incorporation(inc: CompanyIncorporation, new_status: IncorporationStatus) -> None:
    """
    Change ``inc.status`` if the transition is legal, otherwise raise
    :class:`~offshore.errors.IllegalTransition`.

    Examples
    --------
    >>> inc = CompanyIncorporation(onboarding_id="ob1", status="submitted")
    >>> advance_incorporation(inc, IncorporationStatus.PAID)
    >>> advance_incorporation(inc, IncorporationStatus.DRAFT)
    Traceback (most recent call last):
        ...
    offshore.errors.IllegalTransition: illegal transition paid → draft
    """
    current = IncorporationStatus.parse(inc.status)
    if not can_advance(current, new_status):
        raise IllegalTransition(f"illegal transition {current.value} → {new_status.value}")
    inc.status = new_status.value
    inc.updated_at = utcnow()


def advance_order(order: Order, new_status: OrderStatus) -> None:
    current = OrderStatus(order.status)
    if new_status not in ORDER_RULES[current]:
        raise IllegalTransition(f"illegal transition {current.value} → {new_status.value}")
    order.status = new_status
    order.updated_at = utcnow()

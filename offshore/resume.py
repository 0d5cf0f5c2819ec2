"""
offshore.resume
===============

Decide where a returning user should land.

:pyfunc:`resolve_latest_incorporation` reads the store;
:pyfunc:`decide_resume_route` is a pure function over its result and the
onboarding status, so the routing table can be tested exhaustively without a
database.

Routing table
-------------
=====================================  =====================================================
no incorporation record                ``/incorporate/<preferred slug>``
``draft``                              ``/company-incorporation?onboardingId&jurisdiction``
``submitted``                          ``/pricing?onboardingId``
``paid``                               ``/client-register?onboardingId&jurisdiction``
``paid`` + onboarding ``COMPLETED``    ``/success``
unknown stored status                  ``/incorporate/<jurisdiction slug>``
unknown status + ``COMPLETED``         ``/incorporate/<jurisdiction slug>`` (not ``/success``)
=====================================  =====================================================

Onboarding completion is only consulted on the ``paid`` branch, so a
completed onboarding whose incorporation carries an unrecognized status
restarts that jurisdiction's flow instead of landing on ``/success``.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from sqlmodel import Session, select

from .db import ClientOnboarding, CompanyIncorporation
from .jurisdictions import normalize
from .models import (
    Identity,
    IncorporationStatus,
    Jurisdiction,
    LatestIncorporation,
    OnboardingStatus,
    RouteTarget,
)
from .onboarding import require_identity

logger = logging.getLogger(__name__)


def resolve_latest_incorporation(s: Session, user_id: str) -> Optional[LatestIncorporation]:
    """Most recently updated incorporation across all of the user's onboardings (ties → highest id)."""
    row = s.exec(
        select(CompanyIncorporation)
        .join(ClientOnboarding, ClientOnboarding.id == CompanyIncorporation.onboarding_id)
        .where(ClientOnboarding.user_id == user_id)
        .order_by(CompanyIncorporation.updated_at.desc(), CompanyIncorporation.id.desc())
        .limit(1)
    ).first()
    if row is None:
        return None
    return LatestIncorporation(
        onboarding_id=row.onboarding_id,
        status=IncorporationStatus.parse(row.status),
        jurisdiction=normalize(row.jurisdiction),
        raw_status=row.status,
    )


# ---------------------------------------------------------------------------
# Pure routing
# ---------------------------------------------------------------------------
def _draft(inc: LatestIncorporation, onboarding_status: Optional[OnboardingStatus]) -> RouteTarget:
    return RouteTarget(
        "/company-incorporation",
        {"onboardingId": inc.onboarding_id, "jurisdiction": inc.jurisdiction.value},
    )


def _submitted(inc: LatestIncorporation, onboarding_status: Optional[OnboardingStatus]) -> RouteTarget:
    return RouteTarget("/pricing", {"onboardingId": inc.onboarding_id})


def _paid(inc: LatestIncorporation, onboarding_status: Optional[OnboardingStatus]) -> RouteTarget:
    # completion only overrides the paid branch
    if onboarding_status is OnboardingStatus.COMPLETED:
        return RouteTarget("/success")
    return RouteTarget(
        "/client-register",
        {"onboardingId": inc.onboarding_id, "jurisdiction": inc.jurisdiction.value},
    )


_ROUTES: Dict[IncorporationStatus, Callable[[LatestIncorporation, Optional[OnboardingStatus]], RouteTarget]] = {
    IncorporationStatus.DRAFT: _draft,
    IncorporationStatus.SUBMITTED: _submitted,
    IncorporationStatus.PAID: _paid,
}

_unrouted = set(IncorporationStatus) - set(_ROUTES)
if _unrouted:
    raise RuntimeError(f"no resume route for status(es): {sorted(s.value for s in _unrouted)}")


def decide_resume_route(
    incorporation: Optional[LatestIncorporation],
    onboarding_status: Optional[OnboardingStatus | str] = None,
    preferred_slug: str = "bvi",
) -> RouteTarget:
    """Map (incorporation, onboarding status) to the next page. No I/O."""
    if incorporation is None:
        return RouteTarget(f"/incorporate/{normalize(preferred_slug).slug}")

    if onboarding_status is not None and not isinstance(onboarding_status, OnboardingStatus):
        try:
            onboarding_status = OnboardingStatus(str(onboarding_status).upper())
        except ValueError:
            onboarding_status = None

    route = _ROUTES.get(incorporation.status) if incorporation.status is not None else None
    if route is None:
        logger.warning(
            f"Unknown incorporation status {incorporation.raw_status!r} for onboarding "
            f"{incorporation.onboarding_id}; restarting {incorporation.jurisdiction.slug} flow"
        )
        return RouteTarget(f"/incorporate/{incorporation.jurisdiction.slug}")
    return route(incorporation, onboarding_status)


# First form of each jurisdiction's flow
FIRST_STEP = {
    Jurisdiction.BVI: "/company-incorporation",
    Jurisdiction.CAYMAN: "/company-incorporation/cayman/entity-instruction",
    Jurisdiction.PANAMA: "/company-incorporation/panama/legal-entity",
    Jurisdiction.SINGAPORE: "/company-incorporation/singapore",
    Jurisdiction.HONGKONG: "/company-incorporation/hongkong",
}


def start_route(jurisdiction: Optional[str], onboarding_id: str) -> RouteTarget:
    """Where ``/incorporate/<slug>`` sends the user once a draft exists."""
    j = normalize(jurisdiction)
    return RouteTarget(FIRST_STEP[j], {"onboardingId": onboarding_id, "jurisdiction": j.value})


def resolve_resume_route(s: Session, identity: Optional[Identity], preferred_slug: str = "bvi") -> str:
    """Resolve the caller's latest incorporation and return the URL to resume at."""
    identity = require_identity(identity)
    latest = resolve_latest_incorporation(s, identity.user_id)
    onboarding_status = None
    if latest is not None:
        onboarding = s.get(ClientOnboarding, latest.onboarding_id)
        onboarding_status = onboarding.status if onboarding else None
    target = decide_resume_route(latest, onboarding_status, preferred_slug)
    logger.info(f"Resuming user {identity.user_id} at {target.url}")
    return target.url

"""
api.resume
==========

Page-style entry points that answer with redirects rather than JSON.

A missing session redirects to ``/login`` with a ``callbackUrl`` back to
where the user was going.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form
from fastapi.responses import RedirectResponse
from sqlmodel import Session

from offshore.jurisdictions import normalize_slug
from offshore.models import Identity
from offshore.onboarding import ensure_onboarding_and_draft
from offshore.resume import resolve_resume_route, start_route
from .deps import get_current_session, get_session

router = APIRouter(tags=["resume"])

logger = logging.getLogger(__name__)


def login_redirect(callback_url: str) -> RedirectResponse:
    return RedirectResponse(f"/login?{urlencode({'callbackUrl': callback_url})}", status_code=303)


@router.post("/resume")
def resume(
    preferred_jurisdiction: str = Form("bvi", alias="preferredJurisdiction"),
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
):
    """Send a returning user to the step their latest incorporation is waiting on."""
    if identity is None:
        return login_redirect("/")
    return RedirectResponse(resolve_resume_route(s, identity, preferred_jurisdiction), status_code=303)


@router.get("/incorporate/{jurisdiction}")
def incorporate(
    jurisdiction: str,
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
):
    """Reuse the caller's draft for this jurisdiction (or start one) and open its first form."""
    slug = normalize_slug(jurisdiction)
    if identity is None:
        return login_redirect(f"/incorporate/{slug}")
    onboarding_id, inc = ensure_onboarding_and_draft(s, identity, slug)
    return RedirectResponse(start_route(inc.jurisdiction, onboarding_id).url, status_code=303)

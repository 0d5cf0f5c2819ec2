"""
api.company
===========

Company-incorporation form endpoints: drafts, final submit, and the
jurisdiction-specific sections (Cayman, Panama, Singapore, Hong Kong).
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from offshore.models import Identity
from offshore.onboarding import (
    delete_draft,
    find_latest_draft,
    load_draft,
    load_section,
    save_company_draft,
    save_section,
    submit_company,
)
from .deps import get_current_session, get_session
from .schemas import CompanyFormPayload, SectionPayload, to_wire

router = APIRouter(prefix="/api/company-incorporation", tags=["company-incorporation"])


@router.get("/draft")
def get_draft(
    onboarding_id: str = Query(..., alias="onboardingId"),
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
) -> Dict[str, Any]:
    return {"success": True, "data": to_wire(load_draft(s, identity, onboarding_id))}


@router.post("/draft")
def post_draft(
    body: CompanyFormPayload,
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Partial save; only the keys present in the body are merged."""
    inc = save_company_draft(s, identity, body.onboarding_id, body.form_data())
    return {"success": True, "data": to_wire(inc)}


@router.delete("/draft")
def remove_draft(
    onboarding_id: str = Query(..., alias="onboardingId"),
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
) -> Dict[str, Any]:
    delete_draft(s, identity, onboarding_id)
    return {"success": True, "message": "Draft deleted successfully"}


@router.post("/submit")
def submit(
    body: CompanyFormPayload,
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Final company-form save; answers with the pricing page to go to next."""
    target = submit_company(s, identity, body.onboarding_id, body.form_data())
    return {"ok": True, "next": target.url}


@router.get("/check-draft")
def check_draft(
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
) -> Dict[str, Any]:
    draft = find_latest_draft(s, identity)
    if draft is None:
        return {"hasDraft": False, "draft": None}
    return {
        "hasDraft": True,
        "draft": {
            "id": draft.id,
            "onboardingId": draft.onboarding_id,
            "jurisdiction": draft.jurisdiction,
            "status": draft.status,
            "updatedAt": draft.updated_at.isoformat(),
            "createdAt": draft.created_at.isoformat(),
        },
    }


@router.get("/{jurisdiction}/{section}")
def get_section(
    jurisdiction: str,
    section: str,
    onboarding_id: str = Query(..., alias="onboardingId"),
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
) -> Dict[str, Any]:
    return {"ok": True, "data": load_section(s, identity, onboarding_id, jurisdiction, section)}


@router.post("/{jurisdiction}/{section}")
def post_section(
    jurisdiction: str,
    section: str,
    body: SectionPayload,
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
) -> Dict[str, Any]:
    inc = save_section(s, identity, body.onboarding_id, jurisdiction, section, body.data)
    return {"ok": True, "id": inc.id}

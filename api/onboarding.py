"""
api.onboarding
==============

Client onboarding (KYC) endpoints.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from offshore.models import Identity
from offshore.onboarding import (
    create_client_onboarding,
    list_user_onboardings,
    update_client_onboarding,
    update_onboarding_documents,
)
from .deps import get_current_session, get_session
from .schemas import ClientOnboardingPayload, DocumentsPayload, to_wire

router = APIRouter(tags=["onboarding"])


@router.post("/api/client-onboarding", status_code=201)
def create(
    body: ClientOnboardingPayload,
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Create a KYC onboarding; every field is required."""
    onboarding = create_client_onboarding(s, identity, body.model_dump())
    return {
        "success": True,
        "message": "Client onboarding submitted successfully",
        "data": to_wire(onboarding),
    }


@router.patch("/api/client-onboarding/{onboarding_id}")
def update(
    onboarding_id: str,
    body: ClientOnboardingPayload,
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
) -> Dict[str, Any]:
    onboarding = update_client_onboarding(s, identity, onboarding_id, body.model_dump(exclude_none=True))
    return {"success": True, "data": to_wire(onboarding)}


@router.patch("/api/client-onboarding/{onboarding_id}/files")
def update_files(
    onboarding_id: str,
    body: DocumentsPayload,
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Attach uploaded document paths; completes the onboarding once all are present."""
    onboarding = update_onboarding_documents(
        s,
        identity,
        onboarding_id,
        passport_copy=body.passport_copy,
        proof_of_address=body.proof_of_address,
        bank_statement=body.bank_statement,
    )
    return {"success": True, "data": to_wire(onboarding)}


@router.get("/api/onboarding/user-onboarding")
def user_onboarding(
    identity: Optional[Identity] = Depends(get_current_session),
    s: Session = Depends(get_session),
) -> List[Dict[str, Any]]:
    return list_user_onboardings(s, identity)

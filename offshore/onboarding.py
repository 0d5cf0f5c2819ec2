"""
offshore.onboarding
===================

CRUD for client onboardings and their company-incorporation forms.

Every operation takes the caller's :class:`~offshore.models.Identity` and
checks ownership before touching a row. Creates validate their full field
list; draft saves accept partial payloads and deep-merge them into the stored
JSON bags.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlmodel import Session, select

from .db import ClientOnboarding, CompanyIncorporation
from .errors import Forbidden, NotFound, Unauthenticated, ValidationFailure
from .jurisdictions import normalize, token_for
from .lifecycle import advance_incorporation, can_advance
from .models import (
    Identity,
    IncorporationStatus,
    Jurisdiction,
    OnboardingStatus,
    RouteTarget,
    utcnow,
)
from .prospects import upsert_prospect

logger = logging.getLogger(__name__)

REQUIRED_KYC_FIELDS: Tuple[str, ...] = (
    "gender",
    "phone_number",
    "personal_email",
    "residential_address",
    "nationality",
    "passport_number",
    "passport_expiry_date",
    "date_of_birth",
    "tax_residency",
    "tax_identification_number",
    "project_name",
    "project_email",
)

DOCUMENT_FIELDS: Tuple[str, ...] = ("passport_copy", "proof_of_address", "bank_statement")

JSON_FIELDS: Tuple[str, ...] = (
    "company_names",
    "relevant_individuals",
    "source_of_funds",
    "records_location",
    "declaration",
    "shareholders",
    "directors",
)

SIMPLE_FIELDS: Tuple[str, ...] = (
    "purpose_of_company",
    "geographic_profile",
    "authorized_shares",
    "shares_par_value",
    "currency",
    "custom_shares",
    "custom_par_value",
    "complex_structure_notes",
    "order_seal",
    "seal_quantity",
    "requires_nominee_shareholder",
    "requires_nominee_director",
    "signature_type",
    "signature_file_path",
    "signature_file_name",
    "completed_by_name",
    "ip_address",
    "user_agent",
)

# Jurisdiction-specific forms that live outside the generic company form.
SECTIONS: Dict[Jurisdiction, Tuple[str, ...]] = {
    Jurisdiction.BVI: (),
    Jurisdiction.CAYMAN: ("entity_instruction", "due_diligence", "beneficial_ownership"),
    Jurisdiction.PANAMA: ("legal_entity", "board_of_directors", "beneficial_owner"),
    Jurisdiction.SINGAPORE: ("company_details", "declaration"),
    Jurisdiction.HONGKONG: ("company_details",),
}


def minimal_incorporation_json() -> Dict[str, Dict[str, Any]]:
    """Empty-but-valid shapes for every JSON bag."""
    return {
        "company_names": {"names": []},
        "relevant_individuals": {"people": []},
        "source_of_funds": {"totalAmount": "", "compositionDetails": ""},
        "records_location": {
            "registersLocation": "",
            "registersMaintainedBy": "",
            "financialRecordsLocation": "",
            "financialRecordsMaintainedBy": "",
        },
        "declaration": {
            "authorizedToInstruct": False,
            "authorizedInstructorsDetails": "",
            "pepDetailsAdditional": "",
            "completedByName": "",
            "signature": "",
        },
        "shareholders": {"list": []},
        "directors": {"list": []},
    }


def deep_merge(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge *patch* into a copy of *base*. Nested dicts merge, lists and scalars
    replace, ``None`` values in the patch are skipped.

    >>> deep_merge({"a": {"x": 1}, "l": [1]}, {"a": {"y": 2}, "l": [3]})
    {'a': {'x': 1, 'y': 2}, 'l': [3]}
    """
    out = copy.deepcopy(base) if base else {}
    for key, value in patch.items():
        if value is None:
            continue
        if isinstance(value, dict):
            current = out.get(key)
            out[key] = deep_merge(current if isinstance(current, dict) else {}, value)
        else:
            out[key] = copy.deepcopy(value)
    return out


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------
def require_identity(identity: Optional[Identity]) -> Identity:
    if identity is None or not identity.user_id:
        raise Unauthenticated()
    return identity


def assert_owner(s: Session, identity: Optional[Identity], onboarding_id: str) -> ClientOnboarding:
    """Return the onboarding if *identity* owns it; raise otherwise. Never writes."""
    identity = require_identity(identity)
    if not onboarding_id:
        raise ValidationFailure(["onboarding_id"])
    onboarding = s.get(ClientOnboarding, onboarding_id)
    if onboarding is None:
        raise NotFound(f"Onboarding {onboarding_id} not found")
    if onboarding.user_id != identity.user_id:
        logger.warning(f"User {identity.user_id} denied access to onboarding {onboarding_id}")
        raise Forbidden()
    return onboarding


def get_incorporation(s: Session, onboarding_id: str) -> Optional[CompanyIncorporation]:
    return s.exec(
        select(CompanyIncorporation).where(CompanyIncorporation.onboarding_id == onboarding_id)
    ).first()


def _require_incorporation(s: Session, onboarding_id: str) -> CompanyIncorporation:
    inc = get_incorporation(s, onboarding_id)
    if inc is None:
        raise NotFound(f"Company incorporation for onboarding {onboarding_id} not found")
    return inc


# ---------------------------------------------------------------------------
# Starting a flow
# ---------------------------------------------------------------------------
def start_incorporation(s: Session, identity: Optional[Identity], jurisdiction_slug: str = "bvi") -> Tuple[ClientOnboarding, CompanyIncorporation]:
    """Create a fresh PENDING onboarding plus its draft incorporation."""
    identity = require_identity(identity)
    token = token_for(jurisdiction_slug)

    onboarding = ClientOnboarding(user_id=identity.user_id, status=OnboardingStatus.PENDING)
    s.add(onboarding)
    s.flush()

    inc = CompanyIncorporation(
        onboarding_id=onboarding.id,
        jurisdiction=token,
        status=IncorporationStatus.DRAFT.value,
        **minimal_incorporation_json(),
    )
    s.add(inc)
    s.commit()
    s.refresh(onboarding)
    s.refresh(inc)
    logger.info(f"Started {token} incorporation {onboarding.id} for user {identity.user_id}")
    return onboarding, inc


def find_latest_draft(s: Session, identity: Optional[Identity], jurisdiction: Optional[str] = None) -> Optional[CompanyIncorporation]:
    """Most recently updated draft of the caller, optionally for one jurisdiction."""
    identity = require_identity(identity)
    rows = s.exec(
        select(CompanyIncorporation)
        .join(ClientOnboarding, ClientOnboarding.id == CompanyIncorporation.onboarding_id)
        .where(ClientOnboarding.user_id == identity.user_id)
        .where(CompanyIncorporation.status == IncorporationStatus.DRAFT.value)
        .order_by(CompanyIncorporation.updated_at.desc(), CompanyIncorporation.id.desc())
    ).all()
    if jurisdiction is None:
        return rows[0] if rows else None
    wanted = normalize(jurisdiction)
    for inc in rows:
        if normalize(inc.jurisdiction) is wanted:
            return inc
    return None


def ensure_onboarding_and_draft(s: Session, identity: Optional[Identity], jurisdiction_slug: str = "bvi") -> Tuple[str, CompanyIncorporation]:
    """Reuse the caller's latest draft for this jurisdiction, or start a new one."""
    existing = find_latest_draft(s, identity, jurisdiction_slug)
    if existing is not None:
        return existing.onboarding_id, existing
    onboarding, inc = start_incorporation(s, identity, jurisdiction_slug)
    return onboarding.id, inc


# ---------------------------------------------------------------------------
# Client onboarding (KYC)
# ---------------------------------------------------------------------------
def _missing(payload: Dict[str, Any], fields: Iterable[str]) -> List[str]:
    return [f for f in fields if not payload.get(f)]


def create_client_onboarding(s: Session, identity: Optional[Identity], payload: Dict[str, Any]) -> ClientOnboarding:
    identity = require_identity(identity)
    missing = _missing(payload, REQUIRED_KYC_FIELDS)
    if missing:
        raise ValidationFailure(missing)

    onboarding = ClientOnboarding(
        user_id=identity.user_id,
        status=OnboardingStatus.PENDING,
        **{f: payload[f] for f in REQUIRED_KYC_FIELDS},
    )
    s.add(onboarding)
    s.commit()
    s.refresh(onboarding)
    return onboarding


def update_client_onboarding(s: Session, identity: Optional[Identity], onboarding_id: str, payload: Dict[str, Any]) -> ClientOnboarding:
    """Partial KYC update; absent or empty values leave the stored ones alone."""
    onboarding = assert_owner(s, identity, onboarding_id)
    for f in REQUIRED_KYC_FIELDS:
        if payload.get(f):
            setattr(onboarding, f, payload[f])
    onboarding.updated_at = utcnow()
    s.add(onboarding)
    s.commit()
    s.refresh(onboarding)
    return onboarding


def update_onboarding_documents(
    s: Session,
    identity: Optional[Identity],
    onboarding_id: str,
    passport_copy: Optional[str] = None,
    proof_of_address: Optional[str] = None,
    bank_statement: Optional[str] = None,
) -> ClientOnboarding:
    """Attach document references; the onboarding completes once all three exist."""
    onboarding = assert_owner(s, identity, onboarding_id)
    given = {
        "passport_copy": passport_copy,
        "proof_of_address": proof_of_address,
        "bank_statement": bank_statement,
    }
    for f, value in given.items():
        if value:
            setattr(onboarding, f, value)

    if all(getattr(onboarding, f) for f in DOCUMENT_FIELDS):
        if onboarding.status is not OnboardingStatus.COMPLETED:
            logger.info(f"Onboarding {onboarding_id} completed")
        onboarding.status = OnboardingStatus.COMPLETED

    onboarding.updated_at = utcnow()
    s.add(onboarding)
    s.commit()
    s.refresh(onboarding)
    return onboarding


def list_user_onboardings(s: Session, identity: Optional[Identity]) -> List[Dict[str, Any]]:
    """Every onboarding of the caller with a summary of its incorporation, newest first."""
    identity = require_identity(identity)
    rows = s.exec(
        select(ClientOnboarding, CompanyIncorporation)
        .join(CompanyIncorporation, CompanyIncorporation.onboarding_id == ClientOnboarding.id, isouter=True)
        .where(ClientOnboarding.user_id == identity.user_id)
        .order_by(ClientOnboarding.created_at.desc())
    ).all()

    out = []
    for onboarding, inc in rows:
        out.append({
            "id": onboarding.id,
            "jurisdiction": normalize(inc.jurisdiction).value if inc else None,
            "status": onboarding.status.value,
            "companyIncorporationId": inc.id if inc else None,
            "companyIncorporationStatus": inc.status if inc else "none",
            "hasCompanyDraft": bool(inc and inc.status == IncorporationStatus.DRAFT.value),
            "hasCompanyIncorporation": inc is not None,
            "hasContent": bool(inc and inc.purpose_of_company),
            "createdAt": onboarding.created_at.isoformat(),
            "updatedAt": onboarding.updated_at.isoformat(),
        })
    return out


# ---------------------------------------------------------------------------
# Company form
# ---------------------------------------------------------------------------
def _merge_form(inc: CompanyIncorporation, payload: Dict[str, Any]) -> None:
    defaults = minimal_incorporation_json()
    for f in JSON_FIELDS:
        patch = payload.get(f)
        if patch:
            current = getattr(inc, f) or defaults[f]
            # assign a new object so the JSON column is flagged dirty
            setattr(inc, f, deep_merge(current, patch))
    for f in SIMPLE_FIELDS:
        if payload.get(f) is not None:
            setattr(inc, f, payload[f])


def first_company_name(company_names: Any) -> Optional[str]:
    """
    First-preference company name from a ``company_names`` bag, or None.

    Only non-empty strings count; anything else in the bag is ignored.

    >>> first_company_name({"names": [{"name": "Acme"}]}) is None
    True
    """
    if not isinstance(company_names, dict):
        return None
    names = company_names.get("names")
    candidates = [company_names.get("firstPreference")]
    if isinstance(names, list) and names:
        candidates.append(names[0])
    for name in candidates:
        if isinstance(name, str) and name.strip():
            return name
    return None


def load_draft(s: Session, identity: Optional[Identity], onboarding_id: str) -> Optional[CompanyIncorporation]:
    assert_owner(s, identity, onboarding_id)
    return get_incorporation(s, onboarding_id)


def save_company_draft(s: Session, identity: Optional[Identity], onboarding_id: str, payload: Dict[str, Any]) -> CompanyIncorporation:
    """
    Partial save of the company form.

    Creates the incorporation row on first save. A draft save never moves a
    submitted or paid record back to draft.
    """
    onboarding = assert_owner(s, identity, onboarding_id)
    inc = get_incorporation(s, onboarding_id)
    if inc is None:
        inc = CompanyIncorporation(
            onboarding_id=onboarding_id,
            jurisdiction=normalize(payload.get("jurisdiction")).value,
            status=IncorporationStatus.DRAFT.value,
            **minimal_incorporation_json(),
        )
    elif payload.get("jurisdiction"):
        inc.jurisdiction = normalize(payload["jurisdiction"]).value

    _merge_form(inc, payload)
    inc.updated_at = utcnow()
    s.add(inc)
    s.commit()
    s.refresh(inc)

    name = first_company_name(payload.get("company_names"))
    if name:
        upsert_prospect(s, onboarding.user_id, name, onboarding_id, normalize(inc.jurisdiction).value)
    return inc


def submit_company(s: Session, identity: Optional[Identity], onboarding_id: str, payload: Dict[str, Any]) -> RouteTarget:
    """Final save of the company form; advances to ``submitted`` and points at pricing."""
    assert_owner(s, identity, onboarding_id)
    inc = _require_incorporation(s, onboarding_id)

    _merge_form(inc, payload)
    inc.signed_at = utcnow()
    if can_advance(IncorporationStatus.parse(inc.status), IncorporationStatus.SUBMITTED):
        advance_incorporation(inc, IncorporationStatus.SUBMITTED)
    else:
        logger.info(f"Incorporation {inc.id} already {inc.status}; keeping status on submit")
    inc.updated_at = utcnow()
    s.add(inc)
    s.commit()
    return RouteTarget("/pricing", {"onboardingId": onboarding_id})


def delete_draft(s: Session, identity: Optional[Identity], onboarding_id: str) -> None:
    assert_owner(s, identity, onboarding_id)
    inc = _require_incorporation(s, onboarding_id)
    s.delete(inc)
    s.commit()


# ---------------------------------------------------------------------------
# Jurisdiction-specific sections
# ---------------------------------------------------------------------------
def section_key(jurisdiction: str, section: str) -> str:
    """Validate ``(jurisdiction, section)`` and return the storage key, e.g. ``panama_legal_entity``."""
    j = normalize(jurisdiction)
    name = section.replace("-", "_").lower()
    if name not in SECTIONS[j]:
        raise ValidationFailure(["section"], f"Unknown {j.value} section: {section}")
    return f"{j.slug}_{name}"


def _apply_signature(inc: CompanyIncorporation, data: Dict[str, Any]) -> None:
    for src, dest in (
        ("signatureType", "signature_type"),
        ("signatureFileName", "signature_file_name"),
        ("signatureFilePath", "signature_file_path"),
        ("completedByName", "completed_by_name"),
    ):
        if data.get(src):
            setattr(inc, dest, data[src])
    if data.get("signed"):
        inc.signed_at = utcnow()


def save_section(s: Session, identity: Optional[Identity], onboarding_id: str, jurisdiction: str, section: str, data: Dict[str, Any]) -> CompanyIncorporation:
    key = section_key(jurisdiction, section)
    if not isinstance(data, dict) or not data:
        raise ValidationFailure(["data"])
    assert_owner(s, identity, onboarding_id)
    inc = _require_incorporation(s, onboarding_id)

    sections = dict(inc.sections or {})
    sections[key] = data
    inc.sections = sections
    _apply_signature(inc, data)
    inc.updated_at = utcnow()
    s.add(inc)
    s.commit()
    s.refresh(inc)
    return inc


def load_section(s: Session, identity: Optional[Identity], onboarding_id: str, jurisdiction: str, section: str) -> Optional[Dict[str, Any]]:
    key = section_key(jurisdiction, section)
    assert_owner(s, identity, onboarding_id)
    inc = _require_incorporation(s, onboarding_id)
    return (inc.sections or {}).get(key)

"""
offshore.prospects
==================

Company-name reservations, deduplicated per (user, normalized name,
jurisdiction). Upserted opportunistically whenever a draft carries names.
"""

from __future__ import annotations

import re
from typing import Optional

from sqlmodel import Session, select

from .db import Prospect
from .models import utcnow

_SPACES = re.compile(r"\s+")
_PUNCT = re.compile(r"[^\w ]")


def normalize_name(name: str) -> str:
    """
    Trim, upper-case, collapse whitespace and strip punctuation.

    >>> normalize_name("  Acme   Holdings, Ltd. ")
    'ACME HOLDINGS LTD'
    """
    s = _SPACES.sub(" ", name.strip().upper())
    return _PUNCT.sub("", s)


def upsert_prospect(
    s: Session,
    user_id: str,
    raw_name: str,
    onboarding_id: Optional[str] = None,
    jurisdiction: Optional[str] = None,
) -> Optional[Prospect]:
    """Insert or refresh the prospect row; returns None for blank or non-string names."""
    if not isinstance(raw_name, str):
        return None
    trimmed = raw_name.strip()
    if not trimmed:
        return None
    normalized = normalize_name(trimmed)

    row = s.exec(
        select(Prospect).where(
            Prospect.user_id == user_id,
            Prospect.normalized_name == normalized,
            Prospect.jurisdiction == jurisdiction if jurisdiction is not None else Prospect.jurisdiction.is_(None),
        )
    ).first()

    if row is None:
        row = Prospect(
            user_id=user_id,
            onboarding_id=onboarding_id,
            jurisdiction=jurisdiction,
            raw_name=trimmed,
            normalized_name=normalized,
        )
    else:
        row.raw_name = trimmed
        row.status = "new"
        row.updated_at = utcnow()
        # keep an existing link unless a new one is given
        if onboarding_id is not None:
            row.onboarding_id = onboarding_id

    s.add(row)
    s.commit()
    s.refresh(row)
    return row

"""
offshore.jurisdictions
======================

Slug / token / label tables for the supported jurisdictions and the single
place where free-text jurisdiction values are normalized.

* slug  – URL-friendly, used in ``/incorporate/<slug>``
* token – upper-case, used in ``?jurisdiction=<TOKEN>`` and stored on rows

Stored values have drifted over time ("Cayman Islands (legacy)", "bvi ",
"Hong Kong"), so normalization falls back to substring heuristics and finally
to BVI.
"""

from __future__ import annotations

from typing import Optional

from .models import Jurisdiction

LABELS = {
    Jurisdiction.BVI: "British Virgin Islands (BVI)",
    Jurisdiction.CAYMAN: "Cayman Islands",
    Jurisdiction.HONGKONG: "Hong Kong",
    Jurisdiction.SINGAPORE: "Singapore",
    Jurisdiction.PANAMA: "Panama",
}

DEFAULT = Jurisdiction.BVI

# Substring heuristics, checked in order after an exact slug/token match fails.
_HINTS = (
    ("bvi", Jurisdiction.BVI),
    ("cay", Jurisdiction.CAYMAN),
    ("hong", Jurisdiction.HONGKONG),
    ("sing", Jurisdiction.SINGAPORE),
    ("pan", Jurisdiction.PANAMA),
)


def normalize(value: Optional[str]) -> Jurisdiction:
    """
    Map any free-text jurisdiction value onto a :class:`Jurisdiction`.

    >>> normalize("Cayman Islands (legacy)")
    <Jurisdiction.CAYMAN: 'CAYMAN'>
    >>> normalize("mars")
    <Jurisdiction.BVI: 'BVI'>
    """
    if isinstance(value, Jurisdiction):
        return value
    s = (value or "").strip().lower()
    for j in Jurisdiction:
        if s == j.slug:
            return j
    for hint, j in _HINTS:
        if hint in s:
            return j
    return DEFAULT


def normalize_slug(value: Optional[str]) -> str:
    return normalize(value).slug


def normalize_token(value: Optional[str]) -> str:
    return normalize(value).value


def token_for(slug: str) -> str:
    """Exact slug → token lookup; unknown slugs fall back to BVI."""
    s = (slug or "").strip().lower()
    for j in Jurisdiction:
        if j.slug == s:
            return j.value
    return DEFAULT.value


def label_for(slug_or_token: Optional[str]) -> str:
    """Human label for a slug or token; unknown values are echoed back."""
    if not slug_or_token:
        return "Company"
    s = slug_or_token.strip().lower()
    for j in Jurisdiction:
        if j.slug == s:
            return LABELS[j]
    return slug_or_token

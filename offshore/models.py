"""
offshore.models
===============

Enums and small value objects shared across the incorporation flow.

These carry **no** database dependencies; the SQLModel tables live in
:pymod:`offshore.db`. Status enums subclass ``str`` so their values are the
exact strings stored in the database and sent over the wire.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Union
from urllib.parse import urlencode


class Jurisdiction(str, Enum):
    """Supported jurisdictions; the value is the upper-case token."""
    BVI = "BVI"
    CAYMAN = "CAYMAN"
    PANAMA = "PANAMA"
    HONGKONG = "HONGKONG"
    SINGAPORE = "SINGAPORE"

    @property
    def slug(self) -> str:
        return self.value.lower()

    def __str__(self) -> str:
        return self.value


class OnboardingStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"

    def __str__(self) -> str:
        return self.value


class IncorporationStatus(str, Enum):
    """Company-form progress: draft -> submitted -> paid."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    PAID = "paid"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["IncorporationStatus"]:
        """Return the member for *value*, or None for unknown / legacy strings."""
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value


class OrderStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"

    def __str__(self) -> str:
        return self.value


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every table column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, passed explicitly into every mutating operation."""
    user_id: str
    email: str = ""


@dataclass(frozen=True)
class LatestIncorporation:
    """Projection returned by the status resolver."""
    onboarding_id: str
    status: Optional[IncorporationStatus]
    jurisdiction: Jurisdiction
    raw_status: Optional[str] = None


@dataclass(frozen=True)
class RouteTarget:
    """
    A page path plus its query-string parameters.

    >>> RouteTarget("/pricing", {"onboardingId": "abc"}).url
    '/pricing?onboardingId=abc'
    """
    path: str
    params: Dict[str, str] = field(default_factory=dict)

    @property
    def url(self) -> str:
        if not self.params:
            return self.path
        return f"{self.path}?{urlencode(self.params)}"

    def __str__(self) -> str:
        return self.url


@dataclass
class EmailMessage:
    to: Union[str, List[str]]
    subject: str
    html: Optional[str] = None
    text: Optional[str] = None
    from_: Optional[str] = None

    @property
    def recipients(self) -> List[str]:
        if isinstance(self.to, str):
            return [self.to] if self.to else []
        return [t for t in self.to if t]


@dataclass(frozen=True)
class EmailResult:
    ok: bool
    simulated: bool
    id: Optional[str] = None

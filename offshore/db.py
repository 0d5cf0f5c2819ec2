"""
offshore.db
===========

Relational persistence layer for the incorporation flow.

This module exposes:

* ``engine`` – a global SQLModel engine built from :data:`offshore.settings.DB_URL`
* ``SessionLocal`` – a session factory used via ``with SessionLocal() as s:``
* ``create_all()`` – helper to create tables at first run
* the table models: ``ClientOnboarding``, ``CompanyIncorporation``,
  ``Order`` and ``Prospect``
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Index, String, UniqueConstraint, text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.engine import Engine
from sqlmodel import Field, Session, SQLModel, create_engine

from offshore.models import OnboardingStatus, OrderStatus, utcnow
from offshore.settings import DB_ECHO, DB_URL


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
def make_engine(url: str = DB_URL, echo: bool = DB_ECHO) -> Engine:
    """Build an engine; SQLite connections may be shared across FastAPI's threadpool."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=echo, connect_args=connect_args)


engine = make_engine()


# ---------------------------------------------------------------------------
# Session factory
# ---------------------------------------------------------------------------
def SessionLocal(bind: Engine | None = None) -> Session:  # noqa: N802
    """Return a new Session bound to the global engine."""
    return Session(bind or engine)


def _new_id() -> str:
    return uuid4().hex


def _enum_column(enum_cls, default, **kw) -> Column:
    """Store an enum by value ("pending_payment"), not by member name."""
    return Column(
        SAEnum(enum_cls, values_callable=lambda e: [m.value for m in e], native_enum=False, length=32),
        nullable=False,
        default=default,
        **kw,
    )


# Timestamps are naive UTC (see ``offshore.models.utcnow``) stored in a plain
# DateTime column, never a timezone-aware one.
def _created_at(**kw) -> Any:
    return Field(default_factory=utcnow, sa_type=DateTime, **kw)


def _updated_at() -> Any:
    return Field(default_factory=utcnow, sa_type=DateTime, sa_column_kwargs={"onupdate": utcnow})


def _timestamp() -> Any:
    return Field(default=None, sa_type=DateTime)


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------
class ClientOnboarding(SQLModel, table=True):
    """
    One per (user, incorporation attempt).

    KYC columns are nullable free text: a flow may start before the client
    register form is filled in.
    """

    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(index=True)
    status: OnboardingStatus = Field(
        default=OnboardingStatus.PENDING,
        sa_column=_enum_column(OnboardingStatus, OnboardingStatus.PENDING),
    )

    # personal KYC
    gender: Optional[str] = None
    phone_number: Optional[str] = None
    personal_email: Optional[str] = None
    residential_address: Optional[str] = None
    nationality: Optional[str] = None
    passport_number: Optional[str] = None
    passport_expiry_date: Optional[str] = None
    date_of_birth: Optional[str] = None
    tax_residency: Optional[str] = None
    tax_identification_number: Optional[str] = None

    # project
    project_name: Optional[str] = None
    project_email: Optional[str] = None

    # uploaded document references (opaque paths)
    passport_copy: Optional[str] = None
    proof_of_address: Optional[str] = None
    bank_statement: Optional[str] = None

    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()


class CompanyIncorporation(SQLModel, table=True):
    """
    The company-form record, one-to-one with a :class:`ClientOnboarding`.

    ``status`` and ``jurisdiction`` are kept as plain text because historical
    rows carry drifted values; readers normalize them.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    onboarding_id: str = Field(foreign_key="clientonboarding.id", unique=True, index=True)
    jurisdiction: Optional[str] = Field(default="BVI")
    status: str = Field(default="draft", index=True)

    # structured bags
    company_names: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    relevant_individuals: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    source_of_funds: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    records_location: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    declaration: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    shareholders: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    directors: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    # jurisdiction-specific forms keyed by section name ("panama_legal_entity", ...)
    sections: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    # simple fields
    purpose_of_company: Optional[str] = None
    geographic_profile: Optional[str] = None
    authorized_shares: Optional[str] = None
    shares_par_value: Optional[str] = None
    currency: Optional[str] = None
    custom_shares: Optional[str] = None
    custom_par_value: Optional[str] = None
    complex_structure_notes: Optional[str] = None
    order_seal: Optional[bool] = None
    seal_quantity: Optional[str] = None
    requires_nominee_shareholder: Optional[bool] = None
    requires_nominee_director: Optional[bool] = None

    # signature metadata
    signature_type: Optional[str] = None
    signature_file_path: Optional[str] = None
    signature_file_name: Optional[str] = None
    completed_by_name: Optional[str] = None
    signed_at: Optional[datetime] = _timestamp()
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()


class Order(SQLModel, table=True):
    """
    A single payable unit tied to one onboarding.

    The partial unique index allows any number of paid orders but only one
    ``pending_payment`` row per onboarding.
    """

    __table_args__ = (
        Index(
            "uq_order_pending_per_onboarding",
            "onboarding_id",
            unique=True,
            sqlite_where=text("status = 'pending_payment'"),
            postgresql_where=text("status = 'pending_payment'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    user_email: Optional[str] = None
    onboarding_id: str = Field(foreign_key="clientonboarding.id", index=True)
    jurisdiction: str = Field(default="BVI")
    order_code: str = Field(sa_column=Column(String(64), unique=True, nullable=False))
    status: OrderStatus = Field(
        default=OrderStatus.PENDING_PAYMENT,
        sa_column=_enum_column(OrderStatus, OrderStatus.PENDING_PAYMENT, index=True),
    )
    last_notified_at: Optional[datetime] = _timestamp()
    created_at: datetime = _created_at(index=True)
    updated_at: datetime = _updated_at()


class Prospect(SQLModel, table=True):
    """Normalized company-name reservation, deduplicated per user and jurisdiction."""

    __table_args__ = (
        UniqueConstraint("user_id", "normalized_name", "jurisdiction", name="uq_prospect_user_name_jurisdiction"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    onboarding_id: Optional[str] = None
    jurisdiction: Optional[str] = None
    raw_name: str
    normalized_name: str
    status: str = "new"
    created_at: datetime = _created_at()
    updated_at: datetime = _updated_at()


# ---------------------------------------------------------------------------
# Utility: create tables
# ---------------------------------------------------------------------------
def create_all(bind: Engine | None = None) -> None:
    """Create all tables (safe if they already exist)."""
    SQLModel.metadata.create_all(bind or engine)

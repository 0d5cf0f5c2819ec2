"""
api.deps
========

FastAPI dependency providers.

* ``get_session`` – request-scoped SQLModel session
* ``get_current_session`` – the caller's :class:`~offshore.models.Identity`,
  or None. The default reads ``X-User-Id`` / ``X-User-Email`` as forwarded by
  the upstream auth layer; swap it with ``app.dependency_overrides``.
* ``get_mailer`` / ``get_settings`` – configured singletons
"""

from functools import lru_cache
from typing import Iterator, Optional

from fastapi import Header
from sqlmodel import Session

from offshore.db import SessionLocal
from offshore.mailer import Mailer, default_mailer
from offshore.models import Identity
from offshore.settings import settings


def get_session() -> Iterator[Session]:
    """New Session per request; closed once the response is sent."""
    with SessionLocal() as s:
        yield s


def get_current_session(
    x_user_id: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
) -> Optional[Identity]:
    """Return the authenticated caller, or None when the request carries no session."""
    if not x_user_id:
        return None
    return Identity(user_id=x_user_id, email=x_user_email or "")


@lru_cache
def get_settings():
    """Return application settings."""
    return settings


@lru_cache
def get_mailer() -> Mailer:
    """Return the configured mailer (simulates when no API key is set)."""
    return default_mailer()

"""
offshore.errors
===============

Error kinds raised by the service layer. The HTTP layer maps each one to a
status code; see :pymod:`api.main`.
"""

from __future__ import annotations

from typing import Iterable, List


class OffshoreError(Exception):
    """Base class for every domain error."""
    status_code = 500


class Unauthenticated(OffshoreError):
    status_code = 401

    def __init__(self, message: str = "Unauthenticated"):
        super().__init__(message)


class Forbidden(OffshoreError):
    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFound(OffshoreError):
    status_code = 404


class ValidationFailure(OffshoreError):
    """Carries the specific fields that were missing or invalid."""
    status_code = 400

    def __init__(self, missing: Iterable[str], message: str | None = None):
        self.missing: List[str] = list(missing)
        super().__init__(message or f"Missing required fields: {', '.join(self.missing)}")


class IllegalTransition(OffshoreError, ValueError):
    status_code = 409

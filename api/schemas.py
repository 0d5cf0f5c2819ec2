"""
api.schemas
===========

Request bodies and response helpers. The wire format is camelCase
(``onboardingId``); the service layer works in snake_case, which is what
``model_dump()`` returns.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlmodel import SQLModel

from offshore.onboarding import first_company_name


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class OnboardingRef(CamelModel):
    onboarding_id: str


class StartOrderRequest(CamelModel):
    onboarding_id: str
    jurisdiction: str
    company_names: Optional[Dict[str, Any]] = None

    @property
    def company_name_hint(self) -> Optional[str]:
        return first_company_name(self.company_names)


class CompanyFormPayload(CamelModel):
    """Everything the company form can send; every key is optional for drafts."""
    onboarding_id: str
    jurisdiction: Optional[str] = None

    company_names: Optional[Dict[str, Any]] = None
    relevant_individuals: Optional[Dict[str, Any]] = None
    source_of_funds: Optional[Dict[str, Any]] = None
    records_location: Optional[Dict[str, Any]] = None
    declaration: Optional[Dict[str, Any]] = None
    shareholders: Optional[Dict[str, Any]] = None
    directors: Optional[Dict[str, Any]] = None

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

    signature_type: Optional[str] = None
    signature_file_path: Optional[str] = None
    signature_file_name: Optional[str] = None
    completed_by_name: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    def form_data(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"onboarding_id"}, exclude_none=True)


class SectionPayload(CamelModel):
    onboarding_id: str
    data: Dict[str, Any]


class ClientOnboardingPayload(CamelModel):
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
    project_name: Optional[str] = None
    project_email: Optional[str] = None


class DocumentsPayload(CamelModel):
    passport_copy: Optional[str] = None
    proof_of_address: Optional[str] = None
    bank_statement: Optional[str] = None


def to_wire(row: Optional[SQLModel]) -> Optional[Dict[str, Any]]:
    """Serialize a table row with camelCase keys."""
    if row is None:
        return None
    return {to_camel(k): v for k, v in row.model_dump(mode="json").items()}

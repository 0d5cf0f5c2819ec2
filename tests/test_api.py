"""
tests/test_api.py
=================

HTTP surface: JSON endpoints, page redirects and the error mapping.
The lifespan is not entered, so tables come from the in-memory fixture.
"""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from api.deps import get_mailer, get_session, get_settings
from api.main import app
from offshore.db import Prospect
from offshore.settings import Settings

ALICE = {"X-User-Id": "user-alice", "X-User-Email": "alice@example.com"}
BOB = {"X-User-Id": "user-bob", "X-User-Email": "bob@example.com"}
ADMIN = {"X-User-Id": "ops", "X-User-Email": "ops@scg.local"}


@pytest.fixture
def client(engine, mailer):
    def _session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_settings] = lambda: Settings(cron_secret="s3cret", app_url="https://app.test")
    yield TestClient(app)
    app.dependency_overrides.clear()


def _start(client, jurisdiction="bvi", headers=ALICE):
    resp = client.post("/api/incorporation/start", params={"jurisdiction": jurisdiction}, headers=headers)
    assert resp.status_code == 200
    return resp.json()["onboardingId"]


def test_health(client):
    assert client.get("/").json()["status"] == "ok"


def test_start_and_lookup(client):
    onboarding_id = _start(client, "cayman")

    found = client.get("/api/incorporation/lookup", params={"jurisdiction": "cayman"}, headers=ALICE).json()
    assert found == {"found": True, "status": "draft", "onboardingId": onboarding_id, "token": "CAYMAN"}

    assert client.get("/api/incorporation/lookup", params={"jurisdiction": "bvi"}, headers=ALICE).json() == {"found": False}


def test_unauthenticated_json_call(client):
    resp = client.post("/api/incorporation/start")
    assert resp.status_code == 401
    assert resp.json() == {"detail": "Unauthenticated"}


def test_start_order_is_idempotent_and_owned(client, mailer):
    onboarding_id = _start(client)
    body = {"onboardingId": onboarding_id, "jurisdiction": "BVI", "companyNames": {"firstPreference": "Acme"}}

    first = client.post("/api/incorporation/start-order", json=body, headers=ALICE)
    second = client.post("/api/incorporation/start-order", json=body, headers=ALICE)

    assert first.status_code == 200
    assert first.json()["ok"] is True
    assert first.json()["orderCode"] == second.json()["orderCode"]
    assert first.json()["pricingUrl"].endswith(f"/pricing?onboardingId={onboarding_id}")
    assert len(mailer.sent) == 2

    denied = client.post("/api/incorporation/start-order", json=body, headers=BOB)
    assert denied.status_code == 403


def test_mark_paid(client):
    onboarding_id = _start(client)

    nothing = client.post("/api/incorporation/mark-paid", json={"onboardingId": onboarding_id}, headers=ALICE)
    assert nothing.status_code == 404

    client.post(
        "/api/incorporation/start-order",
        json={"onboardingId": onboarding_id, "jurisdiction": "BVI"},
        headers=ALICE,
    )
    paid = client.post("/api/incorporation/mark-paid", json={"onboardingId": onboarding_id}, headers=ALICE)
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"


def test_validation_failure_lists_missing_fields(client):
    resp = client.post("/api/client-onboarding", json={"gender": "F", "phoneNumber": "+1"}, headers=ALICE)
    assert resp.status_code == 400
    missing = resp.json()["missing"]
    assert "phoneNumber" not in missing
    assert "personalEmail" in missing
    assert "taxIdentificationNumber" in missing


def test_company_draft_submit_flow(client):
    onboarding_id = _start(client, "bvi")

    saved = client.post(
        "/api/company-incorporation/draft",
        json={"onboardingId": onboarding_id, "purposeOfCompany": "Holding", "sourceOfFunds": {"totalAmount": "5"}},
        headers=ALICE,
    )
    assert saved.status_code == 200
    assert saved.json()["data"]["purposeOfCompany"] == "Holding"

    check = client.get("/api/company-incorporation/check-draft", headers=ALICE).json()
    assert check["hasDraft"] is True
    assert check["draft"]["onboardingId"] == onboarding_id

    submitted = client.post("/api/company-incorporation/submit", json={"onboardingId": onboarding_id}, headers=ALICE)
    assert submitted.json() == {"ok": True, "next": f"/pricing?onboardingId={onboarding_id}"}


def test_draft_with_structured_names_saves(client, engine):
    onboarding_id = _start(client, "bvi")

    resp = client.post(
        "/api/company-incorporation/draft",
        json={"onboardingId": onboarding_id, "companyNames": {"names": [{"name": "Acme"}]}},
        headers=ALICE,
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["companyNames"]["names"] == [{"name": "Acme"}]
    with Session(engine) as s:
        assert s.exec(select(Prospect)).all() == []


def test_start_order_with_structured_names(client, mailer):
    onboarding_id = _start(client)
    resp = client.post(
        "/api/incorporation/start-order",
        json={"onboardingId": onboarding_id, "jurisdiction": "BVI", "companyNames": {"names": [{"name": "Acme"}]}},
        headers=ALICE,
    )
    assert resp.status_code == 200
    assert "Your company" in mailer.sent[0].html


def test_unknown_section_is_rejected(client):
    onboarding_id = _start(client, "panama")
    resp = client.post(
        "/api/company-incorporation/panama/flying-carpet",
        json={"onboardingId": onboarding_id, "data": {"x": 1}},
        headers=ALICE,
    )
    assert resp.status_code == 400
    assert resp.json()["missing"] == ["section"]


# ---------------------------------------------------------------------------
# Redirects
# ---------------------------------------------------------------------------
def test_resume_without_session_redirects_to_login(client):
    resp = client.post("/resume", data={"preferredJurisdiction": "bvi"}, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login?callbackUrl=%2F"


def test_resume_without_records_goes_to_preferred_start(client):
    resp = client.post("/resume", data={"preferredJurisdiction": "singapore"}, headers=ALICE, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/incorporate/singapore"


def test_resume_goes_to_pricing_after_submit(client):
    onboarding_id = _start(client, "bvi")
    client.post("/api/company-incorporation/submit", json={"onboardingId": onboarding_id}, headers=ALICE)

    resp = client.post("/resume", data={"preferredJurisdiction": "cayman"}, headers=ALICE, follow_redirects=False)
    assert resp.headers["location"] == f"/pricing?onboardingId={onboarding_id}"


def test_incorporate_reuses_draft(client):
    first = client.get("/incorporate/cayman", headers=ALICE, follow_redirects=False)
    second = client.get("/incorporate/cayman", headers=ALICE, follow_redirects=False)

    assert first.status_code == 303
    assert first.headers["location"].startswith("/company-incorporation/cayman/entity-instruction?onboardingId=")
    assert first.headers["location"] == second.headers["location"]


def test_incorporate_without_session_redirects_to_login(client):
    resp = client.get("/incorporate/Hong%20Kong", follow_redirects=False)
    assert resp.headers["location"] == "/login?callbackUrl=%2Fincorporate%2Fhongkong"


# ---------------------------------------------------------------------------
# Reminder sweep
# ---------------------------------------------------------------------------
def test_remind_due_requires_secret_or_admin(client):
    assert client.post("/api/orders/remind-due").status_code == 401
    assert client.post("/api/orders/remind-due", headers={"X-Cron-Secret": "wrong"}).status_code == 401
    assert client.post("/api/orders/remind-due", headers=ALICE).status_code == 401

    by_cron = client.post("/api/orders/remind-due", headers={"X-Cron-Secret": "s3cret"})
    assert by_cron.status_code == 200
    assert by_cron.json() == {"sent": 0, "skipped": 0, "totalMatched": 0, "simulation": True}

    assert client.post("/api/orders/remind-due", headers=ADMIN).status_code == 200

"""
Tests for the partner lead HTTP endpoint (`api/routers/partner_leads.py`).

Uses FastAPI's TestClient with the ingestion service wired to the in-memory
store through dependency overrides.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_ingestion_service
from api.main import app
from conftest import API_KEY, PARTNER_ID, make_partner
from domain.audit import AuditAction
from services.lead_ingestion_service import LeadIngestionService
from services.rate_limiter import RateLimiter

ENDPOINT = "/api/v1/partners/leads"


@pytest.fixture
def client(store, clock):
    service = LeadIngestionService(store=store, rate_limiter=RateLimiter(clock=clock), clock=clock)
    app.dependency_overrides[get_ingestion_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_successful_submission(client, store, valid_payload) -> None:
    response = client.post(ENDPOINT, json=valid_payload, headers={"X-API-Key": API_KEY})

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["dispatched"] is False
    assert body["target_organization"] is None
    assert body["status"] == "RECEIVED"
    assert body["quality"]["grade"] in {"A", "B", "C", "D"}
    assert body["rate_limit"]["limit"] == 100
    assert body["rate_limit"]["remaining"] == 99
    assert response.headers["X-RateLimit-Limit"] == "100"
    assert response.headers["X-RateLimit-Remaining"] == "99"

    # Background audit tasks ran after the response was produced
    actions = [e.action for e in store.list_audit_entries(partner_id=PARTNER_ID)]
    assert AuditAction.CREATED in actions


def test_missing_key(client, valid_payload) -> None:
    response = client.post(ENDPOINT, json=valid_payload)

    assert response.status_code == 401
    assert response.json()["error"] == "AUTH_INVALID_API_KEY"
    assert "X-RateLimit-Limit" not in response.headers


def test_key_in_body_is_not_accepted(client, valid_payload) -> None:
    payload = dict(valid_payload, api_key=API_KEY)
    response = client.post(ENDPOINT, json=payload)
    assert response.status_code == 401


def test_compliance_rejection(client, store, valid_payload) -> None:
    store.add_partner(make_partner(dpa_signed_at=None))

    response = client.post(ENDPOINT, json=valid_payload, headers={"X-API-Key": API_KEY})

    assert response.status_code == 403
    body = response.json()
    assert body["error"] == "COMPLIANCE_DPA_MISSING"
    assert body["message"]
    assert "X-RateLimit-Remaining" in response.headers
    # Written by the background task after the 403 is sent
    actions = [e.action for e in store.list_audit_entries(partner_id=PARTNER_ID)]
    assert actions == [AuditAction.LEAD_REJECTED_COMPLIANCE]


def test_validation_failure(client, store, valid_payload) -> None:
    payload = dict(valid_payload, consent_text="oui")

    response = client.post(ENDPOINT, json=payload, headers={"X-API-Key": API_KEY})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "VALIDATION_FAILED"
    assert "consent_text" in body["details"]
    assert store.leads == {}


def test_invalid_json_body(client) -> None:
    response = client.post(
        ENDPOINT,
        content=b"{not json",
        headers={"X-API-Key": API_KEY, "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert "body" in response.json()["details"]


def test_rate_limited(client, store, valid_payload) -> None:
    store.add_partner(make_partner(hourly_limit=1))
    headers = {"X-API-Key": API_KEY}

    assert client.post(ENDPOINT, json=valid_payload, headers=headers).status_code == 201
    response = client.post(ENDPOINT, json=valid_payload, headers=headers)

    assert response.status_code == 429
    body = response.json()
    assert body["error"] == "RATE_LIMIT_EXCEEDED"
    assert body["retry_after_seconds"] == 3600
    assert response.headers["Retry-After"] == "3600"


def test_internal_error_leaks_nothing(client, store, valid_payload, monkeypatch) -> None:
    def fail(lead, consent):
        raise RuntimeError("password=hunter2 at db-internal:5432")

    monkeypatch.setattr(store, "persist_submission", fail)

    response = client.post(ENDPOINT, json=valid_payload, headers={"X-API-Key": API_KEY})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "INTERNAL_ERROR"
    assert "hunter2" not in response.text


def test_unexpected_exception_is_internal_error(client, store, valid_payload, monkeypatch) -> None:
    def fail(api_key_hash):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(store, "get_partner_by_key_hash", fail)

    response = client.post(ENDPOINT, json=valid_payload, headers={"X-API-Key": API_KEY})

    assert response.status_code == 500
    assert response.json()["error"] == "INTERNAL_ERROR"
    assert "connection reset" not in response.text

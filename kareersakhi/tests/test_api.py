"""
HTTP surface tests (FastAPI TestClient against an app wired with fakes).
"""
import io
from unittest.mock import Mock

import pytest
from fastapi import UploadFile
from fastapi.testclient import TestClient

from kareersakhi.api.deps import read_upload
from kareersakhi.features.billing.provider import LocalPaymentProvider, PaymentCallbackError
from kareersakhi.features.entitlements.storage import InMemoryStorage
from kareersakhi.features.intake.validator import BYTES_PER_MB, IntakeConstraints, validate
from kareersakhi.main import create_app
from kareersakhi.models.billing import PaymentOutcome, ProviderCallback

PDF = ("resume.pdf", b"%PDF-1.4 resume body", "application/pdf")


@pytest.fixture
def build_client(reset_db, fake_service):
    def _build(provider=None, service=None):
        app = create_app(
            storage=InMemoryStorage(),
            provider=provider or LocalPaymentProvider(),
            analysis_service=service or fake_service,
            analysis_timeout=1,
        )
        return TestClient(app)
    return _build


@pytest.fixture
def client(build_client):
    return build_client()


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_readyz_reports_tables(client):
    resp = client.get("/readyz")
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["db"]["tables_missing"] == []


def test_request_id_echoed(client):
    resp = client.get("/healthz", headers={"x-request-id": "req-123"})
    assert resp.headers["x-request-id"] == "req-123"


def test_intake_accepts_pdf(client):
    resp = client.post("/api/intake/validate", files={"file": PDF})
    assert resp.status_code == 200
    assert resp.json()["accepted"] is True


def test_intake_rejection_is_inline(client):
    resp = client.post("/api/intake/validate", files={"file": ("photo.png", b"\x89PNG", "image/png")})
    assert resp.status_code == 200
    body = resp.json()
    assert body["accepted"] is False
    assert body["reason"] == "unsupported type"
    assert body["allowed"] == ["doc", "docx", "pdf"]


def test_entitlements_defaults(client):
    body = client.get("/api/entitlements").json()
    assert body["current_tier"] == "free"
    assert body["reviews_remaining"] == 1
    assert body["can_perform_analysis"] is True


def test_resume_analysis_consumes_single_free_review(client, fake_service):
    first = client.post("/api/analysis/resume", files={"file": PDF})
    assert first.status_code == 200
    body = first.json()
    assert body["result"]["overall"] == 78
    assert body["projection"]["overall"]["color_band"] == "mid"
    assert body["entitlements"]["reviews_remaining"] == 0

    second = client.post("/api/analysis/resume", files={"file": PDF})
    assert second.status_code == 403
    error = second.json()["error"]
    assert error["code"] == "quota_exceeded"
    assert error["details"]["upgrade_url"] == "/pricing"
    assert "request_id" in error
    assert fake_service.calls == ["score_resume"]


def test_analysis_rejects_bad_upload_before_gate(client, fake_service):
    resp = client.post("/api/analysis/resume", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "unsupported_file"
    assert fake_service.calls == []


def test_analysis_rejects_oversize_upload(client):
    big = b"0" * (5 * BYTES_PER_MB + 1)
    resp = client.post("/api/analysis/resume", files={"file": ("resume.pdf", big, "application/pdf")})
    assert resp.status_code == 413
    assert resp.json()["error"]["details"]["reason"] == "file too large"


def test_analysis_failure_is_503_and_keeps_quota(build_client, make_service):
    from kareersakhi.core.errors import AnalysisUnavailableError

    client = build_client(service=make_service(error=AnalysisUnavailableError("down")))
    resp = client.post("/api/analysis/resume", files={"file": PDF})

    assert resp.status_code == 503
    assert resp.json()["error"]["details"]["retryable"] is True
    assert client.get("/api/entitlements").json()["reviews_remaining"] == 1


def test_match_requires_job_description(client):
    resp = client.post("/api/analysis/match", files={"file": PDF}, data={"job_description": "   "})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"


def test_match_returns_projection(client):
    resp = client.post("/api/analysis/match", files={"file": PDF}, data={"job_description": "React developer"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["result"]["missingKeywords"] == ["docker", "kubernetes"]
    assert body["projection"]["overall_match"]["clamped"] == 72


def test_cover_letter_route(client):
    resp = client.post(
        "/api/analysis/cover-letter",
        files={"file": PDF},
        data={"job_title": "Engineer", "company": "Acme", "tone": "enthusiastic"},
    )
    assert resp.status_code == 200
    assert "Acme" in resp.json()["result"]["coverLetter"]


def test_interview_questions_invalid_level(client):
    resp = client.post(
        "/api/analysis/interview-questions",
        files={"file": PDF},
        data={"job_title": "Engineer", "experience_level": "guru"},
    )
    assert resp.status_code == 400


def test_paid_tier_cannot_be_self_assigned(client):
    resp = client.post("/api/entitlements/tier", json={"tier": "professional"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "payment_required"

    resp = client.post("/api/entitlements/tier", json={"tier": "free"})
    assert resp.status_code == 200


def test_plans_listed(client):
    body = client.get("/api/billing/plans").json()
    assert body["enabled"] is False
    prices = {p["tier"]: p["price"] for p in body["plans"]}
    assert prices == {"free": 0, "premium": 499, "professional": 1499}


def test_create_order_returns_checkout(client):
    resp = client.post("/api/billing/orders", json={"tier": "premium"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["checkout"]["amount"] == 49900
    assert body["checkout"]["order_id"] == body["order"]["order_id"]
    assert body["order"]["status"] == "created"


def test_create_order_free_tier_rejected(client):
    resp = client.post("/api/billing/orders", json={"tier": "free"})
    assert resp.status_code == 400


def test_callback_without_gateway_is_503(client):
    resp = client.post("/api/billing/callback", json={"razorpay_order_id": "order_x"})
    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "billing_disabled"


def test_callback_upgrades_once(build_client):
    provider = Mock()
    provider.key_id = "rzp_test_key"
    provider.create_order.return_value = "order_api1"
    provider.parse_callback.return_value = ProviderCallback(
        order_id="order_api1", outcome=PaymentOutcome.CONFIRMED, payment_id="pay_1"
    )
    client = build_client(provider=provider)

    checkout = client.post("/api/billing/orders", json={"tier": "professional"}).json()["checkout"]
    assert checkout["key"] == "rzp_test_key"

    first = client.post("/api/billing/callback", json={"razorpay_signature": "sig"})
    second = client.post("/api/billing/callback", json={"razorpay_signature": "sig"})

    assert first.json()["status"] == "applied"
    assert second.json()["status"] == "duplicate"
    state = client.get("/api/entitlements").json()
    assert state["current_tier"] == "professional"
    assert state["expiry_date"] is not None


def test_forged_callback_rejected(build_client):
    provider = Mock()
    provider.create_order.return_value = "order_api2"
    provider.parse_callback.side_effect = PaymentCallbackError("Invalid payment signature")
    client = build_client(provider=provider)

    resp = client.post("/api/billing/callback", json={"razorpay_signature": "forged"})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_payment_callback"
    assert client.get("/api/entitlements").json()["current_tier"] == "free"


def test_unknown_route_uses_error_shape(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"


@pytest.mark.asyncio
async def test_oversize_upload_read_is_bounded():
    limit = 1024
    stream = io.BytesIO(b"0" * (limit * 50))
    upload = UploadFile(file=stream, filename="resume.pdf")
    constraints = IntakeConstraints.from_accept(".pdf", limit / BYTES_PER_MB)

    artifact = await read_upload(upload, constraints.max_bytes)

    assert stream.tell() == limit + 1
    assert len(artifact.content) == limit + 1
    assert validate(artifact, constraints).reason == "file too large"


@pytest.mark.asyncio
async def test_declared_size_used_when_larger_than_bounded_read():
    upload = UploadFile(file=io.BytesIO(b"%PDF"), filename="resume.pdf", size=10 * BYTES_PER_MB)

    artifact = await read_upload(upload, 5 * BYTES_PER_MB)

    assert artifact.byte_size == 10 * BYTES_PER_MB

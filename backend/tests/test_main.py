from __future__ import annotations

from fastapi.testclient import TestClient

import main
from main import app
from reporting.agreement_builder import PdfRenderError
from s3_client import StorageConfigError, UploadResult


def test_health():
    client = TestClient(app)
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert "version" in r.json()
    assert r.headers.get("X-Request-Id")


def test_quote_returns_breakdown(sample_payload):
    client = TestClient(app)
    r = client.post("/agreement/quote", json=sample_payload)
    assert r.status_code == 200
    data = r.json()
    assert abs(data["subtotal"] - 41612) < 1e-6
    assert abs(data["grand_total"] - 37450.8) < 1e-6
    assert abs(data["contract_total"] - 74901.6) < 1e-6
    assert data["selected_count"] == 6
    assert data["discount_pct"] == 10
    assert data["incentive_tier"] == "PREMIUM"
    assert [c["service_type"] for c in data["categories"]][0] == "chute_cleaning"


def test_quote_accepts_empty_body():
    client = TestClient(app)
    r = client.post("/agreement/quote", json={})
    assert r.status_code == 200
    assert r.json()["grand_total"] == 0


def test_quote_rejects_non_object_body():
    client = TestClient(app)
    r = client.post("/agreement/quote", json=["not", "an", "object"])
    assert r.status_code == 422


def test_preview_returns_filled_html(sample_payload):
    client = TestClient(app)
    r = client.post("/agreement/preview", json=sample_payload)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert "Harbour Strata Pty Ltd" in r.text
    assert "$74,901.60" in r.text


def test_pdf_endpoint_streams_attachment(monkeypatch, sample_payload):
    monkeypatch.setattr(main, "build_agreement_pdf", lambda req, today="": b"%PDF-fake")
    client = TestClient(app)
    r = client.post("/agreement/pdf", json=sample_payload)
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/pdf"
    assert 'filename="Harbour-Strata-Pty-Ltd-agreement.pdf"' in r.headers["content-disposition"]
    assert r.content == b"%PDF-fake"


def test_pdf_endpoint_default_filename(monkeypatch):
    monkeypatch.setattr(main, "build_agreement_pdf", lambda req, today="": b"%PDF-fake")
    client = TestClient(app)
    r = client.post("/agreement/pdf", json={"companyName": "  "})
    assert 'filename="service-agreement.pdf"' in r.headers["content-disposition"]


def test_pdf_endpoint_503_when_renderer_unavailable(monkeypatch, sample_payload):
    def boom(req, today=""):
        raise PdfRenderError("chromium missing")

    monkeypatch.setattr(main, "build_agreement_pdf", boom)
    client = TestClient(app)
    r = client.post("/agreement/pdf", json=sample_payload)
    assert r.status_code == 503
    assert "/agreement/preview" in r.json()["detail"]


def test_export_uploads_and_returns_url(monkeypatch, sample_payload):
    uploaded = {}

    def fake_upload(pdf_bytes):
        uploaded["bytes"] = pdf_bytes
        return UploadResult(
            bucket="agreements",
            key="Service-Agreement-2025-10-23T01-02-03-456Z.pdf",
            region="ap-southeast-2",
            presigned_url="https://example.invalid/signed",
            expires_in=900,
        )

    monkeypatch.setattr(main, "build_agreement_pdf", lambda req, today="": b"%PDF-fake")
    monkeypatch.setattr(main, "upload_pdf_and_get_url", fake_upload)
    client = TestClient(app)
    r = client.post("/agreement/export", json=sample_payload)
    assert r.status_code == 200
    assert r.json() == {
        "bucket": "agreements",
        "key": "Service-Agreement-2025-10-23T01-02-03-456Z.pdf",
        "region": "ap-southeast-2",
        "url": "https://example.invalid/signed",
        "expires_in": 900,
    }
    assert uploaded["bytes"] == b"%PDF-fake"


def test_export_500_when_storage_not_configured(monkeypatch, sample_payload):
    def no_storage(pdf_bytes):
        raise StorageConfigError("Missing required config: AWS_REGION and S3_BUCKET must be set.")

    monkeypatch.setattr(main, "build_agreement_pdf", lambda req, today="": b"%PDF-fake")
    monkeypatch.setattr(main, "upload_pdf_and_get_url", no_storage)
    client = TestClient(app)
    r = client.post("/agreement/export", json=sample_payload)
    assert r.status_code == 500
    assert r.json()["detail"].startswith("Storage is not configured")


def test_health_pdf_ready(monkeypatch):
    monkeypatch.setattr(main, "check_pdf_runtime", lambda: None)
    client = TestClient(app)
    r = client.get("/health/pdf")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "pdf_runtime": "ready"}


def test_health_pdf_503_when_chromium_missing(monkeypatch):
    def missing():
        raise PdfRenderError("Chromium unavailable: Executable doesn't exist")

    monkeypatch.setattr(main, "check_pdf_runtime", missing)
    client = TestClient(app)
    r = client.get("/health/pdf")
    assert r.status_code == 503
    assert "Chromium unavailable" in r.json()["detail"]


def test_request_id_reused_from_caller():
    client = TestClient(app)
    assert client.get("/health", headers={"X-Request-Id": "quote-42"}).headers["X-Request-Id"] == "quote-42"
    generated = client.get("/health", headers={"X-Request-Id": "not/valid!"}).headers["X-Request-Id"]
    assert generated != "not/valid!"
    assert len(generated) == 8

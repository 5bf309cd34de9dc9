from __future__ import annotations

import logging
import os
import re
import time
import uuid
from pathlib import Path

from dotenv import load_dotenv

# Load .env from backend directory so AWS_* and S3_* settings are available
load_dotenv(Path(__file__).resolve().parent / ".env")

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response

from models import AgreementRequest, ExportResponse, PricingBreakdown
from reporting.agreement_builder import (
    PdfRenderError,
    build_agreement_html,
    build_agreement_pdf,
    check_pdf_runtime,
    price_request,
)
from s3_client import StorageConfigError, upload_pdf_and_get_url
from services.normalizer import today_au

_LOG = logging.getLogger("uvicorn.error")

# Version for /health (Render sets RENDER_GIT_COMMIT)
VERSION = (os.environ.get("RENDER_GIT_COMMIT") or "").strip() or "unknown"

app = FastAPI(title="Service Agreement Backend", version="0.1.0")

# CORS: use ALLOWED_ORIGINS env (comma-separated) if set, else local dev origins
_origins_env = os.environ.get("ALLOWED_ORIGINS", "").strip()
if _origins_env:
    ALLOWED_ORIGINS = [o.strip() for o in _origins_env.split(",") if o.strip()]
else:
    ALLOWED_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9-]{1,64}$")


@app.middleware("http")
async def log_agreement_requests(request: Request, call_next):
    """Log one line per request; reuse a caller's X-Request-Id when it looks sane."""
    incoming = request.headers.get("X-Request-Id", "")
    request_id = incoming if _REQUEST_ID_RE.match(incoming) else uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    start = time.perf_counter()
    response = await call_next(request)
    _LOG.info(
        "request_id=%s method=%s path=%s status=%s duration_ms=%.0f",
        request_id,
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - start) * 1000,
    )
    response.headers["X-Request-Id"] = request_id
    return response


@app.on_event("startup")
def startup_log() -> None:
    bucket = os.environ.get("S3_BUCKET") or os.environ.get("S3_BUCKET_NAME", "")
    _LOG.info("Service agreement backend starting (S3 bucket configured: %s) version=%s", bool(bucket), VERSION)
    if not bucket:
        _LOG.warning("S3_BUCKET is not set. /agreement/export will fail until storage is configured.")


@app.get("/health")
def health():
    return {"status": "ok", "version": VERSION}


@app.get("/health/pdf")
def health_pdf():
    """200 only when Chromium launches with the agreement renderer's settings."""
    try:
        check_pdf_runtime()
    except PdfRenderError as e:
        _LOG.warning("PDF runtime check failed: %s", e)
        raise HTTPException(status_code=503, detail=str(e)[:500]) from e
    return {"status": "ok", "pdf_runtime": "ready"}


def _pdf_filename(req: AgreementRequest) -> str:
    """Clean filename from company name or default."""
    name = (req.company_name or "").strip()
    if name:
        name = re.sub(r"[^\w\s-]", "", name)[:50].strip()
        name = re.sub(r"[-\s]+", "-", name)
    name = name or "service"
    return f"{name}-agreement.pdf"


def _render_pdf(req: AgreementRequest) -> bytes:
    try:
        return build_agreement_pdf(req, today=today_au())
    except PdfRenderError as e:
        _LOG.error("Agreement PDF rendering failed: %s", e)
        raise HTTPException(
            status_code=503,
            detail="PDF generation runtime unavailable. Use POST /agreement/preview to get HTML instead.",
        ) from e


@app.post("/agreement/quote", response_model=PricingBreakdown)
def quote_agreement(req: AgreementRequest) -> PricingBreakdown:
    """Annual pricing breakdown, discount and contract total for the request."""
    return price_request(req)


@app.post("/agreement/preview", response_class=HTMLResponse)
def preview_agreement(req: AgreementRequest) -> HTMLResponse:
    """Return the filled agreement as HTML (no Playwright required)."""
    return HTMLResponse(build_agreement_html(req, today=today_au()))


@app.post("/agreement/pdf")
def agreement_pdf(req: AgreementRequest) -> Response:
    """Render the agreement and stream the PDF back as an attachment."""
    pdf_bytes = _render_pdf(req)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{_pdf_filename(req)}"'},
    )


@app.post("/agreement/export", response_model=ExportResponse)
def export_agreement(req: AgreementRequest) -> ExportResponse:
    """Render the agreement, upload it to S3 and return a presigned download URL."""
    pdf_bytes = _render_pdf(req)
    try:
        result = upload_pdf_and_get_url(pdf_bytes)
    except StorageConfigError as e:
        _LOG.error("Agreement upload misconfigured: %s", e)
        raise HTTPException(status_code=500, detail=f"Storage is not configured: {e}") from e
    return ExportResponse(
        bucket=result.bucket,
        key=result.key,
        region=result.region,
        url=result.presigned_url,
        expires_in=result.expires_in,
    )

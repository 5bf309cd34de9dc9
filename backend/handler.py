"""
Serverless entry point: render the agreement in event["data"], upload it and
return the presigned URL. Mirrors POST /agreement/export for Lambda deployments.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# Load .env before s3_client reads its settings
load_dotenv(Path(__file__).resolve().parent / ".env")

from models import AgreementRequest
from reporting.agreement_builder import build_agreement_pdf
from s3_client import upload_pdf_and_get_url
from services.normalizer import today_au

logger = logging.getLogger(__name__)


def handler(event: Any, context: Any = None) -> dict[str, Any]:
    try:
        data = event.get("data") if isinstance(event, dict) else None
        request = AgreementRequest.model_validate(data if isinstance(data, dict) else {})
        pdf_bytes = build_agreement_pdf(request, today=today_au())
        result = upload_pdf_and_get_url(pdf_bytes)
        return {"statusCode": 200, "result": result.presigned_url}
    except Exception:
        logger.exception("PDF generation/upload error")
        return {
            "statusCode": 500,
            "body": json.dumps({"message": "Internal Server Error"}),
        }

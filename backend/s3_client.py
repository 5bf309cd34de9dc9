"""
S3 storage for rendered agreement PDFs.
Set AWS_REGION, S3_BUCKET (or S3_BUCKET_NAME), AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY.
Optional: AWS_SESSION_TOKEN, PDF_URL_EXPIRES_IN (seconds, default 900).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import boto3

logger = logging.getLogger(__name__)

S3_BUCKET = os.environ.get("S3_BUCKET") or os.environ.get("S3_BUCKET_NAME", "")
AWS_REGION = os.environ.get("AWS_REGION", "")
PDF_URL_EXPIRES_IN = int(os.environ.get("PDF_URL_EXPIRES_IN", "900"))


class StorageConfigError(RuntimeError):
    """Bucket, region or credentials are missing; raised before any S3 call."""


@dataclass(frozen=True)
class UploadResult:
    bucket: str
    key: str
    region: str
    presigned_url: str
    expires_in: int


def agreement_key(now: datetime | None = None) -> str:
    """Service-Agreement-<UTC ISO timestamp with ':' and '.' replaced by '-'>.pdf"""
    stamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    iso = stamp.strftime("%Y-%m-%dT%H:%M:%S.") + f"{stamp.microsecond // 1000:03d}Z"
    return f"Service-Agreement-{iso.replace(':', '-').replace('.', '-')}.pdf"


def _credentials() -> dict[str, str]:
    access_key = os.environ.get("AWS_ACCESS_KEY_ID", "")
    secret_key = os.environ.get("AWS_SECRET_ACCESS_KEY", "")
    if not access_key or not secret_key:
        raise StorageConfigError("Missing AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY in environment.")
    creds = {"aws_access_key_id": access_key, "aws_secret_access_key": secret_key}
    session_token = os.environ.get("AWS_SESSION_TOKEN")
    if session_token:
        creds["aws_session_token"] = session_token
    return creds


def _client(region: str):
    return boto3.client("s3", region_name=region, **_credentials())


def upload_pdf_and_get_url(
    pdf_bytes: bytes,
    bucket: str | None = None,
    region: str | None = None,
    expires_in: int | None = None,
    client: Any = None,
    key: str | None = None,
) -> UploadResult:
    """
    Store the PDF and return a time-limited GET URL.
    Configuration problems raise StorageConfigError up front; S3 errors propagate.
    """
    bucket = bucket or S3_BUCKET
    region = region or AWS_REGION
    expires_in = PDF_URL_EXPIRES_IN if expires_in is None else expires_in
    if not region or not bucket:
        raise StorageConfigError("Missing required config: AWS_REGION and S3_BUCKET must be set.")
    if client is None:
        client = _client(region)

    key = key or agreement_key()
    client.put_object(Bucket=bucket, Key=key, Body=pdf_bytes, ContentType="application/pdf")
    logger.info("Uploaded agreement PDF to s3://%s/%s (%d bytes)", bucket, key, len(pdf_bytes))
    url = client.generate_presigned_url(
        "get_object", Params={"Bucket": bucket, "Key": key}, ExpiresIn=expires_in
    )
    return UploadResult(bucket=bucket, key=key, region=region, presigned_url=url, expires_in=expires_in)

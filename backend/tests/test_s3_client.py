from __future__ import annotations

from datetime import datetime, timezone

import pytest

import s3_client
from s3_client import StorageConfigError, agreement_key, upload_pdf_and_get_url


class FakeS3:
    def __init__(self):
        self.put_calls = []
        self.presign_calls = []

    def put_object(self, **kwargs):
        self.put_calls.append(kwargs)
        return {"ETag": '"abc"'}

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        self.presign_calls.append((operation, Params, ExpiresIn))
        return f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}?X-Amz-Expires={ExpiresIn}"


def test_agreement_key_format():
    now = datetime(2025, 10, 23, 1, 2, 3, 456789, tzinfo=timezone.utc)
    assert agreement_key(now) == "Service-Agreement-2025-10-23T01-02-03-456Z.pdf"


def test_agreement_key_converts_to_utc():
    from zoneinfo import ZoneInfo

    local = datetime(2025, 10, 23, 12, 0, 0, tzinfo=ZoneInfo("Australia/Sydney"))
    assert agreement_key(local) == "Service-Agreement-2025-10-23T01-00-00-000Z.pdf"


def test_upload_puts_pdf_and_presigns():
    client = FakeS3()
    result = upload_pdf_and_get_url(
        b"%PDF-1.7", bucket="agreements", region="ap-southeast-2", expires_in=600, client=client, key="k.pdf"
    )
    (put,) = client.put_calls
    assert put == {"Bucket": "agreements", "Key": "k.pdf", "Body": b"%PDF-1.7", "ContentType": "application/pdf"}
    assert client.presign_calls == [("get_object", {"Bucket": "agreements", "Key": "k.pdf"}, 600)]
    assert result.bucket == "agreements"
    assert result.region == "ap-southeast-2"
    assert result.expires_in == 600
    assert result.presigned_url.startswith("https://agreements.s3.amazonaws.com/k.pdf")


def test_upload_generates_key_and_uses_module_defaults(monkeypatch):
    monkeypatch.setattr(s3_client, "S3_BUCKET", "default-bucket")
    monkeypatch.setattr(s3_client, "AWS_REGION", "ap-southeast-2")
    monkeypatch.setattr(s3_client, "PDF_URL_EXPIRES_IN", 900)
    client = FakeS3()
    result = upload_pdf_and_get_url(b"pdf", client=client)
    assert result.bucket == "default-bucket"
    assert result.expires_in == 900
    assert result.key.startswith("Service-Agreement-")
    assert result.key.endswith("Z.pdf")


@pytest.mark.parametrize("bucket, region", [("", "ap-southeast-2"), ("agreements", "")])
def test_upload_requires_bucket_and_region(monkeypatch, bucket, region):
    monkeypatch.setattr(s3_client, "S3_BUCKET", "")
    monkeypatch.setattr(s3_client, "AWS_REGION", "")
    client = FakeS3()
    with pytest.raises(StorageConfigError):
        upload_pdf_and_get_url(b"pdf", bucket=bucket, region=region, client=client)
    assert client.put_calls == []


def test_upload_requires_credentials_without_client(monkeypatch):
    monkeypatch.delenv("AWS_ACCESS_KEY_ID", raising=False)
    monkeypatch.delenv("AWS_SECRET_ACCESS_KEY", raising=False)
    with pytest.raises(StorageConfigError):
        upload_pdf_and_get_url(b"pdf", bucket="agreements", region="ap-southeast-2")


def test_credentials_include_session_token(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIA")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "token")
    creds = s3_client._credentials()
    assert creds == {"aws_access_key_id": "AKIA", "aws_secret_access_key": "secret", "aws_session_token": "token"}


def test_s3_errors_propagate():
    class FailingS3(FakeS3):
        def put_object(self, **kwargs):
            raise RuntimeError("AccessDenied")

    with pytest.raises(RuntimeError, match="AccessDenied"):
        upload_pdf_and_get_url(b"pdf", bucket="b", region="r", client=FailingS3())

import base64
import json

import pytest

import ingest_app.handler as ingest
from ingest_app.config import get_ingest_settings

JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 32


class RecordingS3:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def put_object(self, **kwargs):
        if self.error is not None:
            raise self.error
        self.calls.append(kwargs)
        return {}


@pytest.fixture
def s3(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "s3cret")
    monkeypatch.setenv("BUCKET_NAME", "camera-bucket")
    get_ingest_settings.cache_clear()
    fake = RecordingS3()
    monkeypatch.setattr(ingest, "get_s3_client", lambda: fake)
    yield fake
    get_ingest_settings.cache_clear()


def _event(body, token="s3cret", **extra):
    headers = {"authorization": f"Bearer {token}"} if token is not None else {}
    headers.update(extra.pop("headers", {}))
    return {"headers": headers, "body": body, **extra}


def _json_body(data: bytes) -> str:
    return json.dumps({"image": base64.b64encode(data).decode()})


def test_stores_decoded_image(s3):
    resp = ingest.handler(_event(_json_body(JPEG)))

    assert resp["statusCode"] == 200
    body = json.loads(resp["body"])
    assert body["success"] is True
    assert body["key"].startswith("photos/") and body["key"].endswith(".jpg")

    call = s3.calls[0]
    assert call["Bucket"] == "camera-bucket"
    assert call["Key"] == body["key"]
    assert call["Body"] == JPEG
    assert call["ContentType"] == "image/jpeg"


@pytest.mark.parametrize("token", [None, "wrong", "s3cret "])
def test_rejects_bad_token(s3, token):
    resp = ingest.handler(_event(_json_body(JPEG), token=token))
    assert resp == {"statusCode": 401, "body": "Unauthorized"}
    assert s3.calls == []


def test_unset_secret_rejects_everything(s3, monkeypatch):
    monkeypatch.delenv("SECRET_KEY")
    get_ingest_settings.cache_clear()

    resp = ingest.handler(_event(_json_body(JPEG), token=""))
    assert resp["statusCode"] == 401
    assert s3.calls == []


@pytest.mark.parametrize(
    "body",
    [json.dumps({}), json.dumps({"image": ""}), "", "not json", json.dumps({"image": "***"})],
)
def test_rejects_missing_or_malformed_image(s3, body):
    resp = ingest.handler(_event(body))
    assert resp["statusCode"] == 400
    assert s3.calls == []


def test_raw_image_body(s3):
    event = _event(
        base64.b64encode(JPEG).decode(),
        isBase64Encoded=True,
        headers={"Content-Type": "image/jpeg"},
    )
    resp = ingest.handler(event)

    assert resp["statusCode"] == 200
    assert s3.calls[0]["Body"] == JPEG


def test_base64_encoded_json_body(s3):
    event = _event(base64.b64encode(_json_body(JPEG).encode()).decode(), isBase64Encoded=True)
    assert ingest.handler(event)["statusCode"] == 200


def test_storage_failure_is_500(s3):
    s3.error = RuntimeError("bucket gone")

    resp = ingest.handler(_event(_json_body(JPEG)))

    assert resp["statusCode"] == 500
    assert json.loads(resp["body"]) == {"error": "bucket gone"}


def test_build_key_uses_milliseconds():
    settings = get_ingest_settings()
    assert ingest.build_key(settings, now_ms=1700000000123) == "photos/1700000000123.jpg"

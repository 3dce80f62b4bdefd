from datetime import datetime, timezone

import pytest
from botocore.exceptions import ClientError

from infrastructure.external.storage import (
    ConfigurationError,
    NotFoundError,
    PermissionDeniedError,
    PhotoFile,
    StorageConfig,
    StorageError,
    StorageType,
    StorageValidationError,
)
from infrastructure.external.storage.providers.s3 import S3PhotoStorage, build_s3_provider

JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 32


def _client_error(code: str, operation: str = "ListObjectsV2") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeS3Client:
    def __init__(self, fail_with=None):
        self.objects = {}
        self.put_calls = []
        self.fail_with = fail_with

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    def put_object(self, **kwargs):
        self._maybe_fail()
        self.put_calls.append(kwargs)
        self.objects[kwargs["Key"]] = kwargs["Body"]
        return {}

    def list_objects_v2(self, Bucket, Prefix, MaxKeys):
        self._maybe_fail()
        keys = sorted(k for k in self.objects if k.startswith(Prefix))[:MaxKeys]
        return {
            "Contents": [
                {
                    "Key": k,
                    "Size": len(self.objects[k]),
                    "LastModified": datetime(2024, 1, 1, tzinfo=timezone.utc),
                }
                for k in keys
            ]
        }

    def delete_object(self, Bucket, Key):
        self._maybe_fail()
        self.objects.pop(Key, None)
        return {}

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):
        self._maybe_fail()
        return f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}?X-Amz-Expires={ExpiresIn}"

    def head_bucket(self, Bucket):
        self._maybe_fail()
        return {}


def _config(**overrides):
    values = {"type": StorageType.S3, "bucket": "photos-bucket", "region": "eu-west-1"}
    values.update(overrides)
    return StorageConfig(**values)


@pytest.mark.asyncio
async def test_upload_puts_object_with_content_type_and_acl():
    client = FakeS3Client()
    storage = S3PhotoStorage(client, _config())

    result = await storage.upload_photo(PhotoFile(content=JPEG, mime_type="image/jpeg", original_name="a.jpg"))

    assert result.success
    call = client.put_calls[0]
    assert call["Bucket"] == "photos-bucket"
    assert call["Key"] == result.key
    assert call["ContentType"] == "image/jpeg"
    assert call["ACL"] == "public-read"
    assert result.url == f"https://photos-bucket.s3.eu-west-1.amazonaws.com/{result.key}"


@pytest.mark.asyncio
async def test_upload_rejected_type_never_reaches_s3():
    client = FakeS3Client()
    storage = S3PhotoStorage(client, _config())

    result = await storage.upload_photo(PhotoFile(content=b"%PDF", mime_type="application/pdf"))

    assert not result.success
    assert client.put_calls == []


@pytest.mark.asyncio
async def test_upload_failure_is_reported_not_raised():
    storage = S3PhotoStorage(FakeS3Client(fail_with=_client_error("AccessDenied", "PutObject")), _config())

    result = await storage.upload_photo(PhotoFile(content=JPEG, mime_type="image/jpeg"))

    assert not result.success
    assert "AccessDenied" in result.error


@pytest.mark.asyncio
async def test_list_uses_public_base_url():
    client = FakeS3Client()
    client.objects = {"photos/a.jpg": JPEG, "photos/b.jpg": JPEG, "misc/c.jpg": JPEG}
    storage = S3PhotoStorage(client, _config(public_base_url="https://cdn.example.com/"))

    listed = await storage.list_photos(prefix="photos/", max_keys=1)

    assert [o.key for o in listed] == ["photos/a.jpg"]
    assert listed[0].url == "https://cdn.example.com/photos/a.jpg"
    assert listed[0].size == len(JPEG)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "code, expected",
    [
        ("NoSuchBucket", NotFoundError),
        ("AccessDenied", PermissionDeniedError),
        ("InternalError", StorageError),
    ],
)
async def test_list_errors_are_mapped(code, expected):
    storage = S3PhotoStorage(FakeS3Client(fail_with=_client_error(code)), _config())

    with pytest.raises(expected):
        await storage.list_photos()


@pytest.mark.asyncio
async def test_delete_reports_failure():
    storage = S3PhotoStorage(FakeS3Client(fail_with=_client_error("AccessDenied", "DeleteObject")), _config())

    result = await storage.delete_photo("photos/a.jpg")

    assert not result.success
    assert result.error


@pytest.mark.asyncio
async def test_presigned_put_url():
    storage = S3PhotoStorage(FakeS3Client(), _config())

    presigned = await storage.get_presigned_upload_url("snap.png", "image/png", 900)

    assert presigned.key.startswith("photos/") and presigned.key.endswith(".png")
    assert presigned.key in presigned.url
    assert "X-Amz-Expires=900" in presigned.url

    with pytest.raises(StorageValidationError):
        await storage.get_presigned_upload_url("snap.bmp", "image/bmp")


@pytest.mark.asyncio
async def test_build_s3_provider_requires_bucket():
    with pytest.raises(ConfigurationError):
        await build_s3_provider(_config(bucket=None))


@pytest.mark.asyncio
async def test_build_s3_provider_fails_when_bucket_unreachable(monkeypatch):
    import infrastructure.external.storage.providers.s3 as s3_mod

    monkeypatch.setattr(
        s3_mod, "build_s3_client", lambda config: FakeS3Client(fail_with=_client_error("404", "HeadBucket"))
    )

    with pytest.raises(ConfigurationError):
        await build_s3_provider(_config())

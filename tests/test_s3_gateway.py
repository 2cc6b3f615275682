"""Tests for the S3 storage gateway using botocore's Stubber.

No network access: every S3 call is answered by a queued stub response.
"""

from __future__ import annotations

import io
from typing import Any

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from storegate.storage.config import StorageConfig
from storegate.storage.errors import (
    BucketNotFoundError,
    ObjectNotFoundError,
    StorageBackendError,
)
from storegate.storage.s3_gateway import S3StorageGateway, build_s3_client

BUCKET = "shared-storage"
KEY = "acme/dev/docs/report.pdf"


@pytest.fixture
def s3_client() -> Any:
    """A real botocore S3 client that is only ever stubbed."""
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(s3_client: Any) -> Any:
    with Stubber(s3_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def gateway(s3_client: Any) -> S3StorageGateway:
    return S3StorageGateway(s3_client)


def _streaming_body(data: bytes) -> StreamingBody:
    return StreamingBody(io.BytesIO(data), len(data))


class TestBuckets:
    """Tests for bucket existence and creation."""

    def test_bucket_exists(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        stubber.add_response("head_bucket", {}, {"Bucket": BUCKET})
        assert gateway.bucket_exists(BUCKET) is True

    @pytest.mark.parametrize("code", ["404", "NoSuchBucket"])
    def test_bucket_missing(self, gateway: S3StorageGateway, stubber: Stubber, code: str) -> None:
        stubber.add_client_error(
            "head_bucket", service_error_code=code, http_status_code=404
        )
        assert gateway.bucket_exists(BUCKET) is False

    def test_bucket_exists_forbidden_is_backend_error(
        self, gateway: S3StorageGateway, stubber: Stubber
    ) -> None:
        stubber.add_client_error("head_bucket", service_error_code="403", http_status_code=403)
        with pytest.raises(StorageBackendError):
            gateway.bucket_exists(BUCKET)

    def test_create_bucket_us_east_1(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        """us-east-1 must not send a LocationConstraint."""
        stubber.add_response("create_bucket", {}, {"Bucket": BUCKET})
        gateway.create_bucket(BUCKET)

    def test_create_bucket_other_region(self, s3_client: Any, stubber: Stubber) -> None:
        gateway = S3StorageGateway(s3_client, region="eu-west-1")
        stubber.add_response(
            "create_bucket",
            {},
            {
                "Bucket": BUCKET,
                "CreateBucketConfiguration": {"LocationConstraint": "eu-west-1"},
            },
        )
        gateway.create_bucket(BUCKET)

    @pytest.mark.parametrize("code", ["BucketAlreadyOwnedByYou", "BucketAlreadyExists"])
    def test_create_bucket_race_is_success(
        self, gateway: S3StorageGateway, stubber: Stubber, code: str
    ) -> None:
        """Losing a creation race to another caller is not an error."""
        stubber.add_client_error("create_bucket", service_error_code=code, http_status_code=409)
        gateway.create_bucket(BUCKET)

    def test_create_bucket_failure_wrapped(
        self, gateway: S3StorageGateway, stubber: Stubber
    ) -> None:
        stubber.add_client_error(
            "create_bucket", service_error_code="AccessDenied", http_status_code=403
        )
        with pytest.raises(StorageBackendError) as exc_info:
            gateway.create_bucket(BUCKET)
        assert exc_info.value.bucket == BUCKET
        assert exc_info.value.cause is not None


class TestObjects:
    """Tests for object operations."""

    def test_put_sends_content_type(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        stubber.add_response(
            "put_object",
            {},
            {"Bucket": BUCKET, "Key": KEY, "Body": b"%PDF", "ContentType": "application/pdf"},
        )
        gateway.put(BUCKET, KEY, b"%PDF", content_type="application/pdf")

    def test_put_default_content_type(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        stubber.add_response(
            "put_object",
            {},
            {
                "Bucket": BUCKET,
                "Key": KEY,
                "Body": b"x",
                "ContentType": "application/octet-stream",
            },
        )
        gateway.put(BUCKET, KEY, b"x")

    def test_put_missing_bucket(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        stubber.add_client_error(
            "put_object", service_error_code="NoSuchBucket", http_status_code=404
        )
        with pytest.raises(BucketNotFoundError):
            gateway.put(BUCKET, KEY, b"x")

    def test_get(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        stubber.add_response(
            "get_object",
            {"Body": _streaming_body(b"content"), "ContentType": "text/plain"},
            {"Bucket": BUCKET, "Key": KEY},
        )

        result = gateway.get(BUCKET, KEY)

        assert result.body == b"content"
        assert result.content_type == "text/plain"
        assert result.location.key == KEY

    def test_get_missing_object(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
        with pytest.raises(ObjectNotFoundError):
            gateway.get(BUCKET, KEY)

    def test_get_missing_bucket(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        stubber.add_client_error(
            "get_object", service_error_code="NoSuchBucket", http_status_code=404
        )
        with pytest.raises(BucketNotFoundError):
            gateway.get(BUCKET, KEY)

    def test_get_other_error_wrapped(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        stubber.add_client_error(
            "get_object", service_error_code="AccessDenied", http_status_code=403
        )
        with pytest.raises(StorageBackendError) as exc_info:
            gateway.get(BUCKET, KEY)
        assert "AccessDenied" in exc_info.value.message

    def test_object_exists(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        stubber.add_response("head_object", {}, {"Bucket": BUCKET, "Key": KEY})
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)

        assert gateway.object_exists(BUCKET, KEY) is True
        assert gateway.object_exists(BUCKET, KEY) is False

    def test_delete(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": KEY})
        gateway.delete(BUCKET, KEY)


class TestListKeys:
    """Tests for paginated listing."""

    def test_follows_pagination_and_skips_markers(
        self, gateway: S3StorageGateway, stubber: Stubber
    ) -> None:
        stubber.add_response(
            "list_objects_v2",
            {
                "IsTruncated": True,
                "NextContinuationToken": "page-2",
                "Contents": [{"Key": "acme/dev/b.txt"}, {"Key": "acme/dev/folder/"}],
            },
            {"Bucket": BUCKET, "Prefix": "acme/dev/"},
        )
        stubber.add_response(
            "list_objects_v2",
            {"IsTruncated": False, "Contents": [{"Key": "acme/dev/a.txt"}]},
            {"Bucket": BUCKET, "Prefix": "acme/dev/", "ContinuationToken": "page-2"},
        )

        assert gateway.list_keys(BUCKET, "acme/dev/") == ["acme/dev/a.txt", "acme/dev/b.txt"]

    def test_empty_bucket(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        stubber.add_response(
            "list_objects_v2", {"IsTruncated": False}, {"Bucket": BUCKET, "Prefix": ""}
        )
        assert gateway.list_keys(BUCKET) == []

    def test_missing_bucket(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        stubber.add_client_error(
            "list_objects_v2", service_error_code="NoSuchBucket", http_status_code=404
        )
        with pytest.raises(BucketNotFoundError):
            gateway.list_keys(BUCKET)


class TestPing:
    """Tests for connectivity checks."""

    def test_ping(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        stubber.add_response("list_buckets", {"Buckets": []})
        gateway.ping()

    def test_ping_failure(self, gateway: S3StorageGateway, stubber: Stubber) -> None:
        stubber.add_client_error(
            "list_buckets", service_error_code="InvalidAccessKeyId", http_status_code=403
        )
        with pytest.raises(StorageBackendError):
            gateway.ping()


class TestClientConstruction:
    """Tests for building the boto3 client from configuration."""

    def test_path_style_and_endpoint(self) -> None:
        config = StorageConfig(
            backend="s3",
            endpoint_url="http://localhost:9000",
            region="eu-central-1",
            access_key="minioadmin",
            secret_key="minioadmin",
            path_style_access=True,
        )

        client = build_s3_client(config)

        assert client.meta.endpoint_url == "http://localhost:9000"
        assert client.meta.region_name == "eu-central-1"
        assert client.meta.config.s3 == {"addressing_style": "path"}

    def test_secret_not_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        config = StorageConfig(
            backend="s3", access_key="AKIAEXAMPLEKEY", secret_key="super-secret-value"
        )

        with caplog.at_level("INFO", logger="storegate.storage.s3_gateway"):
            build_s3_client(config)

        assert "super-secret-value" not in caplog.text
        assert "AKIAEXAMPLEKEY" not in caplog.text
        assert "AKIA****" in caplog.text

    def test_from_config_uses_region(self) -> None:
        gateway = S3StorageGateway.from_config(StorageConfig(backend="s3", region="ap-south-1"))
        assert gateway.backend_name == "s3"

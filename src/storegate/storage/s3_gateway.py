"""S3 storage gateway.

Talks to AWS S3 or any S3-compatible store (MinIO, LocalStack) through a
boto3 client. Buckets and keys arrive already resolved and sanitized.

Credentials come from StorageConfig when both keys are set, otherwise from
the default boto3 credential chain. Secrets are never logged.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from storegate.storage.errors import (
    BucketNotFoundError,
    ObjectNotFoundError,
    StorageBackendError,
)
from storegate.storage.gateway import StorageGateway
from storegate.storage.models import ObjectLocation, StoredObject
from storegate.storage.tracing import traced_storage_operation

if TYPE_CHECKING:
    from storegate.storage.config import StorageConfig

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NotFound", "NoSuchKey"})
_NO_BUCKET_CODES = frozenset({"NoSuchBucket"})
_BUCKET_OWNED_CODES = frozenset({"BucketAlreadyOwnedByYou", "BucketAlreadyExists"})

_DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _mask(value: str | None) -> str:
    """Mask a credential for logging, keeping the first 4 characters."""
    if not value:
        return "<default chain>"
    return f"{value[:4]}****"


def build_s3_client(config: StorageConfig) -> Any:
    """Create a boto3 S3 client from storage configuration.

    Args:
        config: Storage configuration.

    Returns:
        A botocore S3 client.
    """
    s3_options: dict[str, Any] = {}
    if config.path_style_access:
        s3_options["addressing_style"] = "path"

    client_config = Config(
        region_name=config.region,
        signature_version="s3v4",
        retries={"max_attempts": 3, "mode": "standard"},
        s3=s3_options or None,
    )

    kwargs: dict[str, Any] = {"config": client_config}
    if config.endpoint_url:
        kwargs["endpoint_url"] = config.endpoint_url
    if config.access_key and config.secret_key:
        kwargs["aws_access_key_id"] = config.access_key
        kwargs["aws_secret_access_key"] = config.secret_key

    logger.info(
        "Creating S3 client: region=%s endpoint=%s path_style=%s access_key=%s",
        config.region,
        config.endpoint_url or "<aws>",
        config.path_style_access,
        _mask(config.access_key),
    )
    return boto3.client("s3", **kwargs)


class S3StorageGateway(StorageGateway):
    """S3-backed storage gateway."""

    def __init__(self, client: Any, *, region: str = "us-east-1") -> None:
        """Initialize the gateway.

        Args:
            client: boto3 S3 client (see build_s3_client).
            region: Region used as LocationConstraint when creating buckets.
        """
        self._client = client
        self._region = region

    @classmethod
    def from_config(cls, config: StorageConfig) -> S3StorageGateway:
        """Build a gateway with a client configured from StorageConfig."""
        return cls(build_s3_client(config), region=config.region)

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "s3"

    def _backend_error(
        self,
        action: str,
        error: Exception,
        bucket: str | None = None,
        key: str | None = None,
    ) -> StorageBackendError:
        code = _error_code(error) if isinstance(error, ClientError) else type(error).__name__
        logger.error("S3 %s failed: bucket=%s code=%s", action, bucket, code)
        return StorageBackendError(
            message=f"S3 {action} failed ({code})",
            bucket=bucket,
            key=key,
            cause=error,
        )

    @traced_storage_operation("bucket_exists", keyed=False)
    def bucket_exists(self, bucket: str) -> bool:
        """Check whether a bucket exists via HeadBucket."""
        try:
            self._client.head_bucket(Bucket=bucket)
        except ClientError as e:
            code = _error_code(e)
            if code in _NOT_FOUND_CODES or code in _NO_BUCKET_CODES:
                return False
            raise self._backend_error("head_bucket", e, bucket) from e
        except BotoCoreError as e:
            raise self._backend_error("head_bucket", e, bucket) from e
        return True

    @traced_storage_operation("create_bucket", keyed=False)
    def create_bucket(self, bucket: str) -> None:
        """Create a bucket; an existing bucket is treated as success."""
        kwargs: dict[str, Any] = {"Bucket": bucket}
        # us-east-1 rejects an explicit LocationConstraint
        if self._region and self._region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self._region}

        try:
            self._client.create_bucket(**kwargs)
        except ClientError as e:
            if _error_code(e) in _BUCKET_OWNED_CODES:
                logger.debug("Bucket already exists: %s", bucket)
                return
            raise self._backend_error("create_bucket", e, bucket) from e
        except BotoCoreError as e:
            raise self._backend_error("create_bucket", e, bucket) from e

        logger.info("Created bucket: %s", bucket)

    @traced_storage_operation("object_exists")
    def object_exists(self, bucket: str, key: str) -> bool:
        """Check whether an object exists via HeadObject."""
        try:
            self._client.head_object(Bucket=bucket, Key=key)
        except ClientError as e:
            code = _error_code(e)
            if code in _NO_BUCKET_CODES:
                raise BucketNotFoundError(bucket=bucket) from e
            if code in _NOT_FOUND_CODES:
                return False
            raise self._backend_error("head_object", e, bucket, key) from e
        except BotoCoreError as e:
            raise self._backend_error("head_object", e, bucket, key) from e
        return True

    @traced_storage_operation("put")
    def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
    ) -> None:
        """Upload an object with PutObject."""
        try:
            self._client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type or _DEFAULT_CONTENT_TYPE,
            )
        except ClientError as e:
            if _error_code(e) in _NO_BUCKET_CODES:
                raise BucketNotFoundError(bucket=bucket) from e
            raise self._backend_error("put_object", e, bucket, key) from e
        except BotoCoreError as e:
            raise self._backend_error("put_object", e, bucket, key) from e

        logger.debug("Uploaded object: bucket=%s size=%d", bucket, len(data))

    @traced_storage_operation("get")
    def get(self, bucket: str, key: str) -> StoredObject:
        """Download an object with GetObject."""
        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
            body = response["Body"].read()
        except ClientError as e:
            code = _error_code(e)
            if code in _NO_BUCKET_CODES:
                raise BucketNotFoundError(bucket=bucket) from e
            if code in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(bucket=bucket, key=key) from e
            raise self._backend_error("get_object", e, bucket, key) from e
        except BotoCoreError as e:
            raise self._backend_error("get_object", e, bucket, key) from e

        return StoredObject(
            location=ObjectLocation(bucket=bucket, key=key),
            body=body,
            content_type=response.get("ContentType"),
        )

    @traced_storage_operation("list_keys", keyed=False)
    def list_keys(self, bucket: str, prefix: str = "") -> list[str]:
        """List object keys with ListObjectsV2, following pagination."""
        keys: list[str] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    if not key.endswith("/"):
                        keys.append(key)
        except ClientError as e:
            if _error_code(e) in _NO_BUCKET_CODES:
                raise BucketNotFoundError(bucket=bucket) from e
            raise self._backend_error("list_objects_v2", e, bucket) from e
        except BotoCoreError as e:
            raise self._backend_error("list_objects_v2", e, bucket) from e

        return sorted(keys)

    @traced_storage_operation("delete")
    def delete(self, bucket: str, key: str) -> None:
        """Delete an object; S3 treats a missing key as success."""
        try:
            self._client.delete_object(Bucket=bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _NO_BUCKET_CODES:
                raise BucketNotFoundError(bucket=bucket) from e
            raise self._backend_error("delete_object", e, bucket, key) from e
        except BotoCoreError as e:
            raise self._backend_error("delete_object", e, bucket, key) from e

        logger.debug("Deleted object: bucket=%s", bucket)

    def ping(self) -> None:
        """Verify connectivity with ListBuckets."""
        try:
            self._client.list_buckets()
        except (ClientError, BotoCoreError) as e:
            raise self._backend_error("list_buckets", e) from e

"""Filesystem storage gateway.

Provides local filesystem storage for development and testing with:
- One directory per bucket
- Key-hash object directories, so keys never become filesystem paths
- Atomic writes via temp file + rename

Layout:
    {base_dir}/{bucket}/{key_sha256}/
        content.data    # object bytes
        meta.json       # {"key": ..., "content_type": ...}
"""

from __future__ import annotations

import hashlib
import json
import logging
import shutil
import uuid
from pathlib import Path

from storegate.storage.errors import (
    BucketNotFoundError,
    InvalidBucketNameError,
    ObjectNotFoundError,
    StorageBackendError,
)
from storegate.storage.gateway import StorageGateway
from storegate.storage.models import ObjectLocation, StoredObject, is_valid_bucket_name
from storegate.storage.tracing import traced_storage_operation

logger = logging.getLogger(__name__)

_CONTENT_FILE = "content.data"
_METADATA_FILE = "meta.json"


def _key_dir_name(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


class FilesystemStorageGateway(StorageGateway):
    """Filesystem-based storage gateway."""

    def __init__(self, base_dir: str | Path) -> None:
        """Initialize filesystem storage.

        Args:
            base_dir: Root directory; created on demand.
        """
        self._base_dir = Path(base_dir).resolve()
        logger.debug("FilesystemStorageGateway initialized with base_dir=%s", self._base_dir)

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "filesystem"

    @property
    def base_dir(self) -> Path:
        """Return the base directory path."""
        return self._base_dir

    def _bucket_dir(self, bucket: str) -> Path:
        """Get the directory for a bucket, validating the name."""
        if not is_valid_bucket_name(bucket):
            raise InvalidBucketNameError("Bucket name is not DNS-safe", bucket=bucket or None)
        return self._base_dir / bucket

    def _existing_bucket_dir(self, bucket: str) -> Path:
        bucket_dir = self._bucket_dir(bucket)
        if not bucket_dir.is_dir():
            raise BucketNotFoundError(bucket=bucket)
        return bucket_dir

    def _write_atomic(self, target: Path, data: bytes) -> None:
        """Write a file atomically."""
        tmp_file = target.with_name(f"{target.name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp_file.write_bytes(data)
            tmp_file.replace(target)
        except OSError:
            tmp_file.unlink(missing_ok=True)
            raise

    def _read_metadata(self, obj_dir: Path) -> dict[str, str | None] | None:
        """Read object metadata, None if missing or unreadable."""
        meta_file = obj_dir / _METADATA_FILE
        if not meta_file.exists():
            return None
        try:
            data: dict[str, str | None] = json.loads(meta_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to read metadata %s: %s", meta_file, e)
            return None
        return data

    @traced_storage_operation("bucket_exists", keyed=False)
    def bucket_exists(self, bucket: str) -> bool:
        """Check whether a bucket directory exists."""
        return self._bucket_dir(bucket).is_dir()

    @traced_storage_operation("create_bucket", keyed=False)
    def create_bucket(self, bucket: str) -> None:
        """Create a bucket directory (idempotent)."""
        bucket_dir = self._bucket_dir(bucket)
        try:
            bucket_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to create bucket directory: {e}",
                bucket=bucket,
                cause=e,
            ) from e
        logger.info("Bucket ready: %s", bucket)

    @traced_storage_operation("object_exists")
    def object_exists(self, bucket: str, key: str) -> bool:
        """Check whether an object exists."""
        obj_dir = self._existing_bucket_dir(bucket) / _key_dir_name(key)
        return (obj_dir / _CONTENT_FILE).exists()

    @traced_storage_operation("put")
    def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
    ) -> None:
        """Store an object."""
        obj_dir = self._existing_bucket_dir(bucket) / _key_dir_name(key)
        metadata = {"key": key, "content_type": content_type}

        try:
            obj_dir.mkdir(exist_ok=True)
            self._write_atomic(obj_dir / _CONTENT_FILE, data)
            self._write_atomic(
                obj_dir / _METADATA_FILE,
                json.dumps(metadata, indent=2).encode("utf-8"),
            )
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to write object: {e}",
                bucket=bucket,
                key=key,
                cause=e,
            ) from e

        logger.debug("Stored object: bucket=%s size=%d", bucket, len(data))

    @traced_storage_operation("get")
    def get(self, bucket: str, key: str) -> StoredObject:
        """Retrieve an object."""
        obj_dir = self._existing_bucket_dir(bucket) / _key_dir_name(key)
        content_file = obj_dir / _CONTENT_FILE

        if not content_file.exists():
            raise ObjectNotFoundError(bucket=bucket, key=key)

        try:
            body = content_file.read_bytes()
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to read object: {e}",
                bucket=bucket,
                key=key,
                cause=e,
            ) from e

        metadata = self._read_metadata(obj_dir) or {}
        return StoredObject(
            location=ObjectLocation(bucket=bucket, key=key),
            body=body,
            content_type=metadata.get("content_type"),
        )

    @traced_storage_operation("list_keys", keyed=False)
    def list_keys(self, bucket: str, prefix: str = "") -> list[str]:
        """List object keys in a bucket, sorted."""
        bucket_dir = self._existing_bucket_dir(bucket)
        keys: list[str] = []

        try:
            for obj_dir in bucket_dir.iterdir():
                if not (obj_dir / _CONTENT_FILE).exists():
                    continue
                metadata = self._read_metadata(obj_dir)
                key = metadata.get("key") if metadata else None
                if key and key.startswith(prefix) and not key.endswith("/"):
                    keys.append(key)
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to list bucket: {e}",
                bucket=bucket,
                cause=e,
            ) from e

        return sorted(keys)

    @traced_storage_operation("delete")
    def delete(self, bucket: str, key: str) -> None:
        """Delete an object; deleting a missing object is a no-op."""
        obj_dir = self._existing_bucket_dir(bucket) / _key_dir_name(key)
        if not obj_dir.exists():
            return

        try:
            shutil.rmtree(obj_dir)
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to delete object: {e}",
                bucket=bucket,
                key=key,
                cause=e,
            ) from e
        logger.debug("Deleted object: bucket=%s", bucket)

    def ping(self) -> None:
        """Verify the base directory is usable."""
        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageBackendError(
                message=f"Storage base directory unavailable: {e}",
                cause=e,
            ) from e

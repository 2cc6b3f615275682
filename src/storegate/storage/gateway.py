"""Storage gateway interface definition.

Provides the StorageGateway interface that all object store backends must
implement. Gateways receive already-resolved bucket names and keys; naming
and sanitization happen before a gateway is called.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from storegate.storage.models import StoredObject


class StorageGateway(ABC):
    """Abstract base class for object storage backends.

    Implementations:
    - S3StorageGateway: AWS S3 and S3-compatible stores such as MinIO
    - FilesystemStorageGateway: Local filesystem (dev/test)
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier for observability."""
        ...

    @abstractmethod
    def bucket_exists(self, bucket: str) -> bool:
        """Check whether a bucket exists.

        Raises:
            StorageBackendError: If existence cannot be determined.
        """
        ...

    @abstractmethod
    def create_bucket(self, bucket: str) -> None:
        """Create a bucket.

        Idempotent: a bucket that already exists (including one created
        concurrently by another caller) is not an error.

        Raises:
            StorageBackendError: If the backend cannot create the bucket.
        """
        ...

    @abstractmethod
    def object_exists(self, bucket: str, key: str) -> bool:
        """Check whether an object exists.

        Raises:
            BucketNotFoundError: If the bucket does not exist.
            StorageBackendError: If existence cannot be determined.
        """
        ...

    @abstractmethod
    def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
    ) -> None:
        """Store an object, replacing any existing object at the key.

        Raises:
            BucketNotFoundError: If the bucket does not exist.
            StorageBackendError: If the backend cannot complete the write.
        """
        ...

    @abstractmethod
    def get(self, bucket: str, key: str) -> StoredObject:
        """Retrieve an object.

        Raises:
            BucketNotFoundError: If the bucket does not exist.
            ObjectNotFoundError: If the object does not exist.
            StorageBackendError: If the backend cannot complete the read.
        """
        ...

    @abstractmethod
    def list_keys(self, bucket: str, prefix: str = "") -> list[str]:
        """List object keys in a bucket, sorted.

        Keys ending in "/" (directory markers) are excluded.

        Raises:
            BucketNotFoundError: If the bucket does not exist.
            StorageBackendError: If the backend cannot complete the listing.
        """
        ...

    @abstractmethod
    def delete(self, bucket: str, key: str) -> None:
        """Delete an object.

        Raises:
            BucketNotFoundError: If the bucket does not exist.
            StorageBackendError: If the backend cannot complete the deletion.
        """
        ...

    @abstractmethod
    def ping(self) -> None:
        """Verify the backend is reachable.

        Raises:
            StorageBackendError: If the backend cannot be reached.
        """
        ...

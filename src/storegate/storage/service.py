"""Tenant-aware storage service.

Orchestrates every file operation over a StorageGateway:

    resolve location -> ensure bucket -> duplicate policy -> gateway call

The service is the only place that turns (client, environment, directory,
file name) into gateway calls, so gateways never see unsanitized input.

REJECT enforcement serializes the existence check and the write per
(bucket, key) with an in-process lock. Two processes uploading the same
name concurrently may both succeed; use a backend with conditional writes
if that matters.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import TYPE_CHECKING

from storegate.storage.errors import (
    BucketNotFoundError,
    DuplicateObjectError,
    InvalidBucketNameError,
    ObjectNotFoundError,
    ObjectTooLargeError,
)
from storegate.storage.key_resolver import KeyResolver
from storegate.storage.models import (
    ClientBucketMapping,
    DuplicateFileStrategy,
    Environment,
    ObjectLocation,
    StoredObject,
    UploadResult,
    is_valid_bucket_name,
)

if TYPE_CHECKING:
    import uuid

    from storegate.storage.config import StorageConfig
    from storegate.storage.gateway import StorageGateway

logger = logging.getLogger(__name__)

# Upper bound on VERSION probing; reaching it means something is wrong
MAX_VERSION_PROBES = 10_000


def create_gateway(config: StorageConfig) -> StorageGateway:
    """Build the StorageGateway selected by configuration.

    Args:
        config: Storage configuration.

    Returns:
        A filesystem or S3 gateway.
    """
    if config.backend == "s3":
        from storegate.storage.s3_gateway import S3StorageGateway

        return S3StorageGateway.from_config(config)

    from storegate.storage.filesystem_gateway import FilesystemStorageGateway

    return FilesystemStorageGateway(config.base_dir)


class _KeyLocks:
    """Registry of per-(bucket, key) locks, dropped when no longer held."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, str], tuple[threading.Lock, int]] = {}

    @contextmanager
    def held(self, bucket: str, key: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get((bucket, key), (threading.Lock(), 0))
            self._locks[(bucket, key)] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                remaining = self._locks[(bucket, key)][1] - 1
                if remaining:
                    self._locks[(bucket, key)] = (lock, remaining)
                else:
                    del self._locks[(bucket, key)]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class StorageService:
    """Multi-tenant file operations over a storage gateway."""

    def __init__(
        self,
        config: StorageConfig,
        gateway: StorageGateway,
        *,
        clock: Callable[[], datetime] | None = None,
        uuid_factory: Callable[[], uuid.UUID] | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            config: Storage configuration.
            gateway: Backend that performs the actual I/O.
            clock: Time source for TIMESTAMP_SUFFIX names (tests).
            uuid_factory: Random source for UUID_SUFFIX names (tests).
        """
        self._config = config
        self._gateway = gateway
        self._resolver = KeyResolver(config)
        self._clock = clock
        self._uuid_factory = uuid_factory
        self._key_locks = _KeyLocks()

    @property
    def config(self) -> StorageConfig:
        return self._config

    @property
    def gateway(self) -> StorageGateway:
        return self._gateway

    @property
    def resolver(self) -> KeyResolver:
        return self._resolver

    def ensure_bucket(self, bucket: str) -> None:
        """Make sure a bucket exists, creating it when allowed.

        Raises:
            BucketNotFoundError: If the bucket is missing and auto-creation
                is disabled.
        """
        if self._gateway.bucket_exists(bucket):
            return
        if not self._config.auto_create_buckets:
            raise BucketNotFoundError("Bucket does not exist", bucket=bucket)
        logger.info("Auto-creating bucket: %s", bucket)
        self._gateway.create_bucket(bucket)

    def _next_free_version(
        self,
        client_id: str,
        environment: Environment,
        file_name: str,
        directory: str | None,
    ) -> ObjectLocation:
        """Find the first unused VERSION name: file, file_v2, file_v3, ..."""
        for version in range(1, MAX_VERSION_PROBES + 1):
            location = self._resolver.resolve(
                client_id,
                environment,
                directory,
                file_name,
                DuplicateFileStrategy.VERSION,
                version,
            )
            if not self._gateway.object_exists(location.bucket, location.key):
                return location
        raise DuplicateObjectError(
            f"No free version slot after {MAX_VERSION_PROBES} attempts",
            bucket=location.bucket,
        )

    def upload(
        self,
        client_id: str,
        environment: Environment,
        file_name: str,
        data: bytes,
        *,
        directory: str | None = None,
        content_type: str | None = None,
        duplicate_strategy: DuplicateFileStrategy | None = None,
        version: int | None = None,
    ) -> UploadResult:
        """Upload a file for a client.

        Args:
            client_id: Tenant identifier.
            environment: Target environment.
            file_name: File name as supplied by the caller.
            data: File content.
            directory: Optional directory under the tenant prefix.
            content_type: MIME type recorded with the object.
            duplicate_strategy: Policy override (configured default when None).
            version: Explicit version for VERSION; probed when None.

        Returns:
            UploadResult describing where the object was written.

        Raises:
            ObjectTooLargeError: If data exceeds the configured size limit.
            InvalidPathError: If the directory or client identifier is invalid.
            InvalidFileNameError: If the file name is invalid.
            InvalidBucketNameError: If the resolved bucket is not DNS-safe.
            BucketNotFoundError: If the bucket is missing and auto-creation is off.
            DuplicateObjectError: If REJECT applies and the object exists.
            StorageBackendError: If the backend fails.
        """
        limit = self._config.max_file_size_bytes
        if len(data) > limit:
            raise ObjectTooLargeError(
                f"File exceeds maximum size of {self._config.max_file_size_mb}MB",
                size_bytes=len(data),
                limit_bytes=limit,
            )

        policy = duplicate_strategy or self._config.duplicate_file_strategy
        probe_versions = policy is DuplicateFileStrategy.VERSION and version is None

        location = self._resolver.resolve(
            client_id,
            environment,
            directory,
            file_name,
            policy,
            version,
            now=self._clock() if self._clock else None,
            uuid_factory=self._uuid_factory,
        )
        self.ensure_bucket(location.bucket)

        if probe_versions or policy is DuplicateFileStrategy.REJECT:
            # VERSION locks the unsuffixed name so concurrent uploads take distinct slots
            with self._key_locks.held(location.bucket, location.key):
                if probe_versions:
                    location = self._next_free_version(
                        client_id, environment, file_name, directory
                    )
                elif self._gateway.object_exists(location.bucket, location.key):
                    raise DuplicateObjectError(bucket=location.bucket, key=location.key)
                self._gateway.put(
                    location.bucket, location.key, data, content_type=content_type
                )
        else:
            self._gateway.put(location.bucket, location.key, data, content_type=content_type)

        stored_name = location.key.rsplit("/", 1)[-1]
        logger.info(
            "Uploaded file: bucket=%s size=%d policy=%s",
            location.bucket,
            len(data),
            policy.value,
        )
        return UploadResult(
            location=location,
            file_name=stored_name,
            original_file_name=file_name,
            size_bytes=len(data),
            content_type=content_type,
            duplicate_strategy=policy,
        )

    def _locate(
        self,
        client_id: str,
        environment: Environment,
        file_name: str,
        directory: str | None,
    ) -> ObjectLocation:
        """Resolve an existing object's location; the name is used as-is."""
        return self._resolver.resolve(
            client_id,
            environment,
            directory,
            file_name,
            DuplicateFileStrategy.OVERWRITE,
        )

    def download(
        self,
        client_id: str,
        environment: Environment,
        file_name: str,
        *,
        directory: str | None = None,
    ) -> StoredObject:
        """Download a stored file by its stored name.

        Raises:
            BucketNotFoundError: If the bucket does not exist.
            ObjectNotFoundError: If the object does not exist.
        """
        location = self._locate(client_id, environment, file_name, directory)
        return self._gateway.get(location.bucket, location.key)

    def list_files(self, client_id: str, environment: Environment) -> list[str]:
        """List every key stored for a client and environment.

        A bucket that does not exist yet has no files.
        """
        bucket = self._resolver.resolve_bucket(client_id, environment)
        prefix = self._resolver.key_prefix(client_id, environment)
        if not is_valid_bucket_name(bucket):
            raise InvalidBucketNameError(
                "Resolved bucket name is empty or not DNS-safe", bucket=bucket or None
            )

        if not self._gateway.bucket_exists(bucket):
            return []
        return self._gateway.list_keys(bucket, prefix)

    def delete(
        self,
        client_id: str,
        environment: Environment,
        file_name: str,
        *,
        directory: str | None = None,
    ) -> ObjectLocation:
        """Delete a stored file.

        Raises:
            BucketNotFoundError: If the bucket does not exist.
            ObjectNotFoundError: If the object does not exist.
        """
        location = self._locate(client_id, environment, file_name, directory)
        if not self._gateway.object_exists(location.bucket, location.key):
            raise ObjectNotFoundError(bucket=location.bucket, key=location.key)
        self._gateway.delete(location.bucket, location.key)
        logger.info("Deleted file: bucket=%s", location.bucket)
        return location

    def bucket_mapping(self, client_id: str) -> ClientBucketMapping:
        """Describe where a client's data lands in every environment."""
        return self._resolver.bucket_mapping(client_id)

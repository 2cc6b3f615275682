"""Storegate object storage error types.

Provides typed exceptions for naming, resolution and storage operations.
All errors are fail-closed: inputs that cannot be made safe raise, they are
never silently corrected.
"""

from __future__ import annotations

import hashlib


def input_digest(raw: object) -> str:
    """Return a short SHA256 digest of an untrusted input for logs and errors.

    Raw caller input is never echoed back; the digest lets operators
    correlate a rejection with a request without enabling log injection.
    """
    if raw is None:
        return "none"
    return hashlib.sha256(str(raw).encode("utf-8", "surrogatepass")).hexdigest()[:16]


class ObjectStorageError(Exception):
    """Base exception for object storage operations.

    Attributes:
        message: Human-readable error message.
        bucket: Bucket associated with the operation (if applicable).
        key: Object key associated with the operation (if applicable).
    """

    def __init__(
        self,
        message: str,
        *,
        bucket: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.bucket = bucket
        self.key = key

    def __str__(self) -> str:
        parts = [self.message]
        if self.bucket:
            parts.append(f"bucket={self.bucket}")
        if self.key:
            parts.append(f"key={self.key}")
        return " ".join(parts)


class InvalidPathError(ObjectStorageError):
    """Raised when a caller-supplied path fails a sanitizer check.

    Attributes:
        check: Name of the check that failed (e.g. "path_traversal").
        input_digest: Truncated SHA256 of the rejected input.
    """

    def __init__(
        self,
        message: str = "Invalid path",
        *,
        check: str,
        raw: object = None,
    ) -> None:
        super().__init__(message)
        self.check = check
        self.input_digest = input_digest(raw)

    def __str__(self) -> str:
        return f"{self.message} (check={self.check})"


class InvalidFileNameError(InvalidPathError):
    """Raised when a file name fails a sanitizer check.

    A file name must never encode a directory, so embedded separators are
    rejected here even though they are legal in a path.
    """

    def __init__(
        self,
        message: str = "Invalid file name",
        *,
        check: str,
        raw: object = None,
    ) -> None:
        super().__init__(message, check=check, raw=raw)


class InvalidBucketNameError(ObjectStorageError):
    """Raised when a resolved bucket name is empty or not DNS-safe."""

    def __init__(self, message: str = "Invalid bucket name", *, bucket: str | None = None) -> None:
        super().__init__(message, bucket=bucket)


class StorageConfigError(ObjectStorageError):
    """Raised when storage configuration is invalid (fatal at startup)."""

    def __init__(self, message: str = "Invalid storage configuration") -> None:
        super().__init__(message)


class InvalidBucketStrategyError(StorageConfigError):
    """Raised when configuration names an unrecognized bucket strategy."""

    def __init__(self, message: str = "Invalid bucket strategy") -> None:
        super().__init__(message)


class BucketNotFoundError(ObjectStorageError):
    """Raised when the target bucket does not exist."""

    def __init__(self, message: str = "Bucket not found", *, bucket: str | None = None) -> None:
        super().__init__(message, bucket=bucket)


class ObjectNotFoundError(ObjectStorageError):
    """Raised when an object is not found in storage."""

    def __init__(
        self,
        message: str = "Object not found",
        *,
        bucket: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message, bucket=bucket, key=key)


class DuplicateObjectError(ObjectStorageError):
    """Raised when the REJECT duplicate strategy finds an existing object."""

    def __init__(
        self,
        message: str = "Object already exists",
        *,
        bucket: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message, bucket=bucket, key=key)


class ObjectTooLargeError(ObjectStorageError):
    """Raised when an upload exceeds the configured maximum size.

    Attributes:
        size_bytes: Size of the rejected payload.
        limit_bytes: Configured maximum size.
    """

    def __init__(
        self,
        message: str = "Object exceeds maximum allowed size",
        *,
        size_bytes: int,
        limit_bytes: int,
    ) -> None:
        super().__init__(message)
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes


class StorageBackendError(ObjectStorageError):
    """Raised when the storage backend cannot complete an operation.

    This error indicates the backend itself failed (e.g., connection refused,
    permission denied, I/O error) rather than a logical error like
    object not found.
    """

    def __init__(
        self,
        message: str = "Storage backend error",
        *,
        bucket: str | None = None,
        key: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, bucket=bucket, key=key)
        self.cause = cause

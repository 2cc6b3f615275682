"""Storegate storage data models.

Closed enumerations for environments and naming policies, plus the typed
value objects produced by resolution and returned by storage backends.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from storegate.storage.errors import (
    InvalidBucketNameError,
    InvalidBucketStrategyError,
    InvalidPathError,
)

BUCKET_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")
MIN_BUCKET_NAME_LENGTH = 3
MAX_BUCKET_NAME_LENGTH = 63

RESERVED_NAMES = frozenset(
    {"CON", "PRN", "AUX", "NUL"}
    | {f"COM{i}" for i in range(1, 10)}
    | {f"LPT{i}" for i in range(1, 10)}
)

_CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x1f]")


def is_reserved_name(name: str) -> bool:
    """Check if a file or directory name is a reserved device name.

    Only the last extension is removed, so "CON.txt" is reserved while
    "CON.tar.gz" (stem "CON.tar") is not.
    """
    stem = name.rsplit(".", 1)[0] if "." in name else name
    return stem.strip().upper() in RESERVED_NAMES


class Environment(str, Enum):
    """Deployment stage a request targets.

    The value is the canonical lowercase tag used in bucket names and keys.
    """

    DEVELOPMENT = "dev"
    STAGING = "staging"
    PRODUCTION = "prod"
    TEST = "test"
    UAT = "uat"

    @property
    def tag(self) -> str:
        """Return the path tag for this environment."""
        return self.value

    @classmethod
    def from_value(cls, value: str) -> Environment:
        """Parse an environment from its tag or member name (case-insensitive).

        Raises:
            ValueError: If the value names no environment.
        """
        normalized = value.strip().lower()
        for env in cls:
            if normalized in (env.value, env.name.lower()):
                return env
        raise ValueError(f"Unknown environment: {value!r}")

    def __str__(self) -> str:
        return self.value


class BucketStrategy(str, Enum):
    """How tenants and environments map to physical buckets."""

    SHARED_WITH_PREFIX = "shared-prefix"
    PER_CLIENT = "per-client"
    PER_CLIENT_PER_ENVIRONMENT = "per-client-env"

    @property
    def description(self) -> str:
        return _BUCKET_STRATEGY_DESCRIPTIONS[self]

    @classmethod
    def from_code(cls, code: str) -> BucketStrategy:
        """Parse a strategy from its code or member name (case-insensitive).

        Raises:
            InvalidBucketStrategyError: If the code names no strategy.
        """
        normalized = code.strip().lower()
        for strategy in cls:
            if normalized in (strategy.value, strategy.name.lower()):
                return strategy
        raise InvalidBucketStrategyError(f"Invalid bucket strategy: {code!r}")


_BUCKET_STRATEGY_DESCRIPTIONS: dict[BucketStrategy, str] = {
    BucketStrategy.SHARED_WITH_PREFIX: "Single bucket with client and environment prefixes",
    BucketStrategy.PER_CLIENT: "Dedicated bucket per client",
    BucketStrategy.PER_CLIENT_PER_ENVIRONMENT: "Dedicated bucket per client and environment",
}


class DuplicateFileStrategy(str, Enum):
    """Policy for naming an upload when a name collision is possible."""

    OVERWRITE = "overwrite"
    UUID_SUFFIX = "uuid"
    TIMESTAMP_SUFFIX = "timestamp"
    VERSION = "version"
    REJECT = "reject"

    @property
    def description(self) -> str:
        return _DUPLICATE_STRATEGY_DESCRIPTIONS[self]

    @classmethod
    def from_code(cls, code: str) -> DuplicateFileStrategy:
        """Parse a strategy from its code or member name (case-insensitive).

        Raises:
            ValueError: If the code names no strategy.
        """
        normalized = code.strip().lower()
        for strategy in cls:
            if normalized in (strategy.value, strategy.name.lower()):
                return strategy
        raise ValueError(f"Invalid duplicate file strategy: {code!r}")


_DUPLICATE_STRATEGY_DESCRIPTIONS: dict[DuplicateFileStrategy, str] = {
    DuplicateFileStrategy.OVERWRITE: "Replace existing file",
    DuplicateFileStrategy.UUID_SUFFIX: "Append UUID to filename",
    DuplicateFileStrategy.TIMESTAMP_SUFFIX: "Append timestamp to filename",
    DuplicateFileStrategy.VERSION: "Create versioned copies",
    DuplicateFileStrategy.REJECT: "Reject upload if file exists",
}


class SanitizedPathComponent(str):
    """A path string that has passed the sanitizer.

    Only storegate.storage.path_sanitizer creates instances; everywhere else
    treats it as an ordinary read-only string.
    """

    __slots__ = ()


def is_valid_bucket_name(bucket: str) -> bool:
    """Check a bucket name against the DNS-safe naming rule."""
    if not MIN_BUCKET_NAME_LENGTH <= len(bucket) <= MAX_BUCKET_NAME_LENGTH:
        return False
    return bool(BUCKET_NAME_PATTERN.match(bucket))


@dataclass(frozen=True)
class ObjectLocation:
    """Resolved, sanitized target of a storage operation.

    Attributes:
        bucket: DNS-safe bucket name.
        key: Object key within the bucket.
    """

    bucket: str
    key: str

    def __post_init__(self) -> None:
        """Validate location invariants."""
        if not is_valid_bucket_name(self.bucket):
            raise InvalidBucketNameError(
                "Resolved bucket name is empty or not DNS-safe",
                bucket=self.bucket or None,
            )
        if (
            not self.key
            or self.key.startswith("/")
            or ".." in self.key.split("/")
            or _CONTROL_CHARS_PATTERN.search(self.key)
            or is_reserved_name(self.key.rsplit("/", 1)[-1])
        ):
            raise InvalidPathError("Invalid object key", check="object_key", raw=self.key)

    def to_dict(self) -> dict[str, str]:
        """Convert location to dictionary for JSON serialization."""
        return {"bucket": self.bucket, "key": self.key}


@dataclass(frozen=True)
class StoredObject:
    """An object read back from a storage backend.

    Attributes:
        location: Where the object lives.
        body: Object content as bytes.
        content_type: MIME type recorded at upload time, if any.
    """

    location: ObjectLocation
    body: bytes
    content_type: str | None = None

    @property
    def size_bytes(self) -> int:
        return len(self.body)


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a successful upload.

    Attributes:
        location: Resolved bucket and key the object was written to.
        file_name: Final stored file name (after duplicate handling).
        original_file_name: File name as supplied by the caller.
        size_bytes: Number of bytes written.
        content_type: MIME type sent to the backend.
        duplicate_strategy: Policy applied to the file name.
    """

    location: ObjectLocation
    file_name: str
    original_file_name: str
    size_bytes: int
    content_type: str | None
    duplicate_strategy: DuplicateFileStrategy


@dataclass(frozen=True)
class ClientBucketMapping:
    """Where a client's data lands in every environment.

    Attributes:
        client_id: Client identifier as supplied.
        bucket_strategy: Strategy used to compute the mapping.
        buckets: Environment tag to bucket name.
        prefixes: Environment tag to the key prefix shared by all objects.
    """

    client_id: str
    bucket_strategy: BucketStrategy
    buckets: dict[str, str] = field(default_factory=dict)
    prefixes: dict[str, str] = field(default_factory=dict)

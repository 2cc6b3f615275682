"""Storage configuration for storegate.

Configuration is read once at startup into an immutable StorageConfig and
passed explicitly to the resolver, service and gateways.

Environment Variables:
    STOREGATE_BACKEND: "filesystem" or "s3" (default: "filesystem")
    STOREGATE_BASE_DIR: Root directory for the filesystem backend
        (default: OS temp dir / storegate_objects)
    STOREGATE_S3_ENDPOINT_URL: Custom endpoint (MinIO, LocalStack); unset for AWS
    STOREGATE_S3_REGION: Region name (default: "us-east-1")
    STOREGATE_S3_ACCESS_KEY / STOREGATE_S3_SECRET_KEY: Static credentials;
        unset to use the default boto3 credential chain
    STOREGATE_S3_PATH_STYLE: "1" to force path-style addressing (MinIO)
    STOREGATE_MAX_FILE_SIZE_MB: Upload size limit in MB (default: 10)
    STOREGATE_BUCKET_STRATEGY: "shared-prefix", "per-client" or "per-client-env"
        (default: "shared-prefix")
    STOREGATE_SHARED_BUCKET: Bucket for shared-prefix (default: "shared-storage")
    STOREGATE_BUCKET_SUFFIX: Suffix for per-client buckets (default: "storage")
    STOREGATE_AUTO_CREATE_BUCKETS: "0" to disable bucket auto-creation (default: on)
    STOREGATE_DUPLICATE_FILE_STRATEGY: "overwrite", "uuid", "timestamp",
        "version" or "reject" (default: "uuid")
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, Literal

from storegate.storage.errors import StorageConfigError
from storegate.storage.models import BucketStrategy, DuplicateFileStrategy

logger = logging.getLogger(__name__)

ENV_BACKEND: Final[str] = "STOREGATE_BACKEND"
ENV_BASE_DIR: Final[str] = "STOREGATE_BASE_DIR"
ENV_S3_ENDPOINT_URL: Final[str] = "STOREGATE_S3_ENDPOINT_URL"
ENV_S3_REGION: Final[str] = "STOREGATE_S3_REGION"
ENV_S3_ACCESS_KEY: Final[str] = "STOREGATE_S3_ACCESS_KEY"
ENV_S3_SECRET_KEY: Final[str] = "STOREGATE_S3_SECRET_KEY"
ENV_S3_PATH_STYLE: Final[str] = "STOREGATE_S3_PATH_STYLE"
ENV_MAX_FILE_SIZE_MB: Final[str] = "STOREGATE_MAX_FILE_SIZE_MB"
ENV_BUCKET_STRATEGY: Final[str] = "STOREGATE_BUCKET_STRATEGY"
ENV_SHARED_BUCKET: Final[str] = "STOREGATE_SHARED_BUCKET"
ENV_BUCKET_SUFFIX: Final[str] = "STOREGATE_BUCKET_SUFFIX"
ENV_AUTO_CREATE_BUCKETS: Final[str] = "STOREGATE_AUTO_CREATE_BUCKETS"
ENV_DUPLICATE_FILE_STRATEGY: Final[str] = "STOREGATE_DUPLICATE_FILE_STRATEGY"

DEFAULT_REGION: Final[str] = "us-east-1"
DEFAULT_MAX_FILE_SIZE_MB: Final[int] = 10
DEFAULT_SHARED_BUCKET: Final[str] = "shared-storage"
DEFAULT_BUCKET_SUFFIX: Final[str] = "storage"

BYTES_PER_MB: Final[int] = 1024 * 1024

BackendName = Literal["filesystem", "s3"]
_BACKENDS: Final[frozenset[str]] = frozenset({"filesystem", "s3"})


def _default_base_dir() -> Path:
    return Path(tempfile.gettempdir()) / "storegate_objects"


@dataclass(frozen=True)
class StorageConfig:
    """Storage configuration (immutable).

    Attributes:
        backend: Which StorageGateway implementation to build.
        base_dir: Root directory for the filesystem backend.
        endpoint_url: Custom S3 endpoint, None for AWS.
        region: S3 region name.
        access_key: Static access key, None for the default credential chain.
        secret_key: Static secret key.
        path_style_access: Force path-style addressing (required by MinIO).
        max_file_size_mb: Upload size limit.
        bucket_strategy: How clients/environments map to buckets.
        shared_bucket: Bucket used by SHARED_WITH_PREFIX.
        bucket_suffix: Suffix appended to per-client bucket names.
        auto_create_buckets: Create missing buckets on upload.
        duplicate_file_strategy: Default duplicate policy for uploads.
    """

    backend: BackendName = "filesystem"
    base_dir: Path = field(default_factory=_default_base_dir)
    endpoint_url: str | None = None
    region: str = DEFAULT_REGION
    access_key: str | None = field(default=None, repr=False)
    secret_key: str | None = field(default=None, repr=False)
    path_style_access: bool = False
    max_file_size_mb: int = DEFAULT_MAX_FILE_SIZE_MB
    bucket_strategy: BucketStrategy = BucketStrategy.SHARED_WITH_PREFIX
    shared_bucket: str = DEFAULT_SHARED_BUCKET
    bucket_suffix: str = DEFAULT_BUCKET_SUFFIX
    auto_create_buckets: bool = True
    duplicate_file_strategy: DuplicateFileStrategy = DuplicateFileStrategy.UUID_SUFFIX

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.backend not in _BACKENDS:
            raise StorageConfigError(
                f"{ENV_BACKEND} must be one of {sorted(_BACKENDS)}, got {self.backend!r}"
            )
        if self.max_file_size_mb <= 0:
            raise StorageConfigError(
                f"{ENV_MAX_FILE_SIZE_MB} must be a positive integer, got {self.max_file_size_mb}"
            )
        if not self.shared_bucket.strip():
            raise StorageConfigError(f"{ENV_SHARED_BUCKET} must not be empty")
        if not self.bucket_suffix.strip():
            raise StorageConfigError(f"{ENV_BUCKET_SUFFIX} must not be empty")
        if (self.access_key is None) != (self.secret_key is None):
            raise StorageConfigError(
                f"{ENV_S3_ACCESS_KEY} and {ENV_S3_SECRET_KEY} must be set together"
            )

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * BYTES_PER_MB


def _get_env_str(key: str) -> str | None:
    """Get a stripped string from the environment, None if unset or blank."""
    raw = os.environ.get(key)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def _get_env_bool(key: str, default: bool) -> bool:
    """Get boolean from environment variable."""
    raw = _get_env_str(key)
    if raw is None:
        return default
    val = raw.lower()
    if val in ("1", "true", "yes"):
        return True
    if val in ("0", "false", "no"):
        return False
    raise StorageConfigError(f"{key} must be a boolean (1/0, true/false), got '{raw}'")


def _parse_positive_int(key: str, default: int) -> int:
    """Parse a positive integer from environment variable.

    Raises:
        StorageConfigError: If value is set but not a positive integer.
    """
    raw = _get_env_str(key)
    if raw is None:
        return default

    try:
        value = int(raw)
    except ValueError as e:
        raise StorageConfigError(f"{key} must be a positive integer, got '{raw}'") from e

    if value <= 0:
        raise StorageConfigError(f"{key} must be a positive integer, got {value}")

    return value


def _parse_duplicate_strategy(default: DuplicateFileStrategy) -> DuplicateFileStrategy:
    raw = _get_env_str(ENV_DUPLICATE_FILE_STRATEGY)
    if raw is None:
        return default
    try:
        return DuplicateFileStrategy.from_code(raw)
    except ValueError as e:
        raise StorageConfigError(f"{ENV_DUPLICATE_FILE_STRATEGY}: {e}") from e


def load_storage_config() -> StorageConfig:
    """Load storage configuration from environment variables.

    Returns:
        StorageConfig with validated values.

    Raises:
        InvalidBucketStrategyError: If STOREGATE_BUCKET_STRATEGY is unrecognized.
        StorageConfigError: If any other value is invalid.
    """
    backend = (_get_env_str(ENV_BACKEND) or "filesystem").lower()
    base_dir_raw = _get_env_str(ENV_BASE_DIR)
    strategy_raw = _get_env_str(ENV_BUCKET_STRATEGY)

    config = StorageConfig(
        backend=backend,  # type: ignore[arg-type]
        base_dir=Path(base_dir_raw) if base_dir_raw else _default_base_dir(),
        endpoint_url=_get_env_str(ENV_S3_ENDPOINT_URL),
        region=_get_env_str(ENV_S3_REGION) or DEFAULT_REGION,
        access_key=_get_env_str(ENV_S3_ACCESS_KEY),
        secret_key=_get_env_str(ENV_S3_SECRET_KEY),
        path_style_access=_get_env_bool(ENV_S3_PATH_STYLE, False),
        max_file_size_mb=_parse_positive_int(ENV_MAX_FILE_SIZE_MB, DEFAULT_MAX_FILE_SIZE_MB),
        bucket_strategy=(
            BucketStrategy.from_code(strategy_raw)
            if strategy_raw
            else BucketStrategy.SHARED_WITH_PREFIX
        ),
        shared_bucket=_get_env_str(ENV_SHARED_BUCKET) or DEFAULT_SHARED_BUCKET,
        bucket_suffix=_get_env_str(ENV_BUCKET_SUFFIX) or DEFAULT_BUCKET_SUFFIX,
        auto_create_buckets=_get_env_bool(ENV_AUTO_CREATE_BUCKETS, True),
        duplicate_file_strategy=_parse_duplicate_strategy(DuplicateFileStrategy.UUID_SUFFIX),
    )

    logger.info(
        "Storage configured: backend=%s bucket_strategy=%s duplicate_strategy=%s",
        config.backend,
        config.bucket_strategy.value,
        config.duplicate_file_strategy.value,
    )
    return config

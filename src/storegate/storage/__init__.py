"""Storegate multi-tenant object storage.

Maps tenant inputs (client, environment, directory, file name) onto safe S3
bucket names and object keys, and performs file operations through a
pluggable gateway.

Backends:
- FilesystemStorageGateway: Local filesystem (dev/test)
- S3StorageGateway: AWS S3 and S3-compatible stores (production)

Environment Variables:
    STOREGATE_BACKEND: "filesystem" or "s3" (default: "filesystem")
    STOREGATE_BUCKET_STRATEGY: "shared-prefix", "per-client" or "per-client-env"
    See storegate.storage.config for the full list.
"""

from storegate.storage.config import StorageConfig, load_storage_config
from storegate.storage.errors import (
    BucketNotFoundError,
    DuplicateObjectError,
    InvalidBucketNameError,
    InvalidBucketStrategyError,
    InvalidFileNameError,
    InvalidPathError,
    ObjectNotFoundError,
    ObjectStorageError,
    ObjectTooLargeError,
    StorageBackendError,
    StorageConfigError,
)
from storegate.storage.gateway import StorageGateway
from storegate.storage.key_resolver import KeyResolver
from storegate.storage.models import (
    BucketStrategy,
    ClientBucketMapping,
    DuplicateFileStrategy,
    Environment,
    ObjectLocation,
    StoredObject,
    UploadResult,
)
from storegate.storage.service import StorageService, create_gateway

__all__ = [
    "BucketNotFoundError",
    "BucketStrategy",
    "ClientBucketMapping",
    "DuplicateFileStrategy",
    "DuplicateObjectError",
    "Environment",
    "InvalidBucketNameError",
    "InvalidBucketStrategyError",
    "InvalidFileNameError",
    "InvalidPathError",
    "KeyResolver",
    "ObjectLocation",
    "ObjectNotFoundError",
    "ObjectStorageError",
    "ObjectTooLargeError",
    "StorageBackendError",
    "StorageConfig",
    "StorageConfigError",
    "StorageGateway",
    "StorageService",
    "StoredObject",
    "UploadResult",
    "create_gateway",
    "load_storage_config",
]

"""Bucket and object key resolution for multi-tenant storage.

Maps (client_id, environment, directory, file_name) to an ObjectLocation
under the configured BucketStrategy:

    SHARED_WITH_PREFIX          shared-storage / client-001/dev/docs/file.pdf
    PER_CLIENT                  client-001-storage / dev/docs/file.pdf
    PER_CLIENT_PER_ENVIRONMENT  client-001-dev-storage / docs/file.pdf

Client identifiers and environment tags are operator-controlled and pass a
looser character filter; directories and file names are caller-controlled
and always go through the path sanitizer.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import assert_never

from storegate.storage.config import StorageConfig
from storegate.storage.errors import InvalidPathError
from storegate.storage.file_names import generate_file_name
from storegate.storage.models import (
    BucketStrategy,
    ClientBucketMapping,
    DuplicateFileStrategy,
    Environment,
    ObjectLocation,
)
from storegate.storage.path_sanitizer import sanitize_directory, sanitize_file_name

logger = logging.getLogger(__name__)

_BUCKET_DISALLOWED_PATTERN = re.compile(r"[^a-z0-9-]+")
_REPEATED_HYPHENS_PATTERN = re.compile(r"-{2,}")
_PATH_DISALLOWED_PATTERN = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_for_bucket_name(value: str) -> str:
    """Reduce a value to bucket-name characters.

    Lowercases, replaces runs of characters outside [a-z0-9-] with a single
    hyphen, collapses repeated hyphens and trims hyphens at both ends.
    Never fails; the result may be empty.
    """
    sanitized = _BUCKET_DISALLOWED_PATTERN.sub("-", value.lower())
    sanitized = _REPEATED_HYPHENS_PATTERN.sub("-", sanitized)
    return sanitized.strip("-")


def sanitize_for_path(value: str) -> str:
    """Replace every character outside [A-Za-z0-9_-] with an underscore."""
    return _PATH_DISALLOWED_PATTERN.sub("_", value)


class KeyResolver:
    """Compose bucket names and object keys from tenant inputs.

    Stateless apart from the immutable configuration; safe to share across
    threads.
    """

    def __init__(self, config: StorageConfig) -> None:
        self._config = config

    @property
    def config(self) -> StorageConfig:
        return self._config

    def resolve_bucket(
        self,
        client_id: str,
        environment: Environment,
        strategy: BucketStrategy | None = None,
    ) -> str:
        """Return the bucket for a client and environment.

        The result is not validated here; an empty or malformed bucket is
        rejected when an ObjectLocation is built from it.
        """
        strategy = strategy or self._config.bucket_strategy
        suffix = self._config.bucket_suffix

        match strategy:
            case BucketStrategy.SHARED_WITH_PREFIX:
                return self._config.shared_bucket
            case BucketStrategy.PER_CLIENT:
                return f"{sanitize_for_bucket_name(client_id)}-{suffix}"
            case BucketStrategy.PER_CLIENT_PER_ENVIRONMENT:
                return f"{sanitize_for_bucket_name(client_id)}-{environment.tag}-{suffix}"
            case _:
                assert_never(strategy)

    def key_prefix(
        self,
        client_id: str,
        environment: Environment,
        strategy: BucketStrategy | None = None,
    ) -> str:
        """Return the key prefix shared by every object of a client/environment.

        Empty for PER_CLIENT_PER_ENVIRONMENT, where both live in the bucket name.
        """
        strategy = strategy or self._config.bucket_strategy
        prefix = ""

        if strategy is BucketStrategy.SHARED_WITH_PREFIX:
            if not client_id.strip():
                raise InvalidPathError("Client identifier cannot be empty", check="client_id")
            prefix += f"{sanitize_for_path(client_id)}/"

        # Environment is already encoded in the bucket name for per-client-env
        if strategy is not BucketStrategy.PER_CLIENT_PER_ENVIRONMENT:
            prefix += f"{environment.tag}/"

        return prefix

    def resolve_key(
        self,
        client_id: str,
        environment: Environment,
        directory: str | None,
        file_name: str,
        strategy: BucketStrategy | None = None,
    ) -> str:
        """Build the object key left to right: client, environment, directory, file.

        Raises:
            InvalidPathError: If the directory fails sanitization.
            InvalidFileNameError: If the file name fails sanitization.
        """
        key = self.key_prefix(client_id, environment, strategy)

        if directory and directory.strip():
            sanitized_dir = sanitize_directory(directory)
            if sanitized_dir:
                key += f"{sanitized_dir}/"

        key += sanitize_file_name(file_name)
        return key

    def resolve(
        self,
        client_id: str,
        environment: Environment,
        directory: str | None,
        file_name: str,
        duplicate_policy: DuplicateFileStrategy | None = None,
        version: int | None = None,
        *,
        now: datetime | None = None,
        uuid_factory: Callable[[], uuid.UUID] | None = None,
    ) -> ObjectLocation:
        """Resolve the full target location for a file.

        The duplicate policy (configured default when None) rewrites the file
        name first; bucket and key are then composed from the result.

        Raises:
            InvalidPathError: If the directory or client identifier is invalid.
            InvalidFileNameError: If the file name is invalid.
            InvalidBucketNameError: If the resolved bucket is empty or not DNS-safe.
        """
        policy = duplicate_policy or self._config.duplicate_file_strategy
        stored_name = generate_file_name(
            file_name,
            policy,
            version,
            now=now,
            uuid_factory=uuid_factory,
        )

        bucket = self.resolve_bucket(client_id, environment)
        key = self.resolve_key(client_id, environment, directory, stored_name)
        location = ObjectLocation(bucket=bucket, key=key)

        logger.debug(
            "Resolved location: bucket=%s strategy=%s policy=%s",
            bucket,
            self._config.bucket_strategy.value,
            policy.value,
        )
        return location

    def bucket_mapping(self, client_id: str) -> ClientBucketMapping:
        """Describe where a client's data lands in every environment."""
        buckets = {env.tag: self.resolve_bucket(client_id, env) for env in Environment}
        prefixes = {env.tag: self.key_prefix(client_id, env) for env in Environment}
        return ClientBucketMapping(
            client_id=client_id,
            bucket_strategy=self._config.bucket_strategy,
            buckets=buckets,
            prefixes=prefixes,
        )

"""Pytest configuration and fixtures for storegate tests.

This module provides common fixtures and configuration for all tests.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from storegate.storage.config import StorageConfig
from storegate.storage.filesystem_gateway import FilesystemStorageGateway
from storegate.storage.models import BucketStrategy, DuplicateFileStrategy
from storegate.storage.service import StorageService


@pytest.fixture(autouse=True)
def clean_storegate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove STOREGATE_* variables so tests start from defaults.

    Tests that need configuration set it explicitly with monkeypatch.
    """
    for key in list(os.environ):
        if key.startswith("STOREGATE_"):
            monkeypatch.delenv(key)


@pytest.fixture
def make_config(tmp_path: Path):
    """Factory for StorageConfig rooted in a temp directory."""

    def _make(**overrides: object) -> StorageConfig:
        values: dict[str, object] = {"base_dir": tmp_path / "objects"}
        values.update(overrides)
        return StorageConfig(**values)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def shared_config(make_config) -> StorageConfig:
    """Shared-bucket configuration with deterministic OVERWRITE naming."""
    return make_config(
        bucket_strategy=BucketStrategy.SHARED_WITH_PREFIX,
        duplicate_file_strategy=DuplicateFileStrategy.OVERWRITE,
    )


@pytest.fixture
def fs_gateway(tmp_path: Path) -> FilesystemStorageGateway:
    """Filesystem gateway in a temp directory."""
    return FilesystemStorageGateway(base_dir=tmp_path / "objects")


@pytest.fixture
def service(shared_config: StorageConfig, fs_gateway: FilesystemStorageGateway) -> StorageService:
    """StorageService over the filesystem gateway."""
    return StorageService(shared_config, fs_gateway)

"""Tests for storage enums and value objects."""

from __future__ import annotations

import pytest

from storegate.storage.errors import (
    InvalidBucketNameError,
    InvalidBucketStrategyError,
    InvalidPathError,
)
from storegate.storage.models import (
    BucketStrategy,
    DuplicateFileStrategy,
    Environment,
    ObjectLocation,
    StoredObject,
    is_valid_bucket_name,
)


class TestEnvironment:
    """Tests for environment parsing."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("dev", Environment.DEVELOPMENT),
            ("DEVELOPMENT", Environment.DEVELOPMENT),
            (" prod ", Environment.PRODUCTION),
            ("production", Environment.PRODUCTION),
            ("uat", Environment.UAT),
        ],
    )
    def test_from_value(self, raw: str, expected: Environment) -> None:
        assert Environment.from_value(raw) is expected

    def test_unknown_environment(self) -> None:
        with pytest.raises(ValueError):
            Environment.from_value("qa")

    def test_tag_and_str(self) -> None:
        assert Environment.STAGING.tag == "staging"
        assert str(Environment.STAGING) == "staging"


class TestStrategyCodes:
    """Tests for strategy code parsing."""

    def test_bucket_strategy_from_code(self) -> None:
        assert BucketStrategy.from_code("per-client") is BucketStrategy.PER_CLIENT
        assert BucketStrategy.from_code("Shared_With_Prefix") is BucketStrategy.SHARED_WITH_PREFIX

    def test_unknown_bucket_strategy(self) -> None:
        with pytest.raises(InvalidBucketStrategyError):
            BucketStrategy.from_code("per-region")

    def test_duplicate_strategy_from_code(self) -> None:
        assert DuplicateFileStrategy.from_code("uuid") is DuplicateFileStrategy.UUID_SUFFIX
        assert DuplicateFileStrategy.from_code("REJECT") is DuplicateFileStrategy.REJECT

    def test_unknown_duplicate_strategy(self) -> None:
        with pytest.raises(ValueError):
            DuplicateFileStrategy.from_code("rename")

    def test_every_strategy_has_description(self) -> None:
        assert all(strategy.description for strategy in BucketStrategy)
        assert all(strategy.description for strategy in DuplicateFileStrategy)


class TestBucketNames:
    """Tests for the DNS-safe bucket rule."""

    @pytest.mark.parametrize("name", ["shared-storage", "a1b", "client-001-dev-storage", "x" * 63])
    def test_valid(self, name: str) -> None:
        assert is_valid_bucket_name(name)

    @pytest.mark.parametrize(
        "name", ["", "a", "ab", "a1", "-abc", "abc-", "Upper", "under_score", "x" * 64]
    )
    def test_invalid(self, name: str) -> None:
        assert not is_valid_bucket_name(name)


class TestObjectLocation:
    """Tests for location invariants."""

    def test_valid_location(self) -> None:
        location = ObjectLocation(bucket="shared-storage", key="acme/dev/a.txt")
        assert location.to_dict() == {"bucket": "shared-storage", "key": "acme/dev/a.txt"}

    def test_reserved_stem_only_checked_on_basename(self) -> None:
        location = ObjectLocation(bucket="shared-storage", key="acme/CON/CON.tar.gz")
        assert location.key == "acme/CON/CON.tar.gz"

    def test_invalid_bucket(self) -> None:
        with pytest.raises(InvalidBucketNameError):
            ObjectLocation(bucket="", key="a.txt")

    @pytest.mark.parametrize("key", ["", "/abs", "a/../b", "a\x00b", "acme/dev/NUL.txt", "CON"])
    def test_invalid_key(self, key: str) -> None:
        with pytest.raises(InvalidPathError) as exc_info:
            ObjectLocation(bucket="shared-storage", key=key)
        assert exc_info.value.check == "object_key"


class TestStoredObject:
    """Tests for stored object helpers."""

    def test_size_bytes(self) -> None:
        stored = StoredObject(
            location=ObjectLocation(bucket="shared-storage", key="a.txt"),
            body=b"12345",
        )
        assert stored.size_bytes == 5
        assert stored.content_type is None

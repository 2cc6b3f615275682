"""Tests for duplicate-aware file name generation."""

from __future__ import annotations

import re
import uuid
from datetime import UTC, datetime

import pytest

from storegate.storage.file_names import (
    generate_file_name,
    generate_short_unique_id,
    generate_unique_id,
    split_file_name,
)
from storegate.storage.models import DuplicateFileStrategy

FIXED_UUID = uuid.UUID("a1b2c3d4-e5f6-4711-8899-aabbccddeeff")
FIXED_NOW = datetime(2025, 12, 30, 10, 30, 45, tzinfo=UTC)


class TestSplitFileName:
    """Tests for base name / extension splitting."""

    def test_simple_extension(self) -> None:
        assert split_file_name("report.pdf") == ("report", ".pdf")

    def test_splits_at_last_dot(self) -> None:
        """Only the final suffix counts as the extension."""
        assert split_file_name("archive.tar.gz") == ("archive.tar", ".gz")

    def test_no_extension(self) -> None:
        assert split_file_name("README") == ("README", "")

    def test_hidden_file_has_no_extension(self) -> None:
        """A leading dot marks a hidden file, not an extension."""
        assert split_file_name(".env") == (".env", "")

    def test_trailing_dot(self) -> None:
        assert split_file_name("notes.") == ("notes", ".")


class TestVersionStrategy:
    """Tests for VERSION naming."""

    def test_version_one_keeps_original_name(self) -> None:
        assert generate_file_name("contract.pdf", DuplicateFileStrategy.VERSION, 1) == (
            "contract.pdf"
        )

    def test_version_two_adds_suffix(self) -> None:
        assert generate_file_name("contract.pdf", DuplicateFileStrategy.VERSION, 2) == (
            "contract_v2.pdf"
        )

    def test_version_suffix_before_last_extension(self) -> None:
        assert generate_file_name("archive.tar.gz", DuplicateFileStrategy.VERSION, 2) == (
            "archive.tar_v2.gz"
        )

    def test_missing_version_keeps_original_name(self) -> None:
        assert generate_file_name("contract.pdf", DuplicateFileStrategy.VERSION) == "contract.pdf"

    def test_version_without_extension(self) -> None:
        assert generate_file_name("Makefile", DuplicateFileStrategy.VERSION, 3) == "Makefile_v3"


class TestUuidSuffixStrategy:
    """Tests for UUID_SUFFIX naming."""

    def test_uses_first_eight_hex_characters(self) -> None:
        result = generate_file_name(
            "report.pdf",
            DuplicateFileStrategy.UUID_SUFFIX,
            uuid_factory=lambda: FIXED_UUID,
        )
        assert result == "report_a1b2c3d4.pdf"

    def test_default_shape(self) -> None:
        result = generate_file_name("report.pdf", DuplicateFileStrategy.UUID_SUFFIX)
        assert re.fullmatch(r"report_[0-9a-f]{8}\.pdf", result)

    def test_consecutive_names_differ(self) -> None:
        """Two generations for the same name are (overwhelmingly likely) different."""
        first = generate_file_name("report.pdf", DuplicateFileStrategy.UUID_SUFFIX)
        second = generate_file_name("report.pdf", DuplicateFileStrategy.UUID_SUFFIX)
        assert first != second


class TestTimestampSuffixStrategy:
    """Tests for TIMESTAMP_SUFFIX naming."""

    def test_uses_supplied_clock(self) -> None:
        result = generate_file_name(
            "report.pdf", DuplicateFileStrategy.TIMESTAMP_SUFFIX, now=FIXED_NOW
        )
        assert result == "report_20251230_103045.pdf"

    def test_default_clock_shape(self) -> None:
        result = generate_file_name("data.csv", DuplicateFileStrategy.TIMESTAMP_SUFFIX)
        assert re.fullmatch(r"data_\d{8}_\d{6}\.csv", result)

    def test_same_second_collides(self) -> None:
        """Second resolution means same-second uploads share a name."""
        first = generate_file_name("a.txt", DuplicateFileStrategy.TIMESTAMP_SUFFIX, now=FIXED_NOW)
        second = generate_file_name("a.txt", DuplicateFileStrategy.TIMESTAMP_SUFFIX, now=FIXED_NOW)
        assert first == second


class TestPassThroughStrategies:
    """OVERWRITE and REJECT leave the name alone."""

    @pytest.mark.parametrize(
        "strategy", [DuplicateFileStrategy.OVERWRITE, DuplicateFileStrategy.REJECT]
    )
    def test_name_unchanged(self, strategy: DuplicateFileStrategy) -> None:
        assert generate_file_name("archive.tar.gz", strategy) == "archive.tar.gz"


class TestUniqueIds:
    """Tests for the id helpers."""

    def test_unique_id_is_uuid4(self) -> None:
        value = uuid.UUID(generate_unique_id())
        assert value.version == 4

    def test_short_unique_id_length(self) -> None:
        assert len(generate_short_unique_id()) == 8

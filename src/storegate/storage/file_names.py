"""Collision-avoidant file name generation.

Rewrites a caller's file name according to a DuplicateFileStrategy:
- UUID_SUFFIX: report.pdf -> report_a1b2c3d4.pdf
- TIMESTAMP_SUFFIX: report.pdf -> report_20251230_103045.pdf
- VERSION: report.pdf -> report_v2.pdf
- OVERWRITE / REJECT: unchanged (enforced by the storage service)

The UUID suffix carries 32 bits of randomness; collisions are possible but
negligible for per-name volumes. Timestamp suffixes have one-second
resolution, so two uploads of the same name within a second collide.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import assert_never

from storegate.storage.models import DuplicateFileStrategy

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
SHORT_ID_LENGTH = 8


def split_file_name(file_name: str) -> tuple[str, str]:
    """Split a file name into (base_name, extension) at the last dot.

    The extension keeps its leading dot. A dot in the first position marks a
    hidden file rather than an extension, so ".env" has no extension.
    """
    dot_index = file_name.rfind(".")
    if dot_index <= 0:
        return file_name, ""
    return file_name[:dot_index], file_name[dot_index:]


def generate_unique_id() -> str:
    """Return a random UUID4 string."""
    return str(uuid.uuid4())


def generate_short_unique_id() -> str:
    """Return the first 8 hex characters of a random UUID4."""
    return generate_unique_id()[:SHORT_ID_LENGTH]


def generate_file_name(
    original_file_name: str,
    strategy: DuplicateFileStrategy,
    version: int | None = None,
    *,
    now: datetime | None = None,
    uuid_factory: Callable[[], uuid.UUID] | None = None,
) -> str:
    """Produce the file name actually used for storage.

    Args:
        original_file_name: File name as supplied by the caller.
        strategy: Duplicate handling policy.
        version: Version number for the VERSION strategy.
        now: Clock override for TIMESTAMP_SUFFIX (defaults to current UTC time).
        uuid_factory: Random source override for UUID_SUFFIX (defaults to uuid4).

    Returns:
        The rewritten file name.
    """
    base_name, extension = split_file_name(original_file_name)

    match strategy:
        case DuplicateFileStrategy.UUID_SUFFIX:
            factory = uuid_factory or uuid.uuid4
            suffix = factory().hex[:SHORT_ID_LENGTH]
            return f"{base_name}_{suffix}{extension}"
        case DuplicateFileStrategy.TIMESTAMP_SUFFIX:
            timestamp = (now or datetime.now(UTC)).strftime(TIMESTAMP_FORMAT)
            return f"{base_name}_{timestamp}{extension}"
        case DuplicateFileStrategy.VERSION:
            if version is None or version <= 1:
                return f"{base_name}{extension}"
            return f"{base_name}_v{version}{extension}"
        case DuplicateFileStrategy.OVERWRITE | DuplicateFileStrategy.REJECT:
            return original_file_name
        case _:
            assert_never(strategy)

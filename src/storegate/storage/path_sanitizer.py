"""Path sanitizer for caller-supplied directories and file names.

The object store exposes a flat key namespace and enforces no boundaries of
its own, so this module is the only barrier between untrusted path fragments
and another tenant's keys. It rejects:
- ".." adjacent to a separator, before and after normalization
- Absolute paths (leading / or \\, drive letters like C:)
- The characters < > : " | ? * and ASCII control codes 0x00-0x1F
- Reserved device names (CON, PRN, AUX, NUL, COM1-9, LPT1-9) as the final component

Rejections raise immediately; nothing is repaired on a best-effort basis.
Errors and log lines carry the failing check and an input digest, never the
raw input.
"""

from __future__ import annotations

import logging
import re

from storegate.storage.errors import InvalidFileNameError, InvalidPathError, input_digest
from storegate.storage.models import SanitizedPathComponent, is_reserved_name

logger = logging.getLogger(__name__)

_TRAVERSAL_PATTERN = re.compile(r"\.\.[/\\]|[/\\]\.\.")
_ABSOLUTE_PATTERN = re.compile(r"^(?:[A-Za-z]:|[/\\])")
_ILLEGAL_CHARS_PATTERN = re.compile(r'[<>:"|?*\x00-\x1f]')
_SEPARATOR_PATTERN = re.compile(r"[/\\]")

# Leading/trailing characters stripped from file names
_FILE_NAME_STRIP_CHARS = ". "


def _reject(
    check: str,
    message: str,
    raw: object,
    error_cls: type[InvalidPathError] = InvalidPathError,
) -> InvalidPathError:
    """Log a rejection and build the error to raise."""
    logger.warning(
        "Rejected %s: check=%s input_sha256=%s",
        error_cls.__name__,
        check,
        input_digest(raw),
    )
    return error_cls(message, check=check, raw=raw)


def _normalize(path: str) -> str:
    """Collapse ".", ".." and empty segments.

    Both separators are honored; the result is joined with "/" and never has
    a leading or trailing separator. A ".." that cannot be collapsed is kept
    so the escape check that follows can see it.
    """
    segments: list[str] = []
    for segment in _SEPARATOR_PATTERN.split(path):
        if segment in ("", "."):
            continue
        if segment == ".." and segments and segments[-1] != "..":
            segments.pop()
            continue
        segments.append(segment)
    return "/".join(segments)


def sanitize_path(raw: str | None) -> SanitizedPathComponent:
    """Validate and normalize a relative path.

    Args:
        raw: Untrusted path such as "documents/2025/file.pdf".

    Returns:
        The normalized path with "/" separators and no leading slash.

    Raises:
        InvalidPathError: If any check fails; ``check`` names which one.
    """
    if raw is None or not raw.strip():
        raise _reject("empty", "Path cannot be null or empty", raw)

    candidate = raw.strip()

    if _TRAVERSAL_PATTERN.search(candidate):
        raise _reject("path_traversal", "Invalid path: path traversal detected", raw)

    if _ABSOLUTE_PATTERN.match(candidate):
        raise _reject("absolute_path", "Invalid path: absolute paths not allowed", raw)

    if _ILLEGAL_CHARS_PATTERN.search(candidate):
        raise _reject("illegal_characters", "Invalid path: contains illegal characters", raw)

    normalized = _normalize(candidate)

    if normalized.startswith("..") or ".." in normalized.split("/"):
        raise _reject("escape", "Invalid path: escapes base directory", raw)

    if not normalized:
        raise _reject("empty", "Path is empty after normalization", raw)

    file_name = normalized.rsplit("/", 1)[-1]
    if is_reserved_name(file_name):
        raise _reject("reserved_name", "Invalid path: uses reserved name", raw)

    return SanitizedPathComponent(normalized)


def sanitize_directory(raw: str | None) -> str:
    """Sanitize an optional directory.

    Blank input yields "" since a directory is optional; anything else must
    pass sanitize_path.
    """
    if raw is None or not raw.strip():
        return ""

    sanitized = str(sanitize_path(raw))
    if sanitized.endswith("/"):
        sanitized = sanitized[:-1]
    return sanitized


def sanitize_file_name(raw: str | None) -> str:
    """Sanitize a bare file name (no directory part).

    Leading/trailing dots and spaces are stripped after the checks pass, and
    the reserved-name check is repeated on the stripped result so that
    "..CON.txt" cannot slip through as "CON.txt".

    Raises:
        InvalidFileNameError: If any check fails.
    """
    if raw is None or not raw.strip():
        raise _reject("empty", "File name cannot be null or empty", raw, InvalidFileNameError)

    candidate = raw.strip()

    if "/" in candidate or "\\" in candidate:
        raise _reject(
            "path_separator",
            "Invalid file name: cannot contain path separators",
            raw,
            InvalidFileNameError,
        )

    if _ILLEGAL_CHARS_PATTERN.search(candidate):
        raise _reject(
            "illegal_characters",
            "Invalid file name: contains illegal characters",
            raw,
            InvalidFileNameError,
        )

    if is_reserved_name(candidate):
        raise _reject(
            "reserved_name", "Invalid file name: uses reserved name", raw, InvalidFileNameError
        )

    stripped = candidate.strip(_FILE_NAME_STRIP_CHARS)
    if not stripped:
        raise _reject(
            "empty", "File name is empty after sanitization", raw, InvalidFileNameError
        )

    if stripped != candidate:
        logger.debug("Stripped leading/trailing dots or spaces from file name")
        if is_reserved_name(stripped):
            raise _reject(
                "reserved_name", "Invalid file name: uses reserved name", raw, InvalidFileNameError
            )

    return stripped


def build_path(directory: str | None, file_name: str | None) -> str:
    """Join a sanitized directory and file name with "/"."""
    sanitized_dir = sanitize_directory(directory)
    sanitized_file = sanitize_file_name(file_name)

    if not sanitized_dir:
        return sanitized_file
    return f"{sanitized_dir}/{sanitized_file}"


def is_valid_path(raw: str | None) -> bool:
    """Return whether sanitize_path would accept the input."""
    try:
        sanitize_path(raw)
    except InvalidPathError:
        return False
    return True

"""Tests for OpenTelemetry tracing of storage operations.

- Tracing OFF by default, ON via STOREGATE_OTEL_ENABLED=1
- Gateway spans carry bucket, backend and a key digest, never the raw key
- Failed operations mark the span with the error type
- Tests use the in-memory exporter (no external collector required)
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterator

import pytest

from storegate.observability.tracing import (
    clear_test_spans,
    configure_tracing,
    get_current_trace_id,
    get_test_spans,
    is_tracing_enabled,
    reset_tracing,
)
from storegate.storage.errors import ObjectNotFoundError
from storegate.storage.filesystem_gateway import FilesystemStorageGateway

BUCKET = "shared-storage"
KEY = "acme/dev/docs/confidential-report.pdf"


@pytest.fixture(autouse=True)
def reset_tracing_state() -> Iterator[None]:
    """Reset tracing state before and after each test."""
    reset_tracing()
    yield
    reset_tracing()


@pytest.fixture
def tracing_enabled(monkeypatch: pytest.MonkeyPatch) -> None:
    """Enable tracing with in-memory span capture."""
    monkeypatch.setenv("STOREGATE_OTEL_ENABLED", "1")
    monkeypatch.setenv("STOREGATE_OTEL_TEST_CAPTURE", "1")
    assert configure_tracing() is True
    clear_test_spans()


def _spans_named(suffix: str) -> list:
    return [s for s in get_test_spans() if s.name.endswith(suffix)]


class TestTracingConfiguration:
    """Tests for tracing configuration behavior."""

    def test_tracing_disabled_by_default(self) -> None:
        """Tracing should be OFF when STOREGATE_OTEL_ENABLED is not set."""
        assert is_tracing_enabled() is False
        assert configure_tracing() is False

    def test_no_spans_when_disabled(self, fs_gateway: FilesystemStorageGateway) -> None:
        clear_test_spans()
        fs_gateway.create_bucket(BUCKET)
        fs_gateway.put(BUCKET, KEY, b"x")

        assert _spans_named(".put") == []

    def test_no_trace_id_outside_span(self) -> None:
        assert get_current_trace_id() is None


class TestStorageSpans:
    """Tests for gateway span emission."""

    def test_put_span_has_safe_attributes(
        self, tracing_enabled: None, fs_gateway: FilesystemStorageGateway
    ) -> None:
        """Put should emit a span with the key digest and no raw key."""
        fs_gateway.create_bucket(BUCKET)
        fs_gateway.put(BUCKET, KEY, b"hello", content_type="application/pdf")

        spans = _spans_named("storegate.object_store.put")
        assert len(spans) == 1

        attrs = dict(spans[0].attributes or {})
        assert attrs["storegate.bucket"] == BUCKET
        assert attrs["storage.backend"] == "filesystem"
        assert attrs["storegate.object_key_sha256"] == hashlib.sha256(KEY.encode()).hexdigest()
        assert all(KEY not in str(value) for value in attrs.values())

    def test_get_span_records_size(
        self, tracing_enabled: None, fs_gateway: FilesystemStorageGateway
    ) -> None:
        fs_gateway.create_bucket(BUCKET)
        fs_gateway.put(BUCKET, KEY, b"12345", content_type="application/pdf")
        clear_test_spans()

        fs_gateway.get(BUCKET, KEY)

        attrs = dict(_spans_named(".get")[0].attributes or {})
        assert attrs["storegate.object_size_bytes"] == 5
        assert attrs["storegate.object_content_type"] == "application/pdf"

    def test_list_span_records_count(
        self, tracing_enabled: None, fs_gateway: FilesystemStorageGateway
    ) -> None:
        fs_gateway.create_bucket(BUCKET)
        fs_gateway.put(BUCKET, "acme/dev/a.txt", b"x")
        fs_gateway.put(BUCKET, "acme/dev/b.txt", b"x")

        fs_gateway.list_keys(BUCKET, "acme/")

        attrs = dict(_spans_named(".list_keys")[0].attributes or {})
        assert attrs["storegate.object_count"] == 2
        assert "storegate.object_key_sha256" not in attrs

    def test_exists_span_records_result(
        self, tracing_enabled: None, fs_gateway: FilesystemStorageGateway
    ) -> None:
        fs_gateway.create_bucket(BUCKET)
        clear_test_spans()

        fs_gateway.object_exists(BUCKET, KEY)

        attrs = dict(_spans_named(".object_exists")[0].attributes or {})
        assert attrs["storegate.exists"] is False

    def test_error_span(
        self, tracing_enabled: None, fs_gateway: FilesystemStorageGateway
    ) -> None:
        fs_gateway.create_bucket(BUCKET)

        with pytest.raises(ObjectNotFoundError):
            fs_gateway.get(BUCKET, KEY)

        attrs = dict(_spans_named(".get")[0].attributes or {})
        assert attrs["error"] is True
        assert attrs["error.type"] == "ObjectNotFoundError"

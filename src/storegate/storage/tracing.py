"""OpenTelemetry tracing for storage gateway operations.

Security:
    - Object keys are exported only as SHA256 digests; they embed tenant
      directory names and caller-chosen file names
    - No credentials, endpoints with secrets, or object bodies in attributes
"""

from __future__ import annotations

import functools
import hashlib
import logging
from collections.abc import Callable
from typing import Any, TypeVar, cast

from opentelemetry import trace

from storegate.observability.tracing import is_tracing_enabled
from storegate.storage.models import StoredObject

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_TRACER_NAME = "storegate.object_store"


def traced_storage_operation(operation: str, *, keyed: bool = True) -> Callable[[F], F]:
    """Decorator to trace gateway methods shaped ``(self, bucket, [key], ...)``.

    Args:
        operation: Operation name (e.g., "put", "get", "list_keys").
        keyed: Whether the second positional argument is an object key.

    Returns:
        Decorated function that emits OTel spans when tracing is enabled.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self: Any, bucket: str, *args: Any, **kwargs: Any) -> Any:
            if not is_tracing_enabled():
                return func(self, bucket, *args, **kwargs)

            tracer = trace.get_tracer(_TRACER_NAME)
            with tracer.start_as_current_span(f"{_TRACER_NAME}.{operation}") as span:
                span.set_attribute("storegate.bucket", bucket)
                span.set_attribute("storage.backend", getattr(self, "backend_name", "unknown"))

                key = args[0] if keyed and args else kwargs.get("key")
                if isinstance(key, str):
                    key_sha256 = hashlib.sha256(key.encode("utf-8")).hexdigest()
                    span.set_attribute("storegate.object_key_sha256", key_sha256)

                try:
                    result = func(self, bucket, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

                _add_result_attributes(span, result, operation)
                return result

        return cast(F, wrapper)

    return decorator


def _add_result_attributes(span: Any, result: Any, operation: str) -> None:
    """Add safe result-based attributes (sizes and counts only)."""
    if isinstance(result, StoredObject):
        span.set_attribute("storegate.object_size_bytes", result.size_bytes)
        if result.content_type:
            span.set_attribute("storegate.object_content_type", result.content_type)
    elif isinstance(result, bool):
        span.set_attribute("storegate.exists", result)
    elif operation == "list_keys" and isinstance(result, list):
        span.set_attribute("storegate.object_count", len(result))

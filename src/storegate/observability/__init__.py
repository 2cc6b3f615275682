"""Storegate observability module.

Provides OpenTelemetry tracing setup for the API and storage gateways.
"""

from storegate.observability.tracing import configure_tracing, get_current_trace_id

__all__ = ["configure_tracing", "get_current_trace_id"]

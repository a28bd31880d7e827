"""Shared telemetry: logging setup and tracing helpers."""

from plm.shared.telemetry.logging import get_logger, setup_logging
from plm.shared.telemetry.tracing import add_span_attributes, traced

__all__ = [
    "setup_logging",
    "get_logger",
    "traced",
    "add_span_attributes",
]

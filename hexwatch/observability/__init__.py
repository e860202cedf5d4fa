"""Observability helpers."""

from hexwatch.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_scan,
    record_parser_failure,
    record_delivery,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_scan",
    "record_parser_failure",
    "record_delivery",
]

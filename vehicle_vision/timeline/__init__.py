"""Interpretation of event payloads: confidence, vendor, summary."""

from .confidence import (
    ConfidenceLevel,
    classify_confidence,
    confidence_message,
    confidence_warning,
    estimate_confidence,
    extract_confidence,
)
from .vendor import normalize_vendor_name, resolve_vendor, resolve_vendor_raw
from .summary import extract_amount, format_amount, generate_summary
from .display import EventDisplay, describe_event

__all__ = [
    "ConfidenceLevel",
    "classify_confidence",
    "confidence_message",
    "confidence_warning",
    "estimate_confidence",
    "extract_confidence",
    "normalize_vendor_name",
    "resolve_vendor",
    "resolve_vendor_raw",
    "extract_amount",
    "format_amount",
    "generate_summary",
    "EventDisplay",
    "describe_event",
]

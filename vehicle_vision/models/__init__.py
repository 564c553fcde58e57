"""Data models for events and document processing results."""

from .document import (
    ProcessingContext,
    ValidationResult,
    DocumentProcessingResult,
    BatchDocument,
    BatchStatistics,
    BatchResult,
)
from .event import Event, EventType, EditRecord

__all__ = [
    "ProcessingContext",
    "ValidationResult",
    "DocumentProcessingResult",
    "BatchDocument",
    "BatchStatistics",
    "BatchResult",
    "Event",
    "EventType",
    "EditRecord",
]

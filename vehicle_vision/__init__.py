"""Vehicle vision core: document processors, payload interpretation and metrics."""

from .models import (
    BatchDocument,
    BatchResult,
    DocumentProcessingResult,
    Event,
    EventType,
    ProcessingContext,
    ValidationResult,
)
from .monitoring import HealthStatus, VisionMetricsCollector, classify_health
from .pipeline import VisionPipeline, build_pipeline
from .processors import DocumentProcessor, ProcessorRegistry, build_default_registry
from .timeline import (
    describe_event,
    extract_confidence,
    generate_summary,
    normalize_vendor_name,
    resolve_vendor,
)

__version__ = "0.1.0"

__all__ = [
    "BatchDocument",
    "BatchResult",
    "DocumentProcessingResult",
    "Event",
    "EventType",
    "ProcessingContext",
    "ValidationResult",
    "HealthStatus",
    "VisionMetricsCollector",
    "classify_health",
    "VisionPipeline",
    "build_pipeline",
    "DocumentProcessor",
    "ProcessorRegistry",
    "build_default_registry",
    "describe_event",
    "extract_confidence",
    "generate_summary",
    "normalize_vendor_name",
    "resolve_vendor",
]

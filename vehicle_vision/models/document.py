"""Document processing data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class ProcessingContext:
    """
    Per-upload context handed to every processor operation.

    Attributes:
        document_type: Document type tag (e.g., "fuel_receipt")
        user_id: Optional identifier of the uploading user
        session_id: Optional upload session identifier
        metadata: Free-form metadata supplied by the upload layer
    """
    document_type: str
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ValidationResult:
    """
    Outcome of validating parsed document data.

    Attributes:
        valid: Whether the data is semantically acceptable
        errors: Blocking problems
        warnings: Non-blocking observations
        field_confidences: Per-field scores in [0, 1] (e.g., "odometer_conf")
    """
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    field_confidences: Dict[str, float] = field(default_factory=dict)

    @property
    def rollup(self) -> str:
        """Aggregate verdict over all field checks."""
        return "ok" if self.valid else "needs_review"

    @classmethod
    def from_checks(
        cls,
        errors: List[str],
        warnings: Optional[List[str]] = None,
        field_confidences: Optional[Dict[str, float]] = None
    ) -> "ValidationResult":
        return cls(
            valid=not errors,
            errors=list(errors),
            warnings=list(warnings or []),
            field_confidences=dict(field_confidences or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "rollup": self.rollup,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            **self.field_confidences,
        }


@dataclass
class DocumentProcessingResult:
    """
    Result of running one image through a document processor.

    ``success=False`` always carries ``error`` and ``error_code``; ``data`` may
    then be partial or empty.
    """
    success: bool
    document_type: str
    data: Dict[str, Any] = field(default_factory=dict)
    validation: ValidationResult = field(default_factory=lambda: ValidationResult(valid=False))
    confidence: float = 0.0
    raw_text: str = ""
    processing_time_ms: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None
    error_code: Optional[str] = None
    display_text: Optional[str] = None
    warning: Optional[str] = None

    @classmethod
    def failure(
        cls,
        document_type: str,
        error: str,
        error_code: str,
        data: Optional[Dict[str, Any]] = None,
        raw_text: str = "",
        processing_time_ms: float = 0.0
    ) -> "DocumentProcessingResult":
        return cls(
            success=False,
            document_type=document_type,
            data=dict(data or {}),
            validation=ValidationResult(valid=False, errors=[error]),
            confidence=0.0,
            raw_text=raw_text,
            processing_time_ms=processing_time_ms,
            error=error,
            error_code=error_code,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "document_type": self.document_type,
            "data": self.data,
            "validation": self.validation.to_dict(),
            "confidence": self.confidence,
            "raw_text": self.raw_text,
            "processing_time_ms": self.processing_time_ms,
            "timestamp": self.timestamp.isoformat(),
            "error": self.error,
            "error_code": self.error_code,
            "display_text": self.display_text,
            "warning": self.warning,
        }


@dataclass
class BatchDocument:
    """One image submitted as part of a batch."""
    image_bytes: bytes
    document_type: str
    context: Optional[ProcessingContext] = None
    name: Optional[str] = None


@dataclass
class BatchStatistics:
    """Averages are computed over successful items only."""
    average_confidence: float = 0.0
    average_processing_time: float = 0.0
    total_processing_time: float = 0.0


@dataclass
class BatchResult:
    """Outcome of a batch run; ``results`` follows input order."""
    total: int
    successful: int
    failed: int
    results: List[DocumentProcessingResult] = field(default_factory=list)
    statistics: BatchStatistics = field(default_factory=BatchStatistics)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "results": [result.to_dict() for result in self.results],
            "statistics": {
                "averageConfidence": self.statistics.average_confidence,
                "averageProcessingTime": self.statistics.average_processing_time,
                "totalProcessingTime": self.statistics.total_processing_time,
            },
        }

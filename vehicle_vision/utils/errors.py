"""Error handling utilities for vision document processing."""

from dataclasses import dataclass
from typing import Optional, Dict, Any
from enum import Enum


class ErrorType(Enum):
    """Enumeration of error types in the vision processing core."""

    # Vision model (upstream) errors
    UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"
    UPSTREAM_RATE_LIMIT = "UPSTREAM_RATE_LIMIT"
    UPSTREAM_AUTH_ERROR = "UPSTREAM_AUTH_ERROR"
    UPSTREAM_INVALID_REQUEST = "UPSTREAM_INVALID_REQUEST"
    UPSTREAM_MODEL_ERROR = "UPSTREAM_MODEL_ERROR"
    UPSTREAM_SERVICE_ERROR = "UPSTREAM_SERVICE_ERROR"

    # Document processing errors
    PARSE_FAILED = "PARSE_FAILED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    ENRICHMENT_FAILED = "ENRICHMENT_FAILED"
    UNSUPPORTED_IMAGE = "UNSUPPORTED_IMAGE"

    # Registry errors
    PROCESSOR_NOT_FOUND = "PROCESSOR_NOT_FOUND"
    DUPLICATE_PROCESSOR = "DUPLICATE_PROCESSOR"

    # Configuration errors
    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"

    # System errors
    INITIALIZATION_FAILED = "INITIALIZATION_FAILED"

    # General errors
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass
class ErrorContext:
    """
    Context information for errors raised by the vision core.

    Attributes:
        error_type: Type of error from ErrorType enum
        message: Human-readable error message
        recoverable: Whether the error can be recovered from
        fallback_action: Optional description of fallback action taken
        details: Optional additional error details
        original_exception: Optional original exception that caused this error
    """

    error_type: ErrorType
    message: str
    recoverable: bool
    fallback_action: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    original_exception: Optional[Exception] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error context to dictionary for logging/serialization.

        Returns:
            Dictionary representation of error context
        """
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "fallback_action": self.fallback_action,
            "details": self.details or {},
            "original_exception": str(self.original_exception) if self.original_exception else None
        }


class VisionProcessingError(Exception):
    """
    Base exception for all vision processing errors.

    Wraps errors with an ErrorContext so callers can turn them into failed
    processing results carrying a stable error code.

    Attributes:
        context: ErrorContext with detailed error information
    """

    def __init__(self, context: ErrorContext):
        self.context = context
        super().__init__(context.message)

    @property
    def error_code(self) -> str:
        """Stable string code for metrics and API payloads."""
        return self.context.error_type.value

    def __str__(self) -> str:
        base = f"{self.context.error_type.value}: {self.context.message}"
        if self.context.fallback_action:
            base += f" (Fallback: {self.context.fallback_action})"
        return base

    def to_dict(self) -> Dict[str, Any]:
        return self.context.to_dict()


class VisionAPIError(VisionProcessingError):
    """Exception for vision model (AWS Bedrock) API errors."""

    @classmethod
    def from_client_error(
        cls,
        error: Exception,
        operation: str,
        recoverable: bool = False,
        fallback_action: Optional[str] = None
    ) -> "VisionAPIError":
        """
        Create VisionAPIError from a botocore ClientError.

        Args:
            error: Original botocore ClientError
            operation: Description of operation that failed
            recoverable: Whether error is recoverable
            fallback_action: Optional fallback action description

        Returns:
            VisionAPIError instance
        """
        error_code = "Unknown"
        error_message = str(error)

        if hasattr(error, 'response'):
            error_info = error.response.get("Error", {})
            error_code = error_info.get("Code", "Unknown")
            error_message = error_info.get("Message", str(error))

        error_type_map = {
            "ThrottlingException": ErrorType.UPSTREAM_RATE_LIMIT,
            "TooManyRequestsException": ErrorType.UPSTREAM_RATE_LIMIT,
            "RequestTimeout": ErrorType.UPSTREAM_TIMEOUT,
            "RequestTimeoutException": ErrorType.UPSTREAM_TIMEOUT,
            "ModelTimeoutException": ErrorType.UPSTREAM_TIMEOUT,
            "UnauthorizedException": ErrorType.UPSTREAM_AUTH_ERROR,
            "AccessDeniedException": ErrorType.UPSTREAM_AUTH_ERROR,
            "ValidationException": ErrorType.UPSTREAM_INVALID_REQUEST,
            "ModelNotReadyException": ErrorType.UPSTREAM_MODEL_ERROR,
            "ModelErrorException": ErrorType.UPSTREAM_MODEL_ERROR,
            "ServiceUnavailableException": ErrorType.UPSTREAM_SERVICE_ERROR,
            "InternalServerException": ErrorType.UPSTREAM_SERVICE_ERROR,
        }

        error_type = error_type_map.get(error_code, ErrorType.UPSTREAM_SERVICE_ERROR)

        context = ErrorContext(
            error_type=error_type,
            message=f"Vision model error during {operation}: {error_message}",
            recoverable=recoverable,
            fallback_action=fallback_action,
            details={
                "error_code": error_code,
                "operation": operation
            },
            original_exception=error
        )

        return cls(context)

    @classmethod
    def timeout(cls, operation: str, timeout_seconds: float) -> "VisionAPIError":
        """Create error for a vision call that exceeded its time budget."""
        context = ErrorContext(
            error_type=ErrorType.UPSTREAM_TIMEOUT,
            message=f"Vision model call '{operation}' exceeded {timeout_seconds:g}s",
            recoverable=True,
            fallback_action="Report failed result to caller",
            details={"operation": operation, "timeout_seconds": timeout_seconds}
        )
        return cls(context)


class DocumentProcessingError(VisionProcessingError):
    """Exception for document parsing, validation and enrichment errors."""

    @classmethod
    def parse_failed(
        cls,
        document_type: str,
        reason: str,
        error: Optional[Exception] = None
    ) -> "DocumentProcessingError":
        """
        Create error for model output that could not be turned into usable data.

        Args:
            document_type: Document type being processed
            reason: Why the parsed data is unusable
            error: Optional original exception

        Returns:
            DocumentProcessingError instance
        """
        context = ErrorContext(
            error_type=ErrorType.PARSE_FAILED,
            message=f"Failed to parse {document_type} output: {reason}",
            recoverable=True,
            fallback_action="Request manual entry or retake photo",
            details={"document_type": document_type},
            original_exception=error
        )
        return cls(context)

    @classmethod
    def validation_failed(
        cls,
        document_type: str,
        errors: list
    ) -> "DocumentProcessingError":
        """
        Create error for semantically invalid data that was not overridden.

        Args:
            document_type: Document type being processed
            errors: Validation error messages

        Returns:
            DocumentProcessingError instance
        """
        context = ErrorContext(
            error_type=ErrorType.VALIDATION_FAILED,
            message=f"{document_type} data failed validation: {'; '.join(errors) or 'unknown reason'}",
            recoverable=True,
            fallback_action="Confirm with explicit user override",
            details={"document_type": document_type, "errors": list(errors)}
        )
        return cls(context)

    @classmethod
    def enrichment_failed(
        cls,
        document_type: str,
        error: Exception
    ) -> "DocumentProcessingError":
        """
        Create error for a failed enrichment lookup.

        Args:
            document_type: Document type being processed
            error: Original exception

        Returns:
            DocumentProcessingError instance
        """
        context = ErrorContext(
            error_type=ErrorType.ENRICHMENT_FAILED,
            message=f"Enrichment failed for {document_type}: {str(error)}",
            recoverable=True,
            fallback_action="Continue with unenriched data",
            details={"document_type": document_type},
            original_exception=error
        )
        return cls(context)


class ProcessorRegistryError(VisionProcessingError):
    """Exception for document processor registration and lookup errors."""

    @classmethod
    def not_found(cls, document_type: str) -> "ProcessorRegistryError":
        context = ErrorContext(
            error_type=ErrorType.PROCESSOR_NOT_FOUND,
            message=f"No processor registered for document type '{document_type}'",
            recoverable=False,
            details={"document_type": document_type}
        )
        return cls(context)

    @classmethod
    def duplicate(cls, document_type: str, existing_version: str) -> "ProcessorRegistryError":
        context = ErrorContext(
            error_type=ErrorType.DUPLICATE_PROCESSOR,
            message=(
                f"A processor for '{document_type}' is already registered "
                f"(version {existing_version})"
            ),
            recoverable=False,
            fallback_action="Register with replace=True to override",
            details={"document_type": document_type, "existing_version": existing_version}
        )
        return cls(context)


class ConfigurationError(VisionProcessingError):
    """Exception for missing or malformed configuration."""

    @classmethod
    def missing(cls, config_path: str) -> "ConfigurationError":
        context = ErrorContext(
            error_type=ErrorType.CONFIG_MISSING,
            message=f"Configuration file not found at '{config_path}'",
            recoverable=False,
            details={"config_path": config_path}
        )
        return cls(context)

    @classmethod
    def invalid(cls, key: str, error: Exception) -> "ConfigurationError":
        context = ErrorContext(
            error_type=ErrorType.CONFIG_INVALID,
            message=f"Invalid configuration value for '{key}': {str(error)}",
            recoverable=False,
            details={"key": key},
            original_exception=error
        )
        return cls(context)


def handle_vision_api_error(
    error: Exception,
    operation: str,
    logger,
    fallback_action: Optional[str] = None
) -> None:
    """
    Log a vision model API error and re-raise it with context.

    Args:
        error: Original exception from the Bedrock API
        operation: Description of operation that failed
        logger: Logger instance for error logging
        fallback_action: Optional fallback action description

    Raises:
        VisionAPIError: Wrapped error with context
    """
    api_error = VisionAPIError.from_client_error(
        error=error,
        operation=operation,
        recoverable=True,
        fallback_action=fallback_action
    )

    if api_error.context.recoverable:
        logger.warning(f"Recoverable vision API error: {api_error}")
    else:
        logger.error(f"Non-recoverable vision API error: {api_error}")

    raise api_error

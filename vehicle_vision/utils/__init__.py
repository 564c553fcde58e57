"""Utility modules for configuration, logging, errors and AWS integration."""

from .parsing import ModelOutputParser
from .errors import (
    ErrorType,
    ErrorContext,
    VisionProcessingError,
    VisionAPIError,
    DocumentProcessingError,
    ProcessorRegistryError,
    ConfigurationError,
)

__all__ = [
    'ModelOutputParser',
    'ErrorType',
    'ErrorContext',
    'VisionProcessingError',
    'VisionAPIError',
    'DocumentProcessingError',
    'ProcessorRegistryError',
    'ConfigurationError',
]

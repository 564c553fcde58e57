"""Document processor contract and the per-document-type registry."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from ..models.document import ProcessingContext, ValidationResult
from ..utils.errors import ProcessorRegistryError
from ..utils.parsing import ModelOutputParser

logger = logging.getLogger(__name__)


class DocumentProcessor(ABC):
    """
    Handler for one document type.

    Subclasses define the prompt sent to the vision model, how the model's
    text is parsed into fields, and how those fields are validated. ``enrich``
    and ``format`` are optional hooks.

    Attributes:
        document_type: Registry key (e.g., "fuel_receipt")
        version: Processor version string
        expected_fields: Fields ``parse`` always returns (None when absent)
        description: Short human description
    """

    document_type: str = ""
    version: str = "1.0.0"
    expected_fields: Sequence[str] = ()
    description: str = ""

    @abstractmethod
    def get_prompt(self, context: ProcessingContext) -> str:
        """Prompt for the vision model. Must be deterministic for a given context."""

    @abstractmethod
    def parse(self, raw_text: str, context: ProcessingContext) -> Dict[str, Any]:
        """
        Turn model output into document fields.

        Never raises: unreadable output yields a dict whose expected fields
        are all None.
        """

    @abstractmethod
    async def validate(
        self,
        data: Dict[str, Any],
        context: ProcessingContext
    ) -> ValidationResult:
        """Check parsed data for semantic problems."""

    async def enrich(self, data: Dict[str, Any], context: ProcessingContext) -> Dict[str, Any]:
        """Add derived or looked-up fields. Default: data unchanged."""
        return data

    def format(self, data: Dict[str, Any]) -> Optional[str]:
        """Display text for the parsed data, or None when the processor has none."""
        return None

    def is_usable(self, data: Dict[str, Any]) -> bool:
        """True when at least one expected field was extracted."""
        if not self.expected_fields:
            return bool(data)
        return any(data.get(name) is not None for name in self.expected_fields)

    def empty_result(self) -> Dict[str, Any]:
        return {name: None for name in self.expected_fields}

    def extract_json(self, raw_text: str) -> Dict[str, Any]:
        """JSON object embedded in model output, or an empty dict."""
        parsed = ModelOutputParser.extract_json(raw_text)
        if parsed is None:
            logger.warning(f"No JSON object found in {self.document_type} model output")
            return {}
        return parsed

    def describe(self) -> Dict[str, Any]:
        return {
            "document_type": self.document_type,
            "version": self.version,
            "description": self.description,
            "expected_fields": list(self.expected_fields),
            "enriches": type(self).enrich is not DocumentProcessor.enrich,
            "formats": type(self).format is not DocumentProcessor.format,
        }


@dataclass
class RegistryEntry:
    """A registered processor with its registration metadata."""
    processor: DocumentProcessor
    registered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = "1.0.0"


class ProcessorRegistry:
    """
    Maps document types to processors.

    At most one processor is registered per document type. Registering a
    second processor for a taken type raises unless ``replace=True``.
    """

    def __init__(self):
        self._entries: Dict[str, RegistryEntry] = {}

    def register(self, processor: DocumentProcessor, replace: bool = False) -> RegistryEntry:
        """
        Register a processor under its ``document_type``.

        Args:
            processor: Processor instance
            replace: Replace an existing registration instead of failing

        Returns:
            The new RegistryEntry

        Raises:
            ProcessorRegistryError: If the type is taken and replace is False
        """
        document_type = processor.document_type
        if not document_type:
            raise ValueError(f"{type(processor).__name__} has no document_type")

        existing = self._entries.get(document_type)
        if existing is not None:
            if not replace:
                raise ProcessorRegistryError.duplicate(document_type, existing.version)
            logger.warning(
                f"Replacing processor for {document_type}: "
                f"v{existing.version} -> v{processor.version}"
            )

        entry = RegistryEntry(processor=processor, version=processor.version)
        self._entries[document_type] = entry
        logger.info(f"Registered processor {type(processor).__name__} for {document_type} (v{processor.version})")
        return entry

    def unregister(self, document_type: str) -> bool:
        """Remove a registration. Returns False when nothing was registered."""
        removed = self._entries.pop(document_type, None)
        if removed is not None:
            logger.info(f"Unregistered processor for {document_type}")
        return removed is not None

    def get(self, document_type: str) -> DocumentProcessor:
        return self.entry(document_type).processor

    def entry(self, document_type: str) -> RegistryEntry:
        entry = self._entries.get(document_type)
        if entry is None:
            raise ProcessorRegistryError.not_found(document_type)
        return entry

    def document_types(self) -> List[str]:
        return sorted(self._entries)

    def describe(self) -> List[Dict[str, Any]]:
        described = []
        for document_type in self.document_types():
            entry = self._entries[document_type]
            info = entry.processor.describe()
            info["registered_at"] = entry.registered_at.isoformat()
            described.append(info)
        return described

    def __contains__(self, document_type: object) -> bool:
        return document_type in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def build_default_registry(vin_decoder=None) -> ProcessorRegistry:
    """
    Registry with every built-in processor.

    Args:
        vin_decoder: Optional VinDecoder used by the VIN processor for enrichment

    Returns:
        Populated ProcessorRegistry
    """
    from .dashboard import DashboardProcessor
    from .fuel import FuelReceiptProcessor
    from .insurance import InsuranceCardProcessor
    from .odometer import OdometerProcessor
    from .service import ServiceInvoiceProcessor
    from .vin import VinProcessor

    registry = ProcessorRegistry()
    for processor in (
        DashboardProcessor(),
        OdometerProcessor(),
        FuelReceiptProcessor(),
        ServiceInvoiceProcessor(),
        InsuranceCardProcessor(),
        VinProcessor(decoder=vin_decoder),
    ):
        registry.register(processor)
    return registry

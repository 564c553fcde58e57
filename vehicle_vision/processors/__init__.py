"""Document processors and the processor registry."""

from .base import DocumentProcessor, ProcessorRegistry, RegistryEntry, build_default_registry
from .dashboard import DashboardProcessor
from .fuel import FuelReceiptProcessor
from .insurance import InsuranceCardProcessor
from .odometer import OdometerProcessor
from .service import ServiceInvoiceProcessor
from .vin import VinProcessor

__all__ = [
    "DocumentProcessor",
    "ProcessorRegistry",
    "RegistryEntry",
    "build_default_registry",
    "DashboardProcessor",
    "FuelReceiptProcessor",
    "InsuranceCardProcessor",
    "OdometerProcessor",
    "ServiceInvoiceProcessor",
    "VinProcessor",
]

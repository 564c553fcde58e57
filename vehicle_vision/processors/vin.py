"""VIN plate / sticker processor with decoder enrichment."""

import logging
import re
from typing import Any, Dict, Optional

from ..models.document import ProcessingContext, ValidationResult
from ..utils.parsing import ModelOutputParser, clean_str
from ..utils.vin_decoder import VinDecoder, decode_offline
from .base import DocumentProcessor

logger = logging.getLogger(__name__)

VIN_LENGTH = 17
FORBIDDEN_CHARACTERS = set("IOQ")

_TRANSLITERATION = {
    **{str(digit): digit for digit in range(10)},
    "A": 1, "B": 2, "C": 3, "D": 4, "E": 5, "F": 6, "G": 7, "H": 8,
    "J": 1, "K": 2, "L": 3, "M": 4, "N": 5, "P": 7, "R": 9,
    "S": 2, "T": 3, "U": 4, "V": 5, "W": 6, "X": 7, "Y": 8, "Z": 9,
}
_WEIGHTS = (8, 7, 6, 5, 4, 3, 2, 10, 0, 9, 8, 7, 6, 5, 4, 3, 2)

_VIN_CANDIDATE = re.compile(r"\b[A-Z0-9]{17}\b")


def normalize_vin(value: Any) -> Optional[str]:
    text = clean_str(value)
    if text is None:
        return None
    return re.sub(r"[\s\-]", "", text).upper()


def compute_check_digit(vin: str) -> Optional[str]:
    """ISO 3779 check digit for a 17-character VIN, or None if it has invalid characters."""
    total = 0
    for char, weight in zip(vin, _WEIGHTS):
        value = _TRANSLITERATION.get(char)
        if value is None:
            return None
        total += value * weight
    remainder = total % 11
    return "X" if remainder == 10 else str(remainder)


class VinProcessor(DocumentProcessor):
    """
    Reads a 17-character VIN and enriches it with decoded vehicle details.

    Enrichment uses the NHTSA decoder when one is configured and falls back
    to what the VIN itself encodes (model year, manufacturer).
    """

    document_type = "vin"
    version = "1.0.0"
    expected_fields = ("vin",)
    description = "Vehicle identification number (validated, decoded)"

    def __init__(self, decoder: Optional[VinDecoder] = None):
        self.decoder = decoder

    def get_prompt(self, context: ProcessingContext) -> str:
        return """Read the Vehicle Identification Number (VIN) in this image.

The VIN is exactly 17 characters, letters and digits, and never contains I, O or Q.
It is usually printed on the dashboard plate at the windshield, the driver door jamb sticker,
or on registration and insurance documents.

Return ONLY this JSON object:
{"vin": "1HGCM82633A004352"}

If no VIN is readable, return {"vin": null}."""

    def parse(self, raw_text: str, context: ProcessingContext) -> Dict[str, Any]:
        result = self.empty_result()
        parsed = ModelOutputParser.extract_json(raw_text)
        if parsed:
            result["vin"] = normalize_vin(parsed.get("vin"))
            return result

        match = _VIN_CANDIDATE.search((raw_text or "").upper())
        if match:
            result["vin"] = match.group(0)
        return result

    async def validate(self, data: Dict[str, Any], context: ProcessingContext) -> ValidationResult:
        errors = []
        vin = data.get("vin")

        if not vin:
            return ValidationResult.from_checks(["VIN not found"])

        if len(vin) != VIN_LENGTH:
            errors.append(f"VIN must be {VIN_LENGTH} characters, got {len(vin)}")
        forbidden = sorted(FORBIDDEN_CHARACTERS.intersection(vin))
        if forbidden:
            errors.append(f"VIN contains invalid characters: {', '.join(forbidden)}")
        if not vin.isalnum():
            errors.append("VIN may only contain letters and digits")

        if not errors:
            expected = compute_check_digit(vin)
            if expected != vin[8]:
                errors.append(f"VIN check digit mismatch: expected {expected}, found {vin[8]}")

        return ValidationResult.from_checks(errors)

    async def enrich(self, data: Dict[str, Any], context: ProcessingContext) -> Dict[str, Any]:
        vin = data.get("vin")
        if not vin:
            return data

        enriched = dict(data)
        vehicle = decode_offline(vin)
        if self.decoder is not None:
            try:
                vehicle = {**vehicle, **await self.decoder.decode(vin)}
            except Exception as e:
                logger.warning(f"VIN decode failed, using offline data: {e}")
                enriched["decode_warning"] = f"Online decode unavailable: {e}"

        enriched["vehicle"] = vehicle
        return enriched

    def format(self, data: Dict[str, Any]) -> Optional[str]:
        vin = data.get("vin")
        if not vin:
            return None
        vehicle = data.get("vehicle") or {}
        description = " ".join(
            str(vehicle[key]) for key in ("year", "make", "model") if vehicle.get(key)
        )
        return f"VIN {vin} ({description})" if description else f"VIN {vin}"

"""Odometer photo processor."""

import logging
import re
from typing import Any, Dict, Optional, Tuple

from ..models.document import ProcessingContext, ValidationResult
from ..utils.parsing import ModelOutputParser, clean_str, safe_float
from .base import DocumentProcessor

logger = logging.getLogger(__name__)

KM_PER_MILE = 1.609
MAX_ODOMETER_MILES = 1_000_000

_PLAIN_READING = re.compile(
    r"(?P<value>\d[\d,\s]*(?:\.\d+)?)\s*(?P<unit>mi|miles|km|kms|kilometers|kilometres)?\b",
    re.IGNORECASE,
)


def km_to_miles(km: float) -> int:
    return int(round(km / KM_PER_MILE))


def normalize_unit(unit: Any) -> str:
    text = (clean_str(unit) or "mi").lower()
    return "km" if text.startswith("k") else "mi"


def normalize_odometer(value: Any, unit: Any = "mi") -> Tuple[Optional[int], Optional[Dict[str, Any]], bool]:
    """
    Convert a raw odometer reading to miles.

    Returns:
        (miles, original {"value", "unit"}, conversion_applied)
    """
    reading = safe_float(value)
    if reading is None:
        return None, None, False
    normalized_unit = normalize_unit(unit)
    original = {"value": reading, "unit": normalized_unit}
    if normalized_unit == "km":
        return km_to_miles(reading), original, True
    return int(round(reading)), original, False


def check_odometer(miles: Optional[float]) -> Optional[str]:
    """Error message for an out-of-range reading, or None."""
    if miles is None:
        return None
    if miles < 0:
        return "Odometer reading cannot be negative"
    if miles >= MAX_ODOMETER_MILES:
        return "Odometer reading out of valid range"
    return None


class OdometerProcessor(DocumentProcessor):
    """Reads the total mileage from an odometer close-up."""

    document_type = "odometer"
    version = "1.1.0"
    expected_fields = ("odometer_miles",)
    description = "Odometer reading (miles, km converted)"

    def get_prompt(self, context: ProcessingContext) -> str:
        return """Read the ODOMETER (total distance) shown in this image.

Rules:
- Read the total odometer, NOT a trip meter (trip meters are labelled TRIP, A or B and usually show a decimal)
- Report the unit shown on the display: "mi" or "km"
- Digits only, no separators

Return ONLY this JSON object:
{
    "odometer_reading": 52205,
    "unit": "mi"
}

If no odometer is visible, return {"odometer_reading": null, "unit": null}."""

    def parse(self, raw_text: str, context: ProcessingContext) -> Dict[str, Any]:
        result = self.empty_result()
        result.update({"odometer_original": None, "odometer_conversion_applied": False})

        parsed = ModelOutputParser.extract_json(raw_text)
        if parsed:
            value = parsed.get("odometer_reading", parsed.get("odometer_miles", parsed.get("miles")))
            unit = parsed.get("unit", "mi")
        else:
            match = _PLAIN_READING.search(raw_text or "")
            if not match:
                return result
            value = match.group("value").replace(" ", "")
            unit = match.group("unit") or "mi"

        miles, original, converted = normalize_odometer(value, unit)
        result["odometer_miles"] = miles
        result["odometer_original"] = original
        result["odometer_conversion_applied"] = converted
        return result

    async def validate(self, data: Dict[str, Any], context: ProcessingContext) -> ValidationResult:
        errors = []
        warnings = []
        miles = data.get("odometer_miles")

        if miles is None:
            errors.append("Odometer reading not found")
        else:
            problem = check_odometer(miles)
            if problem:
                errors.append(problem)

        if data.get("odometer_conversion_applied"):
            warnings.append("Odometer converted from kilometers")

        confidences = {"odometer_conf": 0.95} if miles is not None and not errors else {}
        return ValidationResult.from_checks(errors, warnings, confidences)

    def format(self, data: Dict[str, Any]) -> Optional[str]:
        miles = data.get("odometer_miles")
        if miles is None:
            return None
        return f"Odometer {miles:,} mi"

"""Dashboard snapshot processor: odometer, fuel gauge, temperatures and warning lights."""

import logging
import re
from typing import Any, Dict, List, Optional

from ..models.document import ProcessingContext, ValidationResult
from ..utils.parsing import clean_str, safe_float
from .base import DocumentProcessor
from .odometer import check_odometer, normalize_odometer

logger = logging.getLogger(__name__)

ODOMETER_CONFIDENCE = 0.95
FUEL_CONFIDENCE = 0.92
LIGHTS_CONFIDENCE = 0.88

QUARTER_EIGHTHS = {
    "e": 0, "empty": 0,
    "1/4": 2, "quarter": 2,
    "1/2": 4, "half": 4,
    "3/4": 6, "three-quarter": 6, "three quarter": 6,
    "f": 8, "full": 8,
}

EIGHTHS_DISPLAY = ["Empty", "1/8", "1/4", "3/8", "1/2", "5/8", "3/4", "7/8", "Full"]

WARNING_LIGHT_NAMES = {
    "check_engine": "check_engine",
    "engine": "check_engine",
    "cel": "check_engine",
    "oil_pressure": "oil_pressure",
    "oil": "oil_pressure",
    "tpms": "tpms",
    "tire_pressure": "tpms",
    "battery": "battery",
    "charging": "battery",
    "abs": "abs",
    "brake": "brake",
    "airbag": "airbag",
    "srs": "airbag",
    "coolant_temp": "coolant_temp",
    "temperature": "coolant_temp",
    "temp": "coolant_temp",
}

_NON_LETTERS = re.compile(r"[^a-z]+")


def normalize_fuel_level(fuel_level: Any) -> Dict[str, Any]:
    """
    Convert a fuel gauge reading to eighths of a tank.

    Accepts ``{"type": "eighths"|"percent"|"quarters", "value": ...}``, a
    quarter-scale string ("1/2", "F") or a percentage string ("75%").

    Returns:
        Dict with 'fuel_level_eighths' and 'fuel_display_text' (either may be None)
    """
    eighths: Optional[float] = None
    display: Optional[str] = None

    if isinstance(fuel_level, dict):
        kind = (clean_str(fuel_level.get("type")) or "").lower()
        value = fuel_level.get("value")
    elif isinstance(fuel_level, str):
        text = fuel_level.strip()
        kind, value = ("percent", text.rstrip("%")) if text.endswith("%") else ("quarters", text)
    else:
        return {"fuel_level_eighths": None, "fuel_display_text": None}

    if kind == "eighths":
        number = safe_float(value)
        eighths = int(round(number)) if number is not None else None
    elif kind == "percent":
        number = safe_float(value)
        eighths = int(round(number / 100 * 8)) if number is not None else None
    elif kind == "quarters":
        display = clean_str(value)
        if display is not None:
            eighths = QUARTER_EIGHTHS.get(display.lower())

    if eighths is not None and display is None and 0 <= eighths <= 8:
        display = EIGHTHS_DISPLAY[int(eighths)]
    return {"fuel_level_eighths": eighths, "fuel_display_text": display}


def normalize_warning_lights(lights: Any) -> Optional[List[str]]:
    """Map warning light names to standard identifiers, deduplicated in order."""
    if not isinstance(lights, list):
        return None
    normalized: List[str] = []
    for light in lights:
        if not isinstance(light, str) or not light.strip():
            continue
        key = _NON_LETTERS.sub("_", light.strip().lower()).strip("_")
        name = WARNING_LIGHT_NAMES.get(key, "other")
        if name not in normalized:
            normalized.append(name)
    return normalized or None


class DashboardProcessor(DocumentProcessor):
    """
    Extracts instrument cluster readings from a dashboard photo.

    Fuel levels are normalized to eighths, kilometer odometers are converted
    to miles (the original reading is kept) and warning lights are mapped to
    standard names.
    """

    document_type = "dashboard_snapshot"
    version = "2.0.0"
    expected_fields = (
        "odometer_miles",
        "fuel_level_eighths",
        "warning_lights",
        "oil_life_percent",
        "coolant_temp",
        "outside_temp",
    )
    description = "Dashboard snapshot (odometer, fuel, temperatures, warning lights)"

    def get_prompt(self, context: ProcessingContext) -> str:
        return """Analyze this vehicle dashboard / instrument cluster photo and extract the readings.

GAUGE REFERENCE:
- The FUEL gauge is marked E (empty) to F (full), often with a pump icon. Do not confuse it with the
  TEMPERATURE gauge, which is marked C (cold) to H (hot).
- Count the gauge markings: 4 sections means QUARTERS (E, 1/4, 1/2, 3/4, F); 8 sections means EIGHTHS.
- Prefer a digital readout over an analog needle when both are shown.
- The ODOMETER is the total distance, not a trip meter (TRIP A/B). If the unit is km, report km.
- An outside temperature (e.g. 72°F) is weather, not engine temperature.

Return ONLY this JSON object, using null for anything not visible:
{
    "odometer_raw": {"value": 52205, "unit": "mi"},
    "fuel_level": {"type": "eighths", "value": 4},
    "coolant_temp": {"status": "normal"},
    "outside_temp": {"value": 72, "unit": "F"},
    "warning_lights": ["check_engine"],
    "oil_life_percent": 40,
    "service_message": null
}

fuel_level.type is one of "eighths", "quarters" (value "E", "1/4", "1/2", "3/4" or "F") or "percent".
coolant_temp.status is one of "cold", "normal" or "hot"."""

    def parse(self, raw_text: str, context: ProcessingContext) -> Dict[str, Any]:
        result = self.empty_result()
        result.update({
            "odometer_original": None,
            "odometer_conversion_applied": False,
            "fuel_display_text": None,
            "service_message": None,
        })

        parsed = self.extract_json(raw_text)
        if not parsed:
            return result

        miles, original, converted = None, None, False
        if parsed.get("odometer_miles") is not None:
            miles, original, converted = normalize_odometer(parsed.get("odometer_miles"), "mi")
        elif isinstance(parsed.get("odometer_raw"), dict):
            raw = parsed["odometer_raw"]
            miles, original, converted = normalize_odometer(raw.get("value"), raw.get("unit"))

        result.update({
            "odometer_miles": miles,
            "odometer_original": original,
            "odometer_conversion_applied": converted,
            "warning_lights": normalize_warning_lights(parsed.get("warning_lights")),
            "oil_life_percent": safe_float(parsed.get("oil_life_percent")),
            "coolant_temp": parsed.get("coolant_temp") if isinstance(parsed.get("coolant_temp"), dict) else None,
            "outside_temp": parsed.get("outside_temp") if isinstance(parsed.get("outside_temp"), dict) else None,
            "service_message": clean_str(parsed.get("service_message")),
        })
        result.update(normalize_fuel_level(parsed.get("fuel_level")))
        return result

    async def validate(self, data: Dict[str, Any], context: ProcessingContext) -> ValidationResult:
        errors = []
        warnings = []
        confidences: Dict[str, float] = {}

        miles = data.get("odometer_miles")
        if miles is not None:
            problem = check_odometer(miles)
            if problem is None and miles == 0:
                problem = "Odometer reading out of valid range"
            if problem:
                errors.append(problem)
            else:
                confidences["odometer_conf"] = ODOMETER_CONFIDENCE
            if data.get("odometer_conversion_applied"):
                warnings.append("Odometer converted from kilometers")

        eighths = data.get("fuel_level_eighths")
        if eighths is not None:
            if 0 <= eighths <= 8:
                confidences["fuel_conf"] = FUEL_CONFIDENCE
            else:
                errors.append(f"Fuel level {eighths}/8 is outside 0-8")

        oil_life = data.get("oil_life_percent")
        if oil_life is not None and not 0 <= oil_life <= 100:
            errors.append(f"Oil life {oil_life}% is outside 0-100")

        if data.get("warning_lights") is not None:
            confidences["lights_conf"] = LIGHTS_CONFIDENCE

        return ValidationResult.from_checks(errors, warnings, confidences)

    def format(self, data: Dict[str, Any]) -> Optional[str]:
        parts = []
        if data.get("odometer_miles"):
            parts.append(f"Odometer {data['odometer_miles']:,} mi")

        eighths = data.get("fuel_level_eighths")
        if eighths is not None:
            display = data.get("fuel_display_text")
            if display is None and 0 <= eighths <= 8:
                display = EIGHTHS_DISPLAY[int(eighths)]
            parts.append(f"Fuel {display or f'{eighths}/8'}")

        coolant = data.get("coolant_temp") or {}
        status = clean_str(coolant.get("status"))
        if status:
            parts.append(f"Engine {status.capitalize()}")

        outside = data.get("outside_temp") or {}
        if outside.get("value") is not None:
            unit = "°C" if str(outside.get("unit", "")).upper() == "C" else "°F"
            parts.append(f"Outside {outside['value']}{unit}")

        if data.get("oil_life_percent") is not None:
            parts.append(f"Oil {data['oil_life_percent']:g}%")

        lights = data.get("warning_lights")
        if lights:
            parts.append("Lamps: " + ", ".join(light.replace("_", " ") for light in lights))

        return " • ".join(parts) or "Dashboard snapshot"

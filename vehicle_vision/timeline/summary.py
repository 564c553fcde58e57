"""
One-line human summaries of vehicle events.

``generate_summary`` accepts an Event or a plain mapping of the form
``{"type": ..., "payload": ...}``. Every optional fragment is omitted when
its field is absent, and the function never raises.
"""

import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from . import fields
from .vendor import resolve_vendor

logger = logging.getLogger(__name__)

# Event columns visible to field lookups when the payload lacks the key
_EVENT_COLUMNS = ("miles", "total_amount", "gallons")

_SERVICE_DEFAULTS = {
    "service": "Service",
    "maintenance": "Maintenance",
    "repair": "Repair",
}


def extract_amount(source: Any) -> Optional[float]:
    """First numeric of total_amount, extracted_data.total_amount, amount, extracted_data.amount."""
    return fields.get_amount(_split(source)[1])


def format_amount(value: float) -> str:
    return f"${value:,.2f}"


def format_quantity(value: float) -> str:
    """Render a measured quantity without a spurious trailing ``.0``."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.3f}".rstrip("0").rstrip(".")


def format_miles(value: float) -> str:
    return f"{int(round(value)):,}"


def _payload_view(source: Any) -> Dict[str, Any]:
    """Payload of a mapping or Event, with Event columns folded in at top level."""
    if isinstance(source, Mapping):
        payload = source.get("payload") if "payload" in source and "type" in source else source
        return dict(payload) if isinstance(payload, Mapping) else {}

    payload = getattr(source, "payload", None)
    view = dict(payload) if isinstance(payload, Mapping) else {}
    for column in _EVENT_COLUMNS:
        value = getattr(source, column, None)
        if value is not None and view.get(column) is None:
            view[column] = value
    return view


def _type_of(source: Any) -> str:
    if isinstance(source, Mapping):
        value = source.get("type")
    else:
        value = getattr(source, "type", None)
    if isinstance(value, Enum):
        value = value.value
    return str(value).strip().lower() if value is not None else ""


def _split(source: Any) -> Tuple[str, Dict[str, Any]]:
    if isinstance(source, Mapping) and "type" in source:
        view = _payload_view(source)
        for column in _EVENT_COLUMNS:
            if source.get(column) is not None and view.get(column) is None:
                view[column] = source[column]
        return _type_of(source), view
    return _type_of(source), _payload_view(source)


def _vendor_and_amount(payload: Dict[str, Any]) -> str:
    parts = ""
    vendor = resolve_vendor(payload)
    if vendor:
        parts += f" at {vendor}"
    amount = fields.get_amount(payload)
    if amount is not None:
        parts += f" - {format_amount(amount)}"
    return parts


def _fuel(payload: Dict[str, Any]) -> str:
    text = "Fuel"
    gallons = fields.get_gallons(payload)
    if gallons is not None:
        text += f" {format_quantity(gallons)} gal"
    vendor = resolve_vendor(payload)
    if vendor:
        text += f" at {vendor}"
    price = fields.get_price_per_gallon(payload)
    if price is not None:
        text += f" @ {format_amount(price)}/gal"
    amount = fields.get_amount(payload)
    if amount is not None:
        text += f" - {format_amount(amount)}"
    return text


def _service(event_type: str, payload: Dict[str, Any]) -> str:
    title = fields.get_service_title(payload) or _SERVICE_DEFAULTS[event_type]
    return title + _vendor_and_amount(payload)


def _odometer(payload: Dict[str, Any]) -> str:
    miles = fields.get_miles(payload)
    if miles is None:
        return "Odometer"
    return f"Odometer {format_miles(miles)} mi"


def _dashboard(payload: Dict[str, Any]) -> str:
    text = "Dashboard snapshot"
    miles = fields.get_miles(payload)
    if miles is not None:
        text += f" - {format_miles(miles)} mi"
    eighths = fields.get_fuel_eighths(payload)
    if eighths is not None:
        text += f" - fuel {format_quantity(eighths)}/8"
    lights = fields.get_warning_lights(payload)
    if lights:
        noun = "warning light" if len(lights) == 1 else "warning lights"
        text += f" - {len(lights)} {noun}"
    return text


def _inspection(payload: Dict[str, Any]) -> str:
    text = "Inspection"
    vendor = resolve_vendor(payload)
    if vendor:
        text += f" at {vendor}"
    outcome = fields.get_inspection_result(payload)
    if outcome:
        text += f" - {outcome}"
    amount = fields.get_amount(payload)
    if amount is not None:
        text += f" - {format_amount(amount)}"
    return text


def _insurance(payload: Dict[str, Any]) -> str:
    text = "Insurance"
    company = fields.get_insurance_company(payload)
    if company:
        text += f" - {company}"
    policy = fields.get_policy_number(payload)
    if policy:
        text += f" - policy {policy}"
    expires = fields.get_expiration_date(payload)
    if expires:
        text += f" - expires {expires}"
    return text


def _accident(payload: Dict[str, Any]) -> str:
    text = "Accident"
    for value in (fields.get_location(payload), fields.get_severity(payload)):
        if value:
            text += f" - {value}"
    amount = fields.get_amount(payload)
    if amount is not None:
        text += f" - {format_amount(amount)}"
    return text


def _document(payload: Dict[str, Any]) -> str:
    title = fields.get_document_title(payload)
    return f"Document - {title}" if title else "Document"


def _generic(event_type: str, payload: Dict[str, Any]) -> str:
    return f"{event_type or 'unknown'} event" + _vendor_and_amount(payload)


def generate_summary(event: Any) -> str:
    """
    Build a one-line summary for an Event or ``{"type", "payload"}`` mapping.

    Args:
        event: Event instance or mapping

    Returns:
        Summary text, e.g. "Fuel 10 gal at Shell @ $3.49/gal - $34.90"
    """
    try:
        event_type, payload = _split(event)

        if event_type == "fuel":
            return _fuel(payload)
        if event_type in _SERVICE_DEFAULTS:
            return _service(event_type, payload)
        if event_type == "odometer":
            return _odometer(payload)
        if event_type in ("dashboard_snapshot", "dashboard_warning"):
            return _dashboard(payload)
        if event_type == "inspection":
            return _inspection(payload)
        if event_type == "insurance":
            return _insurance(payload)
        if event_type == "accident":
            return _accident(payload)
        if event_type == "document":
            return _document(payload)
        return _generic(event_type, payload)
    except Exception as e:
        logger.warning(f"Summary generation failed: {e}")
        return "Event"

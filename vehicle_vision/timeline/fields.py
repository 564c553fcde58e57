"""
Ordered accessor paths for logical fields in event payloads.

Event payloads carry the same logical value under several keys (top level,
``extracted_data.*``, ``data.*``). Each logical field has one named lookup
function here that walks its paths in a fixed precedence order and returns
the first present, valid value. None of these functions raise.
"""

from typing import Any, Callable, Mapping, Optional, Sequence, Tuple

from ..utils.parsing import is_number

FieldPath = Tuple[str, ...]

VENDOR_PATHS: Sequence[FieldPath] = (
    ("vendor_name",),
    ("extracted_data", "vendor_name"),
    ("station_name",),
    ("extracted_data", "station_name"),
    ("business_name",),
    ("extracted_data", "business_name"),
)

AMOUNT_PATHS: Sequence[FieldPath] = (
    ("total_amount",),
    ("extracted_data", "total_amount"),
    ("amount",),
    ("extracted_data", "amount"),
)

GALLONS_PATHS: Sequence[FieldPath] = (
    ("gallons",),
    ("extracted_data", "gallons"),
)

PRICE_PER_GALLON_PATHS: Sequence[FieldPath] = (
    ("price_per_gallon",),
    ("extracted_data", "price_per_gallon"),
)

MILES_PATHS: Sequence[FieldPath] = (
    ("miles",),
    ("extracted_data", "miles"),
    ("odometer_miles",),
    ("extracted_data", "odometer_miles"),
    ("mileage",),
    ("extracted_data", "mileage"),
    ("reading",),
    ("extracted_data", "reading"),
    ("odometer_reading",),
    ("extracted_data", "odometer_reading"),
)

FUEL_EIGHTHS_PATHS: Sequence[FieldPath] = (
    ("fuel_level_eighths",),
    ("extracted_data", "fuel_level_eighths"),
)

WARNING_LIGHTS_PATHS: Sequence[FieldPath] = (
    ("warning_lights",),
    ("extracted_data", "warning_lights"),
)

SERVICE_TITLE_PATHS: Sequence[FieldPath] = (
    ("service_description",),
    ("extracted_data", "service_description"),
    ("description",),
    ("extracted_data", "description"),
    ("service_type",),
    ("extracted_data", "service_type"),
)

INSURANCE_COMPANY_PATHS: Sequence[FieldPath] = (
    ("insurance_company",),
    ("extracted_data", "insurance_company"),
    ("company",),
    ("extracted_data", "company"),
)

POLICY_NUMBER_PATHS: Sequence[FieldPath] = (
    ("policy_number",),
    ("extracted_data", "policy_number"),
)

EXPIRATION_PATHS: Sequence[FieldPath] = (
    ("expiration_date",),
    ("extracted_data", "expiration_date"),
)

INSPECTION_RESULT_PATHS: Sequence[FieldPath] = (
    ("passed",),
    ("extracted_data", "passed"),
    ("result",),
    ("extracted_data", "result"),
)

LOCATION_PATHS: Sequence[FieldPath] = (
    ("location",),
    ("extracted_data", "location"),
)

SEVERITY_PATHS: Sequence[FieldPath] = (
    ("severity",),
    ("extracted_data", "severity"),
)

DOCUMENT_TITLE_PATHS: Sequence[FieldPath] = (
    ("title",),
    ("extracted_data", "title"),
    ("document_type",),
    ("extracted_data", "document_type"),
)


def get_path(payload: Any, path: FieldPath) -> Any:
    """Follow ``path`` through nested mappings; None when any step is missing."""
    current = payload
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def first_valid(
    payload: Any,
    paths: Sequence[FieldPath],
    accept: Callable[[Any], bool]
) -> Any:
    """Return the first value along ``paths`` that ``accept`` approves, else None."""
    if not isinstance(payload, Mapping):
        return None
    for path in paths:
        value = get_path(payload, path)
        if value is not None and accept(value):
            return value
    return None


def is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _first_string(payload: Any, paths: Sequence[FieldPath]) -> Optional[str]:
    value = first_valid(payload, paths, is_non_empty_string)
    return value.strip() if value is not None else None


def _first_number(payload: Any, paths: Sequence[FieldPath]) -> Optional[float]:
    value = first_valid(payload, paths, is_number)
    return float(value) if value is not None else None


def get_vendor_source(payload: Any) -> Optional[str]:
    """Raw vendor / station / business name, first non-empty string wins."""
    return _first_string(payload, VENDOR_PATHS)


def get_amount(payload: Any) -> Optional[float]:
    return _first_number(payload, AMOUNT_PATHS)


def get_gallons(payload: Any) -> Optional[float]:
    return _first_number(payload, GALLONS_PATHS)


def get_price_per_gallon(payload: Any) -> Optional[float]:
    return _first_number(payload, PRICE_PER_GALLON_PATHS)


def get_miles(payload: Any) -> Optional[float]:
    return _first_number(payload, MILES_PATHS)


def get_fuel_eighths(payload: Any) -> Optional[float]:
    return _first_number(payload, FUEL_EIGHTHS_PATHS)


def get_warning_lights(payload: Any) -> Optional[list]:
    return first_valid(payload, WARNING_LIGHTS_PATHS, lambda value: isinstance(value, list))


def get_service_title(payload: Any) -> Optional[str]:
    return _first_string(payload, SERVICE_TITLE_PATHS)


def get_insurance_company(payload: Any) -> Optional[str]:
    return _first_string(payload, INSURANCE_COMPANY_PATHS)


def get_policy_number(payload: Any) -> Optional[str]:
    return _first_string(payload, POLICY_NUMBER_PATHS)


def get_expiration_date(payload: Any) -> Optional[str]:
    return _first_string(payload, EXPIRATION_PATHS)


def get_inspection_result(payload: Any) -> Optional[str]:
    """"passed" / "failed" from a boolean flag or a result string."""
    value = first_valid(
        payload,
        INSPECTION_RESULT_PATHS,
        lambda v: isinstance(v, bool) or is_non_empty_string(v)
    )
    if isinstance(value, bool):
        return "passed" if value else "failed"
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in ("pass", "passed", "ok"):
        return "passed"
    if lowered in ("fail", "failed"):
        return "failed"
    return value.strip()


def get_location(payload: Any) -> Optional[str]:
    return _first_string(payload, LOCATION_PATHS)


def get_severity(payload: Any) -> Optional[str]:
    return _first_string(payload, SEVERITY_PATHS)


def get_document_title(payload: Any) -> Optional[str]:
    return _first_string(payload, DOCUMENT_TITLE_PATHS)

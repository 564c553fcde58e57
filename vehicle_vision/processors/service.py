"""Service invoice processor."""

import logging
from typing import Any, Dict, List, Optional

from ..models.document import ProcessingContext, ValidationResult
from ..utils.parsing import clean_str, parse_date, safe_float, safe_int
from .base import DocumentProcessor

logger = logging.getLogger(__name__)

LINE_ITEM_TOLERANCE = 1.0

_LINE_ITEM_KEYWORDS = (
    ("labor", ("labor", "service", "diagnostic", "install", "repair", "replace")),
    ("parts", ("part", "filter", "belt", "brake", "battery", "spark")),
    ("fluids", ("oil", "fluid", "coolant", "transmission")),
)


def categorize_line_item(description: Optional[str]) -> str:
    """Bucket a line item into labor, parts, fluids or other."""
    desc = (description or "").lower()
    for category, keywords in _LINE_ITEM_KEYWORDS:
        if any(keyword in desc for keyword in keywords):
            return category
    return "other"


def categorize_service(description: Optional[str]) -> str:
    """Service category from the invoice description."""
    desc = (description or "").lower()
    if not desc:
        return "general"
    if "oil change" in desc or "oil service" in desc:
        return "oil_change"
    if "brake" in desc and any(word in desc for word in ("pad", "rotor", "service")):
        return "brake_service"
    if "tire" in desc and any(word in desc for word in ("rotation", "balance", "alignment")):
        return "tire_service"
    if "transmission" in desc and "service" in desc:
        return "transmission_service"
    if any(word in desc for word in ("inspection", "safety", "emissions")):
        return "inspection"
    if any(word in desc for word in ("tune", "spark plug", "maintenance")):
        return "tune_up"
    if any(word in desc for word in ("diagnostic", "check engine", "scan")):
        return "diagnostic"
    return "general"


class ServiceInvoiceProcessor(DocumentProcessor):
    """
    Extracts shop, work performed, line items and totals from a repair or
    maintenance invoice.
    """

    document_type = "service_invoice"
    version = "1.3.0"
    expected_fields = (
        "vendor_name",
        "service_description",
        "service_type",
        "line_items",
        "total_amount",
        "date",
        "mileage",
    )
    description = "Service / repair invoice (vendor, work performed, line items, total)"

    def get_prompt(self, context: ProcessingContext) -> str:
        return """Analyze this vehicle service invoice and extract the work performed.

Extract:
1. vendor_name: Shop or dealership name
2. service_description: Short description of the work (e.g., "Oil change and tire rotation")
3. service_type: One of maintenance, repair, inspection, diagnostic
4. line_items: List of items, each {"description": str, "amount": number, "category": "labor"|"parts"|"fluids"|"other"}
5. labor_amount, parts_amount, tax_amount: Subtotals if printed (numbers)
6. total_amount: Invoice total (number)
7. date: Service date, YYYY-MM-DD
8. mileage: Odometer at service (number)
9. invoice_number: If printed

Return ONLY a JSON object with these keys. Use null for missing values and [] for no line items.
Amounts are plain numbers without currency symbols."""

    def parse(self, raw_text: str, context: ProcessingContext) -> Dict[str, Any]:
        result = self.empty_result()
        result.update({
            "labor_amount": None,
            "parts_amount": None,
            "tax_amount": None,
            "invoice_number": None,
        })

        parsed = self.extract_json(raw_text)
        if not parsed:
            return result

        result["vendor_name"] = clean_str(parsed.get("vendor_name") or parsed.get("business_name"))
        result["service_description"] = clean_str(parsed.get("service_description") or parsed.get("description"))
        result["service_type"] = clean_str(parsed.get("service_type"))
        result["total_amount"] = safe_float(parsed.get("total_amount", parsed.get("total")))
        result["mileage"] = safe_int(parsed.get("mileage", parsed.get("odometer_reading")))
        result["invoice_number"] = clean_str(parsed.get("invoice_number"))
        for name in ("labor_amount", "parts_amount", "tax_amount"):
            result[name] = safe_float(parsed.get(name))

        parsed_date = parse_date(parsed.get("date"))
        result["date"] = parsed_date.isoformat() if parsed_date else clean_str(parsed.get("date"))

        items = parsed.get("line_items")
        if isinstance(items, list):
            result["line_items"] = self._parse_line_items(items)
        return result

    @staticmethod
    def _parse_line_items(items: List[Any]) -> List[Dict[str, Any]]:
        line_items = []
        for item in items:
            if not isinstance(item, dict):
                continue
            line_items.append({
                "description": clean_str(item.get("description")) or "",
                "amount": safe_float(item.get("amount")),
                "category": clean_str(item.get("category")),
            })
        return line_items

    async def validate(self, data: Dict[str, Any], context: ProcessingContext) -> ValidationResult:
        errors = []
        warnings = []

        total = data.get("total_amount")
        if total is not None and total < 0:
            errors.append("Total amount cannot be negative")
        mileage = data.get("mileage")
        if mileage is not None and mileage < 0:
            errors.append("Mileage cannot be negative")

        items = data.get("line_items") or []
        if any((item.get("amount") or 0) < 0 for item in items):
            errors.append("Line item amounts cannot be negative")

        amounts = [item["amount"] for item in items if item.get("amount") is not None]
        if total is not None and amounts:
            item_sum = sum(amounts)
            # Tax is often printed separately from line items
            tax = data.get("tax_amount") or 0.0
            if min(abs(item_sum - total), abs(item_sum + tax - total)) > LINE_ITEM_TOLERANCE:
                warnings.append(f"Line items sum to ${item_sum:.2f} but total is ${total:.2f}")

        if not data.get("vendor_name"):
            warnings.append("Could not extract vendor name")
        if data.get("date") and parse_date(data["date"]) is None:
            warnings.append(f"Unrecognized date: {data['date']}")

        return ValidationResult.from_checks(errors, warnings)

    async def enrich(self, data: Dict[str, Any], context: ProcessingContext) -> Dict[str, Any]:
        enriched = dict(data)
        enriched["line_items"] = [
            {**item, "category": item.get("category") or categorize_line_item(item.get("description"))}
            for item in data.get("line_items") or []
        ]
        enriched["service_category"] = categorize_service(
            data.get("service_description") or data.get("service_type")
        )
        return enriched

    def format(self, data: Dict[str, Any]) -> Optional[str]:
        parts = []
        if data.get("service_description"):
            parts.append(data["service_description"])
        elif data.get("service_category"):
            parts.append(data["service_category"].replace("_", " "))
        if data.get("vendor_name"):
            parts.append(f"at {data['vendor_name']}")
        if data.get("total_amount") is not None:
            parts.append(f"for ${data['total_amount']:.2f}")
        return " ".join(parts) or "Service record"

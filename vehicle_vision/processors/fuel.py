"""Fuel receipt processor."""

import logging
from typing import Any, Dict, Optional

from ..models.document import ProcessingContext, ValidationResult
from ..utils.parsing import clean_str, parse_date, safe_float, safe_int
from .base import DocumentProcessor

logger = logging.getLogger(__name__)

MIN_GALLONS, MAX_GALLONS = 0.1, 50.0
MIN_PRICE, MAX_PRICE = 1.0, 10.0
MIN_AMOUNT, MAX_AMOUNT = 1.0, 500.0
MISMATCH_RATIO = 0.10
MISMATCH_FLOOR = 1.0

_STRING_FIELDS = (
    "station_name",
    "station_address",
    "fuel_type",
    "date",
    "time",
    "payment_method",
    "card_last_four",
    "transaction_id",
    "auth_code",
    "invoice_number",
)


class FuelReceiptProcessor(DocumentProcessor):
    """Extracts station, totals, gallons and transaction details from a pump receipt."""

    document_type = "fuel_receipt"
    version = "2.1.0"
    expected_fields = (
        "station_name",
        "total_amount",
        "gallons",
        "price_per_gallon",
        "fuel_type",
        "date",
    )
    description = "Fuel receipt (station, amount, gallons, price per gallon)"

    def get_prompt(self, context: ProcessingContext) -> str:
        return """Extract the fuel purchase from this gas station receipt.

Extract:
1. station_name: Brand or station name (e.g., "Shell", "Costco Gas")
2. station_address: Street address if printed
3. total_amount: Total charged (number)
4. gallons: Gallons pumped (number)
5. price_per_gallon: Price per gallon (number, usually 3 decimals)
6. fuel_type: Grade (Regular, Plus, Premium, Diesel)
7. date: Transaction date, YYYY-MM-DD
8. time: Transaction time, HH:MM
9. payment_method: Card brand or cash
10. card_last_four, transaction_id, auth_code, invoice_number: If printed
11. pump_number: Pump number (number)
12. odometer_reading: Only if the receipt asks for and shows one (number)

Return ONLY a JSON object with exactly these keys. Use null for anything not printed.
Amounts are plain numbers without currency symbols."""

    def parse(self, raw_text: str, context: ProcessingContext) -> Dict[str, Any]:
        result = self.empty_result()
        result.update({name: None for name in _STRING_FIELDS})
        result.update({"pump_number": None, "odometer_reading": None})

        parsed = self.extract_json(raw_text)
        if not parsed:
            return result

        for name in _STRING_FIELDS:
            result[name] = clean_str(parsed.get(name))
        if result["station_name"] is None:
            result["station_name"] = clean_str(parsed.get("vendor_name"))

        result["total_amount"] = safe_float(parsed.get("total_amount", parsed.get("amount")))
        result["gallons"] = safe_float(parsed.get("gallons"))
        result["price_per_gallon"] = safe_float(parsed.get("price_per_gallon"))
        result["pump_number"] = safe_int(parsed.get("pump_number"))
        result["odometer_reading"] = safe_int(parsed.get("odometer_reading"))

        parsed_date = parse_date(result["date"])
        if parsed_date is not None:
            result["date"] = parsed_date.isoformat()
        return result

    async def validate(self, data: Dict[str, Any], context: ProcessingContext) -> ValidationResult:
        errors = []
        warnings = []

        amount = data.get("total_amount")
        gallons = data.get("gallons")
        price = data.get("price_per_gallon")

        if not amount or not gallons:
            errors.append("Missing essential fuel data (amount or gallons)")

        if gallons and not MIN_GALLONS <= gallons <= MAX_GALLONS:
            warnings.append(f"Unusual gallon amount: {gallons}")
        if price and not MIN_PRICE <= price <= MAX_PRICE:
            warnings.append(f"Unusual price per gallon: ${price:.2f}")
        if amount and not MIN_AMOUNT <= amount <= MAX_AMOUNT:
            warnings.append(f"Unusual fuel amount: ${amount:.2f}")

        if amount and gallons and price:
            calculated = gallons * price
            tolerance = max(amount * MISMATCH_RATIO, MISMATCH_FLOOR)
            if abs(calculated - amount) > tolerance:
                errors.append(
                    f"Amount calculation mismatch: {calculated:.2f} calculated vs {amount:.2f} actual"
                )

        if data.get("date") and parse_date(data["date"]) is None:
            warnings.append(f"Unrecognized date: {data['date']}")

        if not data.get("station_name"):
            warnings.append("Could not extract station name")

        return ValidationResult.from_checks(errors, warnings)

    async def enrich(self, data: Dict[str, Any], context: ProcessingContext) -> Dict[str, Any]:
        enriched = dict(data)
        amount = data.get("total_amount")
        gallons = data.get("gallons")
        if data.get("price_per_gallon") is None and amount and gallons:
            enriched["price_per_gallon"] = round(amount / gallons, 3)
            enriched["price_per_gallon_derived"] = True
        return enriched

    def format(self, data: Dict[str, Any]) -> Optional[str]:
        parts = []
        amount = data.get("total_amount")
        gallons = data.get("gallons")
        if amount and gallons:
            parts.append(f"${amount:.2f} • {gallons:g} gallons")
        elif amount:
            parts.append(f"${amount:.2f} fuel")
        if data.get("station_name"):
            parts.append(f"at {data['station_name']}")
        if data.get("price_per_gallon"):
            parts.append(f"• ${data['price_per_gallon']:.2f}/gal")
        return " ".join(parts) or None

"""Insurance card processor."""

import logging
from datetime import date
from typing import Any, Dict, Optional

from ..models.document import ProcessingContext, ValidationResult
from ..utils.parsing import clean_str, parse_date, safe_int
from .base import DocumentProcessor

logger = logging.getLogger(__name__)

MIN_POLICY_LENGTH, MAX_POLICY_LENGTH = 5, 20


class InsuranceCardProcessor(DocumentProcessor):
    """Reads insurer, policy number, coverage dates and the insured vehicle from an ID card."""

    document_type = "insurance_card"
    version = "1.1.0"
    expected_fields = (
        "insurance_company",
        "policy_number",
        "effective_date",
        "expiration_date",
        "vehicle_info",
    )
    description = "Insurance ID card (insurer, policy, coverage dates)"

    def get_prompt(self, context: ProcessingContext) -> str:
        return """Extract the details from this auto insurance ID card.

Extract:
1. insurance_company: Insurer name
2. policy_number: Policy number exactly as printed
3. effective_date: Coverage start, YYYY-MM-DD
4. expiration_date: Coverage end, YYYY-MM-DD
5. named_insured: Policyholder name(s)
6. vehicle_info: {"year": number, "make": str, "model": str, "vin": str}
7. naic_code: NAIC company code if printed
8. agent_name, agent_phone: If printed

Return ONLY a JSON object with these keys. Use null for anything not printed."""

    def parse(self, raw_text: str, context: ProcessingContext) -> Dict[str, Any]:
        result = self.empty_result()
        result.update({"named_insured": None, "naic_code": None, "agent_name": None, "agent_phone": None})

        parsed = self.extract_json(raw_text)
        if not parsed:
            return result

        result["insurance_company"] = clean_str(parsed.get("insurance_company") or parsed.get("company"))
        result["policy_number"] = clean_str(parsed.get("policy_number"))
        for name in ("named_insured", "naic_code", "agent_name", "agent_phone"):
            result[name] = clean_str(parsed.get(name))

        for name in ("effective_date", "expiration_date"):
            parsed_date = parse_date(parsed.get(name))
            result[name] = parsed_date.isoformat() if parsed_date else clean_str(parsed.get(name))

        vehicle = parsed.get("vehicle_info")
        if isinstance(vehicle, dict):
            info = {
                "year": safe_int(vehicle.get("year")),
                "make": clean_str(vehicle.get("make")),
                "model": clean_str(vehicle.get("model")),
                "vin": clean_str(vehicle.get("vin")),
            }
            result["vehicle_info"] = info if any(v is not None for v in info.values()) else None
        return result

    async def validate(self, data: Dict[str, Any], context: ProcessingContext) -> ValidationResult:
        errors = []
        warnings = []

        policy = data.get("policy_number")
        if not policy:
            errors.append("Missing policy number")
        elif not MIN_POLICY_LENGTH <= len(str(policy)) <= MAX_POLICY_LENGTH:
            warnings.append(f"Unusual policy number length: {policy}")

        if not data.get("insurance_company"):
            warnings.append("Could not extract insurance company")

        effective = parse_date(data.get("effective_date"))
        expiration = parse_date(data.get("expiration_date"))
        if data.get("effective_date") and effective is None:
            warnings.append(f"Unrecognized effective date: {data['effective_date']}")
        if data.get("expiration_date") and expiration is None:
            warnings.append(f"Unrecognized expiration date: {data['expiration_date']}")

        if effective and expiration and expiration < effective:
            errors.append("Expiration date is before effective date")
        if expiration and expiration < date.today():
            warnings.append("Insurance policy has expired")

        return ValidationResult.from_checks(errors, warnings)

    def format(self, data: Dict[str, Any]) -> Optional[str]:
        parts = [data.get("insurance_company") or "Insurance card"]
        if data.get("policy_number"):
            parts.append(f"Policy {data['policy_number']}")
        if data.get("expiration_date"):
            parts.append(f"expires {data['expiration_date']}")
        return " • ".join(parts)

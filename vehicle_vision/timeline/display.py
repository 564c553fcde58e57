"""Combined display view of an event for timeline rendering."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .confidence import classify_confidence, confidence_warning, extract_confidence
from .summary import extract_amount, format_amount, generate_summary
from .vendor import resolve_vendor


@dataclass
class EventDisplay:
    summary: str
    vendor: Optional[str]
    amount: Optional[float]
    amount_text: Optional[str]
    confidence: float
    confidence_level: str
    warning: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def describe_event(event: Any) -> EventDisplay:
    """
    Interpret an Event (or ``{"type", "payload"}`` mapping) for display.

    Summary, vendor, amount and confidence are resolved through the same
    helpers the rest of the timeline uses, so the view stays consistent.
    """
    payload = event.get("payload", event) if isinstance(event, dict) else event
    confidence = extract_confidence(payload)
    amount = extract_amount(event)
    return EventDisplay(
        summary=generate_summary(event),
        vendor=resolve_vendor(payload),
        amount=amount,
        amount_text=format_amount(amount) if amount is not None else None,
        confidence=confidence,
        confidence_level=classify_confidence(confidence).value,
        warning=confidence_warning(confidence),
    )

"""Vehicle event data models."""

import copy
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from ..utils.errors import DocumentProcessingError, ErrorContext, ErrorType
from ..utils.parsing import parse_date, safe_float, safe_int
from .document import DocumentProcessingResult


class EventType(str, Enum):
    """Known vehicle event types. Unknown types are kept as plain strings."""
    FUEL = "fuel"
    SERVICE = "service"
    MAINTENANCE = "maintenance"
    ODOMETER = "odometer"
    DASHBOARD_SNAPSHOT = "dashboard_snapshot"
    DASHBOARD_WARNING = "dashboard_warning"
    REPAIR = "repair"
    INSPECTION = "inspection"
    INSURANCE = "insurance"
    ACCIDENT = "accident"
    DOCUMENT = "document"
    TIRE_TREAD = "tire_tread"
    TIRE_PRESSURE = "tire_pressure"
    PARKING = "parking"
    DAMAGE = "damage"
    MANUAL = "manual"


DOCUMENT_EVENT_TYPES: Dict[str, EventType] = {
    "fuel_receipt": EventType.FUEL,
    "service_invoice": EventType.SERVICE,
    "insurance_card": EventType.INSURANCE,
    "dashboard_snapshot": EventType.DASHBOARD_SNAPSHOT,
    "odometer": EventType.ODOMETER,
    "vin": EventType.DOCUMENT,
}

_MILEAGE_KEYS = ("odometer_miles", "mileage", "odometer_reading")

# Payload keys mirrored into the Event's own numeric/date columns on edit.
_COLUMN_KEYS = ("miles", "total_amount", "gallons", "date")


def _first_present(data: Mapping[str, Any], keys) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None

def coerce_event_type(value: Union[str, EventType]) -> Union[str, EventType]:
    if isinstance(value, EventType):
        return value
    try:
        return EventType(value)
    except ValueError:
        return value


@dataclass
class EditRecord:
    """
    One committed edit of an event.

    Attributes:
        edited_at: Commit timestamp (UTC)
        changes: Field name -> {"old": ..., "new": ...}
        edited_by: Optional editor identifier
        reason: Optional free-text reason
    """
    edited_at: datetime
    changes: Dict[str, Dict[str, Any]]
    edited_by: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edited_at": self.edited_at.isoformat(),
            "changes": copy.deepcopy(self.changes),
            "edited_by": self.edited_by,
            "reason": self.reason,
        }


@dataclass
class Event:
    """
    A record of something that happened to a vehicle.

    ``payload`` is free-form; the same logical field may live at top level and
    under ``extracted_data``. ``edit_history`` is stored in commit order.
    """
    vehicle_id: str
    type: Union[str, EventType]
    date: date
    payload: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None
    miles: Optional[int] = None
    total_amount: Optional[float] = None
    gallons: Optional[float] = None
    edit_history: List[EditRecord] = field(default_factory=list)

    def __post_init__(self):
        self.type = coerce_event_type(self.type)

    @property
    def type_name(self) -> str:
        return self.type.value if isinstance(self.type, EventType) else str(self.type)

    def apply_edit(
        self,
        changes: Mapping[str, Any],
        edited_by: Optional[str] = None,
        reason: Optional[str] = None
    ) -> EditRecord:
        """
        Apply field changes and append one record to the edit history.

        Values are written at payload top level and, where the key already
        exists there, under ``extracted_data`` as well. Keys naming an Event
        column (miles, total_amount, gallons, date) also update that column.

        Args:
            changes: Field name -> new value
            edited_by: Optional editor identifier
            reason: Optional free-text reason

        Returns:
            The appended EditRecord
        """
        diff: Dict[str, Dict[str, Any]] = {}
        extracted = self.payload.get("extracted_data")

        for key, new_value in changes.items():
            old_value = self._current_value(key)
            if old_value == new_value:
                continue
            diff[key] = {"old": copy.deepcopy(old_value), "new": copy.deepcopy(new_value)}

            self.payload[key] = new_value
            if isinstance(extracted, dict) and key in extracted:
                extracted[key] = new_value
            if key in _COLUMN_KEYS:
                self._set_column(key, new_value)

        record = EditRecord(
            edited_at=datetime.now(timezone.utc),
            changes=diff,
            edited_by=edited_by,
            reason=reason,
        )
        self.edit_history.append(record)
        return record

    def history(self, newest_first: bool = False) -> List[EditRecord]:
        """
        Edit history in chronological order (oldest first).

        ``newest_first=True`` returns a reversed copy for display; stored order
        is never changed.
        """
        records = list(self.edit_history)
        if newest_first:
            records.reverse()
        return records

    def _current_value(self, key: str) -> Any:
        if key in self.payload:
            return self.payload[key]
        extracted = self.payload.get("extracted_data")
        if isinstance(extracted, dict) and key in extracted:
            return extracted[key]
        if key in _COLUMN_KEYS:
            return getattr(self, key)
        return None

    def _set_column(self, key: str, value: Any) -> None:
        if key == "miles":
            self.miles = safe_int(value)
        elif key == "date":
            parsed = parse_date(value)
            if parsed is not None:
                self.date = parsed
        else:
            setattr(self, key, safe_float(value))

    @classmethod
    def from_processing_result(
        cls,
        result: DocumentProcessingResult,
        vehicle_id: str,
        event_type: Optional[Union[str, EventType]] = None,
        override: bool = False
    ) -> "Event":
        """
        Build an Event from a confirmed processing result.

        Args:
            result: Processing result to confirm
            vehicle_id: Vehicle the event belongs to
            event_type: Optional explicit event type (defaults by document type)
            override: Accept data that failed validation

        Returns:
            New, unsaved Event (id is assigned by the persistence layer)

        Raises:
            DocumentProcessingError: For failed results, or invalid data
                without override
        """
        if not result.success:
            error_type = ErrorType.PARSE_FAILED
            if result.error_code in ErrorType.__members__:
                error_type = ErrorType[result.error_code]
            raise DocumentProcessingError(
                ErrorContext(
                    error_type=error_type,
                    message=f"Cannot create event from failed result: {result.error}",
                    recoverable=True,
                    details={"document_type": result.document_type},
                )
            )
        if not result.validation.valid and not override:
            raise DocumentProcessingError.validation_failed(
                result.document_type, result.validation.errors
            )

        data = copy.deepcopy(result.data)
        payload: Dict[str, Any] = dict(data)
        payload["extracted_data"] = copy.deepcopy(data)
        payload["confidence"] = result.confidence
        payload["validation"] = result.validation.to_dict()
        payload["document_type"] = result.document_type
        if result.display_text:
            payload["display_text"] = result.display_text
        if override and not result.validation.valid:
            payload["validation_override"] = True

        resolved_type = event_type or DOCUMENT_EVENT_TYPES.get(result.document_type, EventType.DOCUMENT)
        event_date = parse_date(data.get("date")) or result.timestamp.date()

        return cls(
            vehicle_id=vehicle_id,
            type=resolved_type,
            date=event_date,
            payload=payload,
            miles=safe_int(_first_present(data, _MILEAGE_KEYS)),
            total_amount=safe_float(data.get("total_amount")),
            gallons=safe_float(data.get("gallons")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "vehicle_id": self.vehicle_id,
            "type": self.type_name,
            "date": self.date.isoformat(),
            "payload": copy.deepcopy(self.payload),
            "miles": self.miles,
            "total_amount": self.total_amount,
            "gallons": self.gallons,
            "edit_history": [record.to_dict() for record in self.edit_history],
        }

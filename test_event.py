"""Tests for Event edits, edit history and creation from processing results."""

from datetime import date

import pytest

from vehicle_vision.models.document import DocumentProcessingResult, ValidationResult
from vehicle_vision.models.event import Event, EventType
from vehicle_vision.utils.errors import DocumentProcessingError, ErrorType


def _fuel_result(valid=True):
    validation = ValidationResult.from_checks([] if valid else ["Amount calculation mismatch"])
    return DocumentProcessingResult(
        success=True,
        document_type="fuel_receipt",
        data={"station_name": "Shell", "total_amount": 40.0, "gallons": 11.2, "date": "2024-04-02"},
        validation=validation,
        confidence=0.8,
        display_text="$40.00 • 11.2 gallons at Shell",
    )


def test_from_processing_result_writes_both_locations():
    event = Event.from_processing_result(_fuel_result(), vehicle_id="veh-1")

    assert event.type == EventType.FUEL
    assert event.date == date(2024, 4, 2)
    assert event.total_amount == 40.0
    assert event.gallons == 11.2
    assert event.payload["station_name"] == "Shell"
    assert event.payload["extracted_data"]["station_name"] == "Shell"
    assert event.payload["confidence"] == 0.8
    assert event.payload["validation"]["rollup"] == "ok"


def test_invalid_result_requires_override():
    with pytest.raises(DocumentProcessingError) as exc_info:
        Event.from_processing_result(_fuel_result(valid=False), vehicle_id="veh-1")
    assert exc_info.value.error_code == ErrorType.VALIDATION_FAILED.value

    event = Event.from_processing_result(_fuel_result(valid=False), vehicle_id="veh-1", override=True)
    assert event.payload["validation_override"] is True


def test_failed_result_is_rejected():
    failed = DocumentProcessingResult.failure("odometer", "timed out", ErrorType.UPSTREAM_TIMEOUT.value)
    with pytest.raises(DocumentProcessingError) as exc_info:
        Event.from_processing_result(failed, vehicle_id="veh-1")
    assert exc_info.value.error_code == "UPSTREAM_TIMEOUT"


def test_apply_edit_updates_payload_columns_and_history():
    event = Event.from_processing_result(_fuel_result(), vehicle_id="veh-1")

    record = event.apply_edit({"total_amount": 41.5, "station_name": "Shell"}, edited_by="user-7", reason="typo")

    assert record.changes == {"total_amount": {"old": 40.0, "new": 41.5}}
    assert event.payload["total_amount"] == 41.5
    assert event.payload["extracted_data"]["total_amount"] == 41.5
    assert event.total_amount == 41.5
    assert record.edited_by == "user-7"
    assert record.reason == "typo"


def test_history_order():
    """Stored order is commit order; newest_first only reverses the returned copy."""
    event = Event(vehicle_id="veh-1", type="odometer", date=date(2024, 1, 1), payload={"miles": 100})
    event.apply_edit({"miles": 110})
    event.apply_edit({"miles": 120})
    event.apply_edit({"miles": 130})

    oldest_first = [record.changes["miles"]["new"] for record in event.history()]
    newest_first = [record.changes["miles"]["new"] for record in event.history(newest_first=True)]

    assert oldest_first == [110, 120, 130]
    assert newest_first == [130, 120, 110]
    assert [record.changes["miles"]["new"] for record in event.edit_history] == [110, 120, 130]
    assert event.miles == 130


def test_date_edit_updates_column():
    event = Event(vehicle_id="veh-1", type="service", date=date(2024, 1, 1))
    event.apply_edit({"date": "2024-02-15"})
    assert event.date == date(2024, 2, 15)


def test_unknown_type_kept_as_string():
    event = Event(vehicle_id="veh-1", type="car_wash", date=date(2024, 1, 1))
    assert event.type == "car_wash"
    assert event.to_dict()["type"] == "car_wash"


def test_zero_odometer_reading_is_kept():
    result = DocumentProcessingResult(
        success=True,
        document_type="odometer",
        data={"odometer_miles": 0, "mileage": 99},
        validation=ValidationResult(valid=True),
        confidence=0.8,
    )
    event = Event.from_processing_result(result, vehicle_id="veh-1")
    assert event.miles == 0

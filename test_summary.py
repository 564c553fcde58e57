"""Tests for event summaries and the combined display view."""

from datetime import date

from vehicle_vision.models.event import Event, EventType
from vehicle_vision.timeline.display import describe_event
from vehicle_vision.timeline.summary import extract_amount, format_amount, generate_summary


def test_fuel_omits_absent_fields():
    assert generate_summary({"type": "fuel", "payload": {"gallons": 10}}) == "Fuel 10 gal"


def test_fuel_full():
    event = {
        "type": "fuel",
        "payload": {
            "gallons": 12.5,
            "station_name": "Shell Station Inc.",
            "price_per_gallon": 3.499,
            "total_amount": 43.74,
        },
    }
    assert generate_summary(event) == "Fuel 12.5 gal at Shell @ $3.50/gal - $43.74"


def test_fuel_reads_extracted_data():
    event = {"type": "fuel", "payload": {"extracted_data": {"gallons": 8, "amount": 30}}}
    assert generate_summary(event) == "Fuel 8 gal - $30.00"


def test_service_branches():
    payload = {"service_description": "Oil change", "vendor_name": "Joe's Auto Repair LLC", "total_amount": 89.99}
    assert generate_summary({"type": "service", "payload": payload}) == "Oil change at Joe's - $89.99"
    assert generate_summary({"type": "maintenance", "payload": {}}) == "Maintenance"
    assert generate_summary({"type": "repair", "payload": {"service_type": "Brake job"}}) == "Brake job"


def test_odometer_and_dashboard():
    assert generate_summary({"type": "odometer", "payload": {"miles": 52205}}) == "Odometer 52,205 mi"
    assert generate_summary({"type": "odometer", "payload": {}}) == "Odometer"

    dashboard = {
        "type": "dashboard_snapshot",
        "payload": {"odometer_miles": 61000, "fuel_level_eighths": 4, "warning_lights": ["check_engine"]},
    }
    assert generate_summary(dashboard) == "Dashboard snapshot - 61,000 mi - fuel 4/8 - 1 warning light"

    two_lights = {"type": "dashboard_warning", "payload": {"warning_lights": ["abs", "tpms"]}}
    assert generate_summary(two_lights) == "Dashboard snapshot - 2 warning lights"


def test_inspection_insurance_accident_document():
    inspection = {"type": "inspection", "payload": {"vendor_name": "State Inspection Center", "passed": True, "amount": 25}}
    assert generate_summary(inspection) == "Inspection at State Inspection - passed - $25.00"

    insurance = {
        "type": "insurance",
        "payload": {"insurance_company": "Geico", "policy_number": "ABC12345", "expiration_date": "2025-06-30"},
    }
    assert generate_summary(insurance) == "Insurance - Geico - policy ABC12345 - expires 2025-06-30"

    accident = {"type": "accident", "payload": {"location": "I-95", "severity": "minor", "total_amount": 1200}}
    assert generate_summary(accident) == "Accident - I-95 - minor - $1,200.00"

    assert generate_summary({"type": "document", "payload": {"title": "Registration"}}) == "Document - Registration"
    assert generate_summary({"type": "document", "payload": {}}) == "Document"


def test_unknown_type_uses_generic_template():
    event = {"type": "parking", "payload": {"vendor_name": "SpotHero", "amount": 18}}
    assert generate_summary(event) == "parking event at SpotHero - $18.00"


def test_event_columns_are_fallbacks():
    event = Event(
        vehicle_id="v1",
        type=EventType.FUEL,
        date=date(2024, 1, 5),
        payload={"station_name": "Costco"},
        gallons=11.0,
        total_amount=40.0,
    )
    assert generate_summary(event) == "Fuel 11 gal at Costco - $40.00"
    assert extract_amount(event) == 40.0


def test_payload_values_win_over_columns():
    event = Event(vehicle_id="v1", type="odometer", date=date(2024, 1, 5), payload={"miles": 100}, miles=200)
    assert generate_summary(event) == "Odometer 100 mi"


def test_never_raises_on_odd_input():
    assert generate_summary(None) == "unknown event"
    assert generate_summary({"type": "fuel", "payload": "nonsense"}) == "Fuel"
    assert generate_summary({"type": "fuel", "payload": {"gallons": "ten"}}) == "Fuel"


def test_extract_and_format_amount():
    assert extract_amount({"amount": 5, "extracted_data": {"total_amount": 7}}) == 7
    assert extract_amount({"total_amount": "12"}) is None
    assert format_amount(1234.5) == "$1,234.50"


def test_describe_event():
    event = {
        "type": "fuel",
        "payload": {"gallons": 10, "vendor_name": "Shell", "total_amount": 35.0, "confidence": 0.65},
    }
    view = describe_event(event)
    assert view.summary == "Fuel 10 gal at Shell - $35.00"
    assert view.vendor == "Shell"
    assert view.amount_text == "$35.00"
    assert view.confidence_level == "medium"
    assert view.warning == "Medium confidence - some fields may need verification"
    assert view.to_dict()["confidence"] == 0.65


def test_describe_event_uses_event_level_amount():
    event = {"type": "service", "payload": {"vendor_name": "Midas"}, "total_amount": 120.0}
    view = describe_event(event)
    assert view.summary == "Service at Midas - $120.00"
    assert view.amount == 120.0
    assert view.amount_text == "$120.00"
    assert extract_amount(event) == 120.0

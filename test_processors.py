"""Tests for the built-in document processors."""

import json
from datetime import date, timedelta

import pytest

from vehicle_vision.models.document import ProcessingContext
from vehicle_vision.processors.dashboard import (
    DashboardProcessor,
    normalize_fuel_level,
    normalize_warning_lights,
)
from vehicle_vision.processors.fuel import FuelReceiptProcessor
from vehicle_vision.processors.insurance import InsuranceCardProcessor
from vehicle_vision.processors.odometer import OdometerProcessor
from vehicle_vision.processors.service import (
    ServiceInvoiceProcessor,
    categorize_line_item,
    categorize_service,
)
from vehicle_vision.processors.vin import VinProcessor, compute_check_digit


def ctx(document_type):
    return ProcessingContext(document_type=document_type, session_id="test-session")


# Dashboard

def test_fuel_level_normalization():
    assert normalize_fuel_level({"type": "eighths", "value": 5})["fuel_level_eighths"] == 5
    assert normalize_fuel_level({"type": "percent", "value": 50})["fuel_level_eighths"] == 4
    assert normalize_fuel_level({"type": "quarters", "value": "3/4"})["fuel_level_eighths"] == 6
    assert normalize_fuel_level({"type": "quarters", "value": "E"})["fuel_level_eighths"] == 0
    assert normalize_fuel_level("F")["fuel_level_eighths"] == 8
    assert normalize_fuel_level("25%")["fuel_level_eighths"] == 2
    assert normalize_fuel_level(None)["fuel_level_eighths"] is None


def test_warning_lights_are_mapped_and_deduped():
    lights = normalize_warning_lights(["Check Engine", "CEL", "Tire Pressure", "mystery", "", 7])
    assert lights == ["check_engine", "tpms", "other"]
    assert normalize_warning_lights([]) is None
    assert normalize_warning_lights("check engine") is None


@pytest.mark.asyncio
async def test_dashboard_km_conversion_and_confidences():
    processor = DashboardProcessor()
    raw = json.dumps({
        "odometer_raw": {"value": 80450, "unit": "km"},
        "fuel_level": {"type": "quarters", "value": "1/2"},
        "warning_lights": ["oil"],
        "oil_life_percent": 40,
    })

    data = processor.parse(raw, ctx("dashboard_snapshot"))
    assert data["odometer_miles"] == 50000
    assert data["odometer_original"] == {"value": 80450.0, "unit": "km"}
    assert data["odometer_conversion_applied"] is True
    assert data["fuel_level_eighths"] == 4
    assert data["warning_lights"] == ["oil_pressure"]

    validation = await processor.validate(data, ctx("dashboard_snapshot"))
    assert validation.valid
    assert validation.rollup == "ok"
    assert validation.field_confidences == {"odometer_conf": 0.95, "fuel_conf": 0.92, "lights_conf": 0.88}
    assert "Odometer converted from kilometers" in validation.warnings


@pytest.mark.asyncio
async def test_dashboard_range_errors():
    processor = DashboardProcessor()
    data = processor.parse(
        json.dumps({"odometer_miles": 1_500_000, "fuel_level": {"type": "eighths", "value": 11}, "oil_life_percent": 140}),
        ctx("dashboard_snapshot"),
    )
    validation = await processor.validate(data, ctx("dashboard_snapshot"))
    assert not validation.valid
    assert validation.rollup == "needs_review"
    assert len(validation.errors) == 3
    assert "odometer_conf" not in validation.field_confidences


def test_dashboard_unreadable_output_is_unusable():
    processor = DashboardProcessor()
    data = processor.parse("I cannot see a dashboard in this image.", ctx("dashboard_snapshot"))
    assert not processor.is_usable(data)
    assert data["odometer_miles"] is None


def test_dashboard_format():
    processor = DashboardProcessor()
    text = processor.format({
        "odometer_miles": 52205,
        "fuel_level_eighths": 4,
        "fuel_display_text": None,
        "coolant_temp": {"status": "normal"},
        "warning_lights": ["check_engine"],
    })
    assert text == "Odometer 52,205 mi • Fuel 1/2 • Engine Normal • Lamps: check engine"


# Odometer

def test_odometer_plain_text():
    processor = OdometerProcessor()
    data = processor.parse("52,205 mi", ctx("odometer"))
    assert data["odometer_miles"] == 52205
    assert data["odometer_conversion_applied"] is False


def test_odometer_json_km():
    processor = OdometerProcessor()
    data = processor.parse('```json\n{"odometer_reading": 16090, "unit": "km"}\n```', ctx("odometer"))
    assert data["odometer_miles"] == 10000
    assert data["odometer_conversion_applied"] is True


@pytest.mark.asyncio
async def test_odometer_validation_limits():
    processor = OdometerProcessor()
    negative = await processor.validate({"odometer_miles": -5}, ctx("odometer"))
    too_high = await processor.validate({"odometer_miles": 1_000_000}, ctx("odometer"))
    fine = await processor.validate({"odometer_miles": 999_999}, ctx("odometer"))
    assert not negative.valid
    assert not too_high.valid
    assert fine.valid
    assert fine.field_confidences == {"odometer_conf": 0.95}


# Fuel receipt

FUEL_JSON = json.dumps({
    "station_name": "Shell",
    "total_amount": "$41.25",
    "gallons": 11.5,
    "price_per_gallon": 3.587,
    "fuel_type": "Regular",
    "date": "04/02/2024",
    "transaction_id": "TX-99",
})


@pytest.mark.asyncio
async def test_fuel_parse_and_validate():
    processor = FuelReceiptProcessor()
    data = processor.parse(FUEL_JSON, ctx("fuel_receipt"))

    assert data["total_amount"] == 41.25
    assert data["date"] == "2024-04-02"
    assert data["transaction_id"] == "TX-99"

    validation = await processor.validate(data, ctx("fuel_receipt"))
    assert validation.valid
    assert validation.warnings == []


@pytest.mark.asyncio
async def test_fuel_missing_amount_is_error():
    processor = FuelReceiptProcessor()
    validation = await processor.validate({"gallons": 10.0, "station_name": "Shell"}, ctx("fuel_receipt"))
    assert validation.errors == ["Missing essential fuel data (amount or gallons)"]


@pytest.mark.asyncio
async def test_fuel_mismatch_tolerance():
    processor = FuelReceiptProcessor()
    # 10 gal x $4.00 = $40.00; 10% of $43.50 is $4.35 so this passes
    within = await processor.validate(
        {"station_name": "Shell", "total_amount": 43.5, "gallons": 10.0, "price_per_gallon": 4.0},
        ctx("fuel_receipt"),
    )
    beyond = await processor.validate(
        {"station_name": "Shell", "total_amount": 60.0, "gallons": 10.0, "price_per_gallon": 4.0},
        ctx("fuel_receipt"),
    )
    assert within.valid
    assert not beyond.valid
    assert "mismatch" in beyond.errors[0]


@pytest.mark.asyncio
async def test_fuel_unusual_values_are_warnings():
    processor = FuelReceiptProcessor()
    validation = await processor.validate(
        {"station_name": "Truck Stop", "total_amount": 600.0, "gallons": 60.0, "price_per_gallon": 10.5,
         "date": "sometime"},
        ctx("fuel_receipt"),
    )
    assert validation.valid
    assert len(validation.warnings) == 4


@pytest.mark.asyncio
async def test_fuel_enrich_derives_price():
    processor = FuelReceiptProcessor()
    enriched = await processor.enrich({"total_amount": 40.0, "gallons": 10.0, "price_per_gallon": None}, ctx("fuel_receipt"))
    assert enriched["price_per_gallon"] == 4.0
    assert enriched["price_per_gallon_derived"] is True


# Service invoice

def test_line_item_and_service_categories():
    assert categorize_line_item("Labor - 1.5 hrs") == "labor"
    assert categorize_line_item("Oil filter") == "parts"
    assert categorize_line_item("5W-30 synthetic oil") == "fluids"
    assert categorize_line_item("Shop supplies") == "other"
    assert categorize_service("Full synthetic oil change") == "oil_change"
    assert categorize_service("Front brake pads") == "brake_service"
    assert categorize_service("Tire rotation") == "tire_service"
    assert categorize_service(None) == "general"


@pytest.mark.asyncio
async def test_service_invoice_flow():
    processor = ServiceInvoiceProcessor()
    raw = json.dumps({
        "vendor_name": "Joe's Auto Repair LLC",
        "service_description": "Oil change",
        "line_items": [
            {"description": "Synthetic oil", "amount": 45.0},
            {"description": "Oil filter", "amount": 12.0},
            {"description": "Labor", "amount": 30.0},
        ],
        "total_amount": 95.0,
        "date": "2024-03-10",
        "mileage": 48200,
    })
    data = processor.parse(raw, ctx("service_invoice"))
    validation = await processor.validate(data, ctx("service_invoice"))

    assert validation.valid
    assert validation.warnings == ["Line items sum to $87.00 but total is $95.00"]

    enriched = await processor.enrich(data, ctx("service_invoice"))
    assert [item["category"] for item in enriched["line_items"]] == ["fluids", "parts", "labor"]
    assert enriched["service_category"] == "oil_change"
    assert processor.format(enriched) == "Oil change at Joe's Auto Repair LLC for $95.00"


@pytest.mark.asyncio
async def test_service_negative_values_are_errors():
    processor = ServiceInvoiceProcessor()
    validation = await processor.validate(
        {"vendor_name": "Shop", "total_amount": -10.0, "mileage": -1, "line_items": []},
        ctx("service_invoice"),
    )
    assert len(validation.errors) == 2


# Insurance card

@pytest.mark.asyncio
async def test_insurance_rules():
    processor = InsuranceCardProcessor()
    future = (date.today() + timedelta(days=180)).isoformat()
    past = (date.today() - timedelta(days=30)).isoformat()

    ok = await processor.validate(
        {"insurance_company": "Geico", "policy_number": "GX1234567", "effective_date": "2024-01-01",
         "expiration_date": future},
        ctx("insurance_card"),
    )
    missing_policy = await processor.validate({"insurance_company": "Geico"}, ctx("insurance_card"))
    reversed_dates = await processor.validate(
        {"insurance_company": "Geico", "policy_number": "GX1234567", "effective_date": future,
         "expiration_date": past},
        ctx("insurance_card"),
    )
    expired = await processor.validate(
        {"insurance_company": "Geico", "policy_number": "GX1234567", "effective_date": "2020-01-01",
         "expiration_date": past},
        ctx("insurance_card"),
    )

    assert ok.valid and ok.warnings == []
    assert missing_policy.errors == ["Missing policy number"]
    assert "Expiration date is before effective date" in reversed_dates.errors
    assert expired.valid
    assert "Insurance policy has expired" in expired.warnings


def test_insurance_parse_vehicle_info():
    processor = InsuranceCardProcessor()
    data = processor.parse(
        json.dumps({
            "insurance_company": "State Farm",
            "policy_number": "123 4567-C08-45",
            "effective_date": "01/15/2024",
            "expiration_date": "07/15/2024",
            "vehicle_info": {"year": "2019", "make": "Honda", "model": "Civic", "vin": None},
        }),
        ctx("insurance_card"),
    )
    assert data["effective_date"] == "2024-01-15"
    assert data["vehicle_info"] == {"year": 2019, "make": "Honda", "model": "Civic", "vin": None}


# VIN

def test_check_digit():
    assert compute_check_digit("1M8GDM9AXKP042788") == "X"
    assert compute_check_digit("1HGCM82633A004352") == "3"


@pytest.mark.asyncio
async def test_vin_validation():
    processor = VinProcessor()
    good = await processor.validate({"vin": "1HGCM82633A004352"}, ctx("vin"))
    bad_digit = await processor.validate({"vin": "1HGCM82643A004352"}, ctx("vin"))
    short = await processor.validate({"vin": "1HGCM8263"}, ctx("vin"))
    forbidden = await processor.validate({"vin": "1HGCM82633A00435O"}, ctx("vin"))

    assert good.valid
    assert not bad_digit.valid and "check digit" in bad_digit.errors[0]
    assert not short.valid
    assert not forbidden.valid and "invalid characters: O" in forbidden.errors[0]


def test_vin_parse_from_text():
    processor = VinProcessor()
    assert processor.parse("The VIN reads 1hgcm82633a004352.", ctx("vin"))["vin"] == "1HGCM82633A004352"
    assert processor.parse('{"vin": "1HG CM826 33A004352"}', ctx("vin"))["vin"] == "1HGCM82633A004352"
    assert processor.parse("nothing here", ctx("vin"))["vin"] is None


class FakeDecoder:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    async def decode(self, vin):
        self.calls.append(vin)
        if self.fail:
            raise ConnectionError("vPIC unreachable")
        return {"make": "HONDA", "model": "Accord", "year": 2003, "source": "nhtsa"}


@pytest.mark.asyncio
async def test_vin_enrichment_online():
    processor = VinProcessor(decoder=FakeDecoder())
    enriched = await processor.enrich({"vin": "1HGCM82633A004352"}, ctx("vin"))
    assert enriched["vehicle"]["model"] == "Accord"
    assert enriched["vehicle"]["source"] == "nhtsa"
    assert processor.format(enriched) == "VIN 1HGCM82633A004352 (2003 HONDA Accord)"


@pytest.mark.asyncio
async def test_vin_enrichment_degrades_to_offline():
    processor = VinProcessor(decoder=FakeDecoder(fail=True))
    enriched = await processor.enrich({"vin": "1HGCM82633A004352"}, ctx("vin"))
    assert enriched["vehicle"] == {"source": "offline", "year": 2003, "make": "Honda", "country": "USA"}
    assert "decode_warning" in enriched

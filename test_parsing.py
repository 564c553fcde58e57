"""Tests for model output parsing helpers."""

from datetime import date

import pytest

from vehicle_vision.utils.parsing import ModelOutputParser, clean_str, is_number, parse_date, safe_float, safe_int


def test_extract_json_from_markdown():
    text = 'Here you go:\n```json\n{"gallons": 11.5}\n```'
    assert ModelOutputParser.extract_json(text) == {"gallons": 11.5}


def test_extract_raw_json():
    assert ModelOutputParser.extract_json('{"vin": "1HGCM82633A004352"}') == {"vin": "1HGCM82633A004352"}


def test_extract_embedded_json_with_braces_in_strings():
    text = 'The receipt reads {"station_name": "Gas {N} Go", "total_amount": 40} as shown.'
    assert ModelOutputParser.extract_json(text) == {"station_name": "Gas {N} Go", "total_amount": 40}


def test_extract_skips_broken_objects():
    text = 'First {not json} then {"odometer_reading": 100}'
    assert ModelOutputParser.extract_json(text) == {"odometer_reading": 100}


@pytest.mark.parametrize("text", [None, "", "   ", "no json here", "[1, 2, 3]", '{"unterminated": '])
def test_extract_returns_none(text):
    assert ModelOutputParser.extract_json(text) is None


@pytest.mark.parametrize(
    "value, expected",
    [
        (12, 12.0),
        ("$1,234.50", 1234.5),
        ("12.3 gal", 12.3),
        ("-5", -5.0),
        (".75", 0.75),
        (True, None),
        (None, None),
        ("n/a", None),
        (float("nan"), None),
        ([], None),
    ],
)
def test_safe_float(value, expected):
    assert safe_float(value) == expected


def test_safe_int_rounds():
    assert safe_int("52,205.6") == 52206
    assert safe_int("abc") is None


def test_is_number():
    assert is_number(3)
    assert is_number(0.5)
    assert not is_number(True)
    assert not is_number("3")
    assert not is_number(float("inf"))


def test_clean_str():
    assert clean_str("  Shell  ") == "Shell"
    assert clean_str("null") is None
    assert clean_str("") is None
    assert clean_str(42) == "42"
    assert clean_str(["x"]) is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-04-02", date(2024, 4, 2)),
        ("04/02/2024", date(2024, 4, 2)),
        ("04/02/24", date(2024, 4, 2)),
        ("Apr 2, 2024", date(2024, 4, 2)),
        ("April 2, 2024", date(2024, 4, 2)),
        ("2 Apr 2024", date(2024, 4, 2)),
        (date(2024, 4, 2), date(2024, 4, 2)),
        ("sometime last week", None),
        (None, None),
    ],
)
def test_parse_date(value, expected):
    assert parse_date(value) == expected

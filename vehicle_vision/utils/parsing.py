"""Parsing helpers for raw vision model output."""

import json
import logging
import math
import re
from datetime import date, datetime
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


class ModelOutputParser:
    """
    Extracts a JSON object from free-form vision model text.

    Tries, in order:
    1. Markdown code blocks (```json ... ```)
    2. Raw JSON (entire response)
    3. JSON embedded in text (first complete object found by brace counting)

    Every method returns None instead of raising so processors can fall back
    to partial results.
    """

    @staticmethod
    def extract_json(response_text: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Extract the first JSON object from a model response.

        Args:
            response_text: Raw response text that may contain JSON

        Returns:
            Parsed JSON dictionary, or None if no valid object was found
        """
        if not isinstance(response_text, str) or not response_text.strip():
            logger.debug("Empty model response provided")
            return None

        text = response_text.strip()

        for method in (
            ModelOutputParser._extract_markdown_json,
            ModelOutputParser._extract_raw_json,
            ModelOutputParser._extract_embedded_json,
        ):
            data = method(text)
            if data is not None:
                return data

        logger.warning(f"Failed to extract JSON from model response: {text[:200]}...")
        return None

    @staticmethod
    def _extract_markdown_json(text: str) -> Optional[Dict[str, Any]]:
        patterns = [
            r'```json\s*\n?(.*?)\n?```',
            r'```\s*\n?(.*?)\n?```'
        ]

        for pattern in patterns:
            match = re.search(pattern, text, re.DOTALL)
            if match:
                try:
                    data = json.loads(match.group(1).strip())
                except json.JSONDecodeError:
                    continue
                if isinstance(data, dict):
                    return data

        return None

    @staticmethod
    def _extract_raw_json(text: str) -> Optional[Dict[str, Any]]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def _extract_embedded_json(text: str) -> Optional[Dict[str, Any]]:
        """Find a JSON object embedded in prose using brace counting."""
        start_idx = text.find('{')
        while start_idx != -1:
            brace_count = 0
            in_string = False
            escape_next = False
            end_idx = -1

            for i in range(start_idx, len(text)):
                char = text[i]
                if escape_next:
                    escape_next = False
                    continue
                if char == '\\':
                    escape_next = True
                    continue
                if char == '"':
                    in_string = not in_string
                    continue
                if in_string:
                    continue
                if char == '{':
                    brace_count += 1
                elif char == '}':
                    brace_count -= 1
                    if brace_count == 0:
                        end_idx = i
                        break

            if end_idx == -1:
                return None

            try:
                data = json.loads(text[start_idx:end_idx + 1])
                if isinstance(data, dict):
                    return data
            except json.JSONDecodeError:
                pass

            start_idx = text.find('{', end_idx + 1)

        return None


_NUMBER_RE = re.compile(r'-?\d[\d,]*(?:\.\d+)?|-?\.\d+')


def is_number(value: Any) -> bool:
    """True for finite ints/floats; bools are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def safe_float(value: Any) -> Optional[float]:
    """
    Convert model output to float.

    Accepts numbers and strings such as "$1,234.50" or "12.3 gal".

    Returns:
        Float value or None if conversion fails
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _NUMBER_RE.search(value.replace(' ', ''))
        if not match:
            return None
        try:
            result = float(match.group(0).replace(',', ''))
        except ValueError:
            return None
        return result if math.isfinite(result) else None
    return None


def safe_int(value: Any) -> Optional[int]:
    """Convert model output to int (rounded), or None."""
    result = safe_float(value)
    return int(round(result)) if result is not None else None


def clean_str(value: Any) -> Optional[str]:
    """Return a stripped string, or None for empty / non-string values."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or value.lower() in ("null", "none", "n/a", "unknown"):
        return None
    return value


_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%Y/%m/%d", "%b %d, %Y", "%B %d, %Y", "%d %b %Y")


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a date printed on a receipt or card.

    Returns:
        date or None when the text matches none of the known layouts
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = clean_str(value)
    if text is None:
        return None
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None

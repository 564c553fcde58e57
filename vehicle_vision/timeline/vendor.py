"""Vendor name resolution and normalization for event payloads."""

import logging
import re
from typing import Any, Mapping, Optional

from .fields import get_vendor_source

logger = logging.getLogger(__name__)

LEGAL_SUFFIXES = (
    "llc", "inc", "corp", "corporation", "ltd", "limited", "co", "company",
)

CATEGORY_WORDS = (
    "automotive", "auto", "service", "services", "repair", "shop", "center", "station",
)

_STRIP_PATTERN = re.compile(
    r"(?<![\w'\-])(?:" + "|".join(LEGAL_SUFFIXES + CATEGORY_WORDS) + r")(?![\w'\-])\.?",
    re.IGNORECASE,
)
_WHITESPACE = re.compile(r"\s+")
_DANGLING = re.compile(r"^[\s,.&/\-]+|[\s,&/\-]+$")
_SEPARATOR_RUNS = re.compile(r"\s*,(\s*,)+")


def normalize_vendor_name(name: str) -> str:
    """
    Strip legal suffixes and category words from a business name.

    "Joe's Auto Repair LLC" -> "Joe's". When nothing would remain the
    original name is returned unchanged ("Auto Repair Shop"). Applying the
    function twice gives the same result as applying it once.
    """
    if not isinstance(name, str):
        return name

    cleaned = _STRIP_PATTERN.sub(" ", name)
    cleaned = _SEPARATOR_RUNS.sub(",", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned)
    cleaned = _DANGLING.sub("", cleaned).strip()

    if not cleaned:
        return name.strip()
    return cleaned


def _source_of(source: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(source, Mapping):
        return source
    payload = getattr(source, "payload", None)
    return payload if isinstance(payload, Mapping) else None


def resolve_vendor_raw(source: Any) -> Optional[str]:
    """First non-empty vendor / station / business name, unnormalized."""
    return get_vendor_source(_source_of(source))


def resolve_vendor(source: Any) -> Optional[str]:
    """Display vendor name for a payload or Event, normalized. Never raises."""
    raw = resolve_vendor_raw(source)
    if raw is None:
        return None
    try:
        return normalize_vendor_name(raw)
    except Exception as e:
        logger.debug(f"Vendor normalization failed for {raw!r}: {e}")
        return raw

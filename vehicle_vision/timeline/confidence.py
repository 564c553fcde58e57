"""
Confidence extraction for event payloads.

A payload may carry a confidence score in several places depending on which
processor and which schema generation produced it. ``extract_confidence``
resolves them in a fixed order and always returns a float in [0, 1].
"""

import logging
import math
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional

from .fields import get_path

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.6
VALIDATION_OK_CONFIDENCE = 0.8

HIGH_THRESHOLD = 0.8
MEDIUM_THRESHOLD = 0.6

LOW_WARNING_THRESHOLD = 0.5
MEDIUM_WARNING_THRESHOLD = 0.7

LOW_CONFIDENCE_WARNING = "Low confidence - please review extracted data"
MEDIUM_CONFIDENCE_WARNING = "Medium confidence - some fields may need verification"
HIGH_CONFIDENCE_MESSAGE = "High confidence"

FIELD_CONFIDENCE_KEYS = ("odometer_conf", "fuel_conf", "lights_conf")


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def normalize_confidence(value: Any) -> Optional[float]:
    """
    Read a raw value as a confidence score.

    Values in [0, 1] are returned as-is, values in (1, 100] are treated as
    percentages. Anything else (bools, strings, NaN, negatives, > 100) is None.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or value < 0:
        return None
    if value <= 1:
        return float(value)
    if value <= 100:
        return float(value) / 100.0
    return None


def _payload_of(source: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(source, Mapping):
        return source
    payload = getattr(source, "payload", None)
    if isinstance(payload, Mapping):
        return payload
    return None


def _unit_values(values: Iterable[Any]) -> List[float]:
    scores = []
    for value in values:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if math.isnan(value) or value < 0 or value > 1:
            continue
        scores.append(float(value))
    return scores


def estimate_confidence(source: Any) -> Optional[float]:
    """
    Heuristic score from per-field validation confidences.

    Averages ``data.validation.{odometer_conf, fuel_conf, lights_conf}`` and
    any numeric ``validation.*`` value in [0, 1]. Returns None when there is
    nothing to average.
    """
    payload = _payload_of(source)
    if payload is None:
        return None

    samples: List[float] = []
    data_validation = get_path(payload, ("data", "validation"))
    if isinstance(data_validation, Mapping):
        samples.extend(_unit_values(data_validation.get(key) for key in FIELD_CONFIDENCE_KEYS))

    validation = payload.get("validation")
    if isinstance(validation, Mapping):
        samples.extend(_unit_values(validation.values()))

    if not samples:
        return None
    return sum(samples) / len(samples)


def extract_confidence(source: Any) -> float:
    """
    Resolve a confidence score for a payload or Event.

    Precedence, first match wins:
        1. ``confidence``
        2. ``data.confidence``
        3. ``data.validation.rollup == "ok"`` -> 0.8
        4. ``extracted_data.confidence``
        5. estimate from per-field validation confidences
    Falls back to 0.6. Never raises.

    Args:
        source: Payload mapping or an object with a ``payload`` mapping

    Returns:
        Confidence in [0, 1]
    """
    try:
        payload = _payload_of(source)
        if payload is None:
            return DEFAULT_CONFIDENCE

        for path in (("confidence",), ("data", "confidence")):
            score = normalize_confidence(get_path(payload, path))
            if score is not None:
                return score

        if get_path(payload, ("data", "validation", "rollup")) == "ok":
            return VALIDATION_OK_CONFIDENCE

        score = normalize_confidence(get_path(payload, ("extracted_data", "confidence")))
        if score is not None:
            return score

        estimated = estimate_confidence(payload)
        if estimated is not None:
            return estimated
    except Exception as e:
        logger.debug(f"Confidence extraction fell back to default: {e}")

    return DEFAULT_CONFIDENCE


def classify_confidence(confidence: float) -> ConfidenceLevel:
    if confidence >= HIGH_THRESHOLD:
        return ConfidenceLevel.HIGH
    if confidence >= MEDIUM_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def confidence_warning(confidence: float) -> Optional[str]:
    """User-facing review warning, or None when no review is suggested."""
    if confidence < LOW_WARNING_THRESHOLD:
        return LOW_CONFIDENCE_WARNING
    if confidence < MEDIUM_WARNING_THRESHOLD:
        return MEDIUM_CONFIDENCE_WARNING
    return None


def confidence_message(confidence: float) -> str:
    return confidence_warning(confidence) or HIGH_CONFIDENCE_MESSAGE

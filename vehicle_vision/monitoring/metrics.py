"""
Vision processing metrics.

``VisionMetricsCollector`` keeps running aggregates of processing requests
(counts, latencies, errors, per-document-type stats) and of accuracy feedback
(per-field accuracy, confidence calibration). One collector is created at
process start and passed to the pipeline and the HTTP surface.
"""

import json
import logging
import math
import threading
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, Mapping, Optional

import numpy as np

logger = logging.getLogger(__name__)

CALIBRATION_BUCKET_WIDTH = 0.1

CRITICAL_SUCCESS_RATE = 0.80
CRITICAL_ACCURACY = 0.70
WARNING_SUCCESS_RATE = 0.95
WARNING_ACCURACY = 0.90
WARNING_PROCESSING_TIME_MS = 10000


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


def classify_health(snapshot: Mapping[str, Any]) -> HealthStatus:
    """
    Classify a metrics snapshot.

    Critical when success rate < 0.80 or overall accuracy < 0.70; warning
    when success rate < 0.95, overall accuracy < 0.90 or average processing
    time > 10s; healthy otherwise. Indicators that are None are skipped.
    """
    success_rate = snapshot.get("success_rate")
    accuracy = snapshot.get("overall_accuracy")
    avg_time = snapshot.get("avg_processing_time_ms")

    if (success_rate is not None and success_rate < CRITICAL_SUCCESS_RATE) or (
        accuracy is not None and accuracy < CRITICAL_ACCURACY
    ):
        return HealthStatus.CRITICAL

    if (
        (success_rate is not None and success_rate < WARNING_SUCCESS_RATE)
        or (accuracy is not None and accuracy < WARNING_ACCURACY)
        or (avg_time is not None and avg_time > WARNING_PROCESSING_TIME_MS)
    ):
        return HealthStatus.WARNING

    return HealthStatus.HEALTHY


def _bucket_for(confidence: float) -> int:
    return min(int(confidence / CALIBRATION_BUCKET_WIDTH), int(1 / CALIBRATION_BUCKET_WIDTH) - 1)


class VisionMetricsCollector:
    """
    Thread-safe aggregator for vision processing metrics.

    Every ``record_*`` call updates all aggregates under one lock, so
    concurrent callers never lose updates. Latency percentiles are computed
    over the most recent ``max_stored_times`` requests.
    """

    def __init__(self, max_stored_times: int = 1000, log_every: int = 100):
        self.max_stored_times = max_stored_times
        self.log_every = log_every
        self._lock = threading.Lock()
        self._reset_state()

    def _reset_state(self) -> None:
        self._total_requests = 0
        self._successful_requests = 0
        self._total_processing_time_ms = 0.0
        self._processing_times: Deque[float] = deque(maxlen=self.max_stored_times)
        self._error_counts: Dict[str, int] = {}
        self._doc_stats: Dict[str, Dict[str, float]] = {}
        self._field_tallies: Dict[str, Dict[str, float]] = {}
        self._accuracy_samples = 0
        self._calibration: Dict[int, Dict[str, float]] = {}

    def record_request(
        self,
        document_type: str,
        processing_time_ms: float,
        success: bool,
        confidence: Optional[float] = None,
        error_code: Optional[str] = None
    ) -> None:
        """
        Record one processing request.

        Args:
            document_type: Processed document type
            processing_time_ms: End-to-end processing time
            success: Whether processing succeeded
            confidence: Result confidence (successful requests)
            error_code: ErrorType value for failed requests
        """
        with self._lock:
            self._total_requests += 1
            self._total_processing_time_ms += processing_time_ms
            self._processing_times.append(processing_time_ms)

            stats = self._doc_stats.setdefault(
                document_type,
                {"count": 0, "successes": 0, "total_time_ms": 0.0, "confidence_sum": 0.0, "confidence_count": 0},
            )
            stats["count"] += 1
            stats["total_time_ms"] += processing_time_ms

            if success:
                self._successful_requests += 1
                stats["successes"] += 1
                if confidence is not None and math.isfinite(confidence):
                    stats["confidence_sum"] += confidence
                    stats["confidence_count"] += 1
            else:
                code = error_code or "UNKNOWN_ERROR"
                self._error_counts[code] = self._error_counts.get(code, 0) + 1

            should_log = self.log_every > 0 and self._total_requests % self.log_every == 0

        if should_log:
            self._log_summary()

    def record_accuracy(
        self,
        document_type: str,
        field_accuracies: Mapping[str, bool],
        predicted_confidence: float
    ) -> None:
        """
        Record reviewed accuracy for one processed document.

        Args:
            document_type: Processed document type
            field_accuracies: Field name -> whether the extracted value was correct
            predicted_confidence: Confidence the pipeline assigned
        """
        if not field_accuracies:
            return
        correct = sum(1 for ok in field_accuracies.values() if ok)
        accuracy = correct / len(field_accuracies)
        predicted = min(max(float(predicted_confidence), 0.0), 1.0)

        with self._lock:
            self._accuracy_samples += 1

            for field_name, ok in field_accuracies.items():
                tally = self._field_tallies.setdefault(field_name, {"correct": 0, "total": 0})
                tally["total"] += 1
                if ok:
                    tally["correct"] += 1

            bucket = self._calibration.setdefault(
                _bucket_for(predicted), {"count": 0, "predicted_sum": 0.0, "actual_sum": 0.0}
            )
            bucket["count"] += 1
            bucket["predicted_sum"] += predicted
            bucket["actual_sum"] += accuracy

        logger.debug(f"Recorded accuracy {accuracy:.2f} for {document_type} (predicted {predicted:.2f})")

    def get_metrics(self) -> Dict[str, Any]:
        """Point-in-time snapshot of all aggregates."""
        with self._lock:
            total = self._total_requests
            times = np.array(self._processing_times, dtype=float)

            snapshot: Dict[str, Any] = {
                "total_requests": total,
                "successful_requests": self._successful_requests,
                "failed_requests": total - self._successful_requests,
                "success_rate": self._successful_requests / total if total else None,
                "avg_processing_time_ms": self._total_processing_time_ms / total if total else 0.0,
                "p95_processing_time_ms": float(np.percentile(times, 95)) if times.size else 0.0,
                "p99_processing_time_ms": float(np.percentile(times, 99)) if times.size else 0.0,
                "accuracy_samples": self._accuracy_samples,
                "overall_accuracy": self._overall_accuracy(),
                "field_accuracies": {
                    name: tally["correct"] / tally["total"]
                    for name, tally in sorted(self._field_tallies.items())
                },
                "confidence_calibration_error": self._calibration_error(),
                "error_counts": dict(self._error_counts),
                "document_type_stats": {
                    doc_type: {
                        "count": int(stats["count"]),
                        "success_rate": stats["successes"] / stats["count"],
                        "avg_processing_time_ms": stats["total_time_ms"] / stats["count"],
                        "avg_confidence": (
                            stats["confidence_sum"] / stats["confidence_count"]
                            if stats["confidence_count"] else None
                        ),
                    }
                    for doc_type, stats in sorted(self._doc_stats.items())
                },
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        return snapshot

    def _overall_accuracy(self) -> Optional[float]:
        """Correct field samples over all field samples. Caller holds the lock."""
        total = sum(tally["total"] for tally in self._field_tallies.values())
        if not total:
            return None
        return sum(tally["correct"] for tally in self._field_tallies.values()) / total

    def _calibration_error(self) -> Optional[float]:
        """Sample-weighted mean |mean predicted - mean actual| over buckets. Caller holds the lock."""
        total = sum(bucket["count"] for bucket in self._calibration.values())
        if not total:
            return None
        error = 0.0
        for bucket in self._calibration.values():
            mean_predicted = bucket["predicted_sum"] / bucket["count"]
            mean_actual = bucket["actual_sum"] / bucket["count"]
            error += bucket["count"] * abs(mean_predicted - mean_actual)
        return error / total

    def export_metrics(self) -> str:
        """Snapshot as a JSON document."""
        return json.dumps(self.get_metrics(), indent=2)

    def reset(self) -> None:
        with self._lock:
            self._reset_state()
        logger.info("Vision metrics reset")

    def _log_summary(self) -> None:
        snapshot = self.get_metrics()
        success_rate = snapshot["success_rate"]
        logger.info(
            f"Vision metrics: {snapshot['total_requests']} requests, "
            f"success rate {success_rate:.1%}, "
            f"avg {snapshot['avg_processing_time_ms']:.0f}ms, "
            f"p95 {snapshot['p95_processing_time_ms']:.0f}ms, "
            f"health {classify_health(snapshot).value}"
        )

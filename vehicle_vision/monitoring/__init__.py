"""Runtime metrics for vision processing."""

from .metrics import HealthStatus, VisionMetricsCollector, classify_health

__all__ = ["HealthStatus", "VisionMetricsCollector", "classify_health"]

"""FastAPI metrics surface for the vehicle vision core."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from vehicle_vision.monitoring.metrics import VisionMetricsCollector, classify_health
from vehicle_vision.pipeline import VisionPipeline, build_pipeline
from vehicle_vision.processors.base import ProcessorRegistry, build_default_registry
from vehicle_vision.utils.config import Config
from vehicle_vision.utils.logging import setup_logging


APP_TITLE = "Vehicle Vision - Processing Metrics"


def create_app(
    pipeline: Optional[VisionPipeline] = None,
    metrics: Optional[VisionMetricsCollector] = None,
    registry: Optional[ProcessorRegistry] = None,
) -> FastAPI:
    """
    Build the metrics app.

    When a pipeline is given its collector and registry are served, so the
    numbers reflect the documents that pipeline processed.
    """
    if pipeline is not None:
        metrics = metrics or pipeline.metrics
        registry = registry or pipeline.registry
    metrics = metrics or VisionMetricsCollector()
    registry = registry or build_default_registry()

    app = FastAPI(title=APP_TITLE)
    app.state.metrics = metrics
    app.state.registry = registry

    @app.get("/api/vision/metrics")
    async def vision_metrics() -> JSONResponse:
        snapshot = metrics.get_metrics()
        snapshot["health"] = classify_health(snapshot).value
        return JSONResponse(jsonable_encoder(snapshot))

    @app.get("/api/vision/health")
    async def vision_health() -> Dict[str, Any]:
        snapshot = metrics.get_metrics()
        return {
            "status": classify_health(snapshot).value,
            "success_rate": snapshot["success_rate"],
            "overall_accuracy": snapshot["overall_accuracy"],
            "avg_processing_time_ms": snapshot["avg_processing_time_ms"],
            "total_requests": snapshot["total_requests"],
            "timestamp": snapshot["timestamp"],
        }

    @app.get("/api/vision/processors")
    async def vision_processors() -> JSONResponse:
        return JSONResponse({"processors": registry.describe()})

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    return app


def create_app_from_config(config_path: str = "config.yaml") -> FastAPI:
    """Load configuration, set up logging and serve a pipeline built from it."""
    config = Config.load(config_path)
    setup_logging(
        level=config.logging.level,
        log_format=config.logging.format,
        log_file=config.logging.file or None,
    )
    return create_app(pipeline=build_pipeline(config))


app = create_app()

"""movement-intel — route profiling, anomaly detection, risk scoring and trends.

This is the application entry point.  It is the composition root: the
engine components, store, adapter registry, analysis pipeline and
endpoints are constructed here and passed explicitly to their users.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from movement_intel.adapters.gps import GpsFixAdapter
from movement_intel.adapters.recognition import RecognitionAdapter
from movement_intel.adapters.registry import AdapterRegistry
from movement_intel.api.analyze import create_analyze_router
from movement_intel.api.ws_sighting import create_sighting_router
from movement_intel.config import Settings, settings
from movement_intel.core.anomaly_detector import AnomalyDetector, AnomalyThresholds
from movement_intel.core.risk_scorer import FeatureSaturation, RiskScorer
from movement_intel.core.route_profiler import RouteProfiler, RouteThresholds
from movement_intel.core.trend_aggregator import TrendAggregator, TrendConfig
from movement_intel.foundation.logging_sink import StdlibLoggingSink
from movement_intel.graph.runner import AnalysisPipeline
from movement_intel.inference.base import LazyInference
from movement_intel.inference.gemini import GeminiInference
from movement_intel.services.analysis_service import AnalysisService
from movement_intel.services.connection_manager import DashboardManager
from movement_intel.store.memory import InMemoryMovementStore

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(cfg: Settings = settings) -> FastAPI:
    sink = StdlibLoggingSink(logging.getLogger("movement_intel.engine"))

    # ── Engine ───────────────────────────────────────────────────────────
    profiler = RouteProfiler(
        thresholds=RouteThresholds(
            frequent_radius_m=cfg.frequent_radius_m,
            frequent_ratio=cfg.frequent_ratio,
            flag_distance_m=cfg.flag_distance_m,
            flag_duration_seconds=cfg.flag_duration_seconds,
            spatial_index_threshold=cfg.spatial_index_threshold,
        ),
        sink=sink,
    )
    detector = AnomalyDetector(
        thresholds=AnomalyThresholds(
            rapid_speed_kmh=cfg.rapid_speed_kmh,
            variation_threshold=cfg.variation_threshold,
            captures_per_day_threshold=cfg.captures_per_day_threshold,
        ),
        sink=sink,
    )
    scorer = RiskScorer(
        inference=LazyInference(lambda: GeminiInference(cfg=cfg)) if cfg.inference_enabled else None,
        saturation=FeatureSaturation(
            total_distance=cfg.saturation_distance_m,
            average_speed=cfg.saturation_speed_kmh,
            route_variation=cfg.saturation_variation,
            anomaly_count=cfg.saturation_anomaly_count,
            high_severity_anomaly_count=cfg.saturation_high_severity_count,
            sample_count=cfg.saturation_sample_count,
            seconds_since_last_sample=cfg.saturation_staleness_seconds,
            sighting_confidence=cfg.saturation_confidence,
        ),
        security_check_threshold=cfg.security_check_threshold,
        inference_timeout_seconds=cfg.inference_timeout_seconds,
        sink=sink,
    )
    aggregator = TrendAggregator(
        config=TrendConfig(risk_markers=tuple(cfg.risk_markers)),
        sink=sink,
    )

    # ── State & collaborators ────────────────────────────────────────────
    store = InMemoryMovementStore()
    dashboard = DashboardManager()
    pipeline = AnalysisPipeline(
        profiler,
        detector,
        scorer,
        notification_sink=dashboard,
        alert_threshold=cfg.alert_threshold,
    )
    service = AnalysisService(
        store,
        pipeline,
        aggregator,
        profiler=profiler,
        detector=detector,
        store_timeout=cfg.store_timeout_seconds,
        trend_window=timedelta(days=cfg.trend_window_days),
    )

    registry = AdapterRegistry()
    registry.register(RecognitionAdapter())
    registry.register(GpsFixAdapter())

    # ── App ──────────────────────────────────────────────────────────────
    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        scorer.close()
        logger.info("Risk scorer worker pool shut down")

    app = FastAPI(
        title=cfg.app_name,
        description="Movement analytics and anomaly scoring for tracked plates",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.scorer = scorer
    app.state.registry = registry

    app.include_router(create_analyze_router(service))
    app.include_router(create_sighting_router(store, registry, service, dashboard))

    @app.get("/health")
    async def health() -> dict:
        counts = await store.counts()
        return {
            "status": "ok",
            "inference_enabled": cfg.inference_enabled,
            "dashboard_clients": dashboard.client_count,
            **counts,
            "adapters": registry.stats,
            "total_adapted": registry.total_accepted,
            "total_rejected": registry.total_rejected,
        }

    return app


app = create_app()

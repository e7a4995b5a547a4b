"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "movement-intel"
    debug: bool = False
    log_level: str = "INFO"

    # Route profiling
    frequent_radius_m: float = 100.0
    frequent_ratio: float = 0.1
    flag_distance_m: float = 500.0
    flag_duration_seconds: float = 3600.0
    spatial_index_threshold: int = 300

    # Anomaly detection
    rapid_speed_kmh: float = 200.0
    variation_threshold: float = 0.1
    captures_per_day_threshold: float = 10.0

    # Risk scoring saturations (value at which a normalised feature hits 1.0)
    saturation_distance_m: float = 100_000.0
    saturation_speed_kmh: float = 200.0
    saturation_variation: float = 0.2
    saturation_anomaly_count: float = 5.0
    saturation_high_severity_count: float = 3.0
    saturation_sample_count: float = 100.0
    saturation_staleness_seconds: float = 30 * 24 * 3600.0
    saturation_confidence: float = 1.0
    security_check_threshold: float = 0.7

    # Trend aggregation
    risk_markers: list[str] = ["STOLEN", "HIGH_RISK_AREA"]
    trend_window_days: int = 30

    # Orchestration
    alert_threshold: float = 0.7

    # Collaborator timeouts
    store_timeout_seconds: float = 5.0
    inference_timeout_seconds: float = 10.0

    # Optional Gemini-backed inference
    inference_enabled: bool = False
    gemini_model: str = "gemini-2.0-flash"
    gemini_temperature: float = 0.0
    gemini_max_output_tokens: int = 16

    model_config = {"env_prefix": "MOVEMENT_"}


settings = Settings()

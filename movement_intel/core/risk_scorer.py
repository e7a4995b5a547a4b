"""RiskScorer — normalised risk score, predicted events and actions.

Design principles:
    1. Stateless apart from collaborator handles (inference, sink).
    2. Never raises: failures yield RiskAssessment.neutral().
    3. All weights and saturations are explicit.

Normalisation:
    feature_n = clamp(feature / saturation, 0, 1)   (non-finite -> 0)

Risk score:
    model      = inference.score(raw_features)        when configured
    heuristic  = 0.6 * speed_n + 0.4 * variation_n    otherwise, or when the
                                                      model fails / times out
    risk_score = clamp(score, 0, 1)                   (NaN -> 0)

Predicted events (included when probability > 0.5):
    THEFT_RISK          = 0.5 * speed_n     + 0.3 * variation_n
    MAINTENANCE_NEEDED  = 0.4 * distance_n  + 0.6 * confidence_n
    UNUSUAL_MOVEMENT    = 0.7 * variation_n + 0.3 * anomaly_count_n
    POTENTIAL_VIOLATION = 0.6 * speed_n     + 0.4 * high_severity_n
    HIGH_MILEAGE        = 0.8 * distance_n  + 0.2 * sample_count_n

    estimated_time = now + probability * 30 days
"""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable

from movement_intel.domain.anomaly import AnomalyFinding
from movement_intel.domain.enums import PredictedEventType, ScoreSource
from movement_intel.domain.risk import FeatureVector, PredictedEvent, RiskAssessment
from movement_intel.domain.route import RouteProfile
from movement_intel.domain.sighting import MovementSample, Sighting
from movement_intel.foundation.clock import utc_now
from movement_intel.foundation.logging_sink import LoggingSink, StdlibLoggingSink
from movement_intel.foundation.outcome import Outcome
from movement_intel.inference.base import InferenceSubsystem

EVENT_PROBABILITY_THRESHOLD = 0.5
EVENT_HORIZON_DAYS = 30

SECURITY_CHECK_ACTION = "Perform a full security check"

EVENT_ACTIONS: dict[PredictedEventType, str] = {
    PredictedEventType.THEFT_RISK: "Activate vehicle tracking and alert the authorities",
    PredictedEventType.MAINTENANCE_NEEDED: "Schedule preventive maintenance",
    PredictedEventType.UNUSUAL_MOVEMENT: "Investigate suspicious movement patterns",
    PredictedEventType.POTENTIAL_VIOLATION: "Check for possible traffic violations",
    PredictedEventType.HIGH_MILEAGE: "Assess the need for parts replacement",
}


@dataclass(frozen=True)
class FeatureSaturation:
    """Raw feature values at which each normalised feature reaches 1.0."""

    total_distance: float = 100_000.0  # metres
    average_speed: float = 200.0  # km/h
    route_variation: float = 0.2
    anomaly_count: float = 5.0
    high_severity_anomaly_count: float = 3.0
    sample_count: float = 100.0
    seconds_since_last_sample: float = 30 * 24 * 3600.0
    sighting_confidence: float = 1.0


@dataclass(frozen=True)
class HeuristicWeights:
    average_speed: float = 0.6
    route_variation: float = 0.4


def clamp_unit(value: float) -> float:
    """Clamp to [0, 1]; NaN and other non-numbers collapse to 0."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return max(0.0, min(value, 1.0))


def _normalise(value: float, saturation: float) -> float:
    if not math.isfinite(value) or saturation <= 0:
        return 0.0
    return clamp_unit(value / saturation)


class RiskScorer:
    """Builds features, obtains a risk score and derives events and actions.

    Args:
        inference: Optional external model; absent means heuristic only.
        saturation: Normalisation saturation points.
        heuristic: Weights for the built-in fallback score.
        security_check_threshold: risk_score above which a full security
            check is recommended.
        inference_timeout_seconds: Upper bound on a single model call.
        sink: LoggingSink for failures.
    """

    def __init__(
        self,
        inference: InferenceSubsystem | None = None,
        saturation: FeatureSaturation | None = None,
        heuristic: HeuristicWeights | None = None,
        security_check_threshold: float = 0.7,
        inference_timeout_seconds: float = 10.0,
        sink: LoggingSink | None = None,
    ) -> None:
        self._inference = inference
        self._saturation = saturation or FeatureSaturation()
        self._heuristic = heuristic or HeuristicWeights()
        self._security_check_threshold = security_check_threshold
        self._inference_timeout = inference_timeout_seconds
        self._sink = sink or StdlibLoggingSink()
        self._executor = (
            ThreadPoolExecutor(max_workers=4, thread_name_prefix="risk-inference")
            if inference is not None
            else None
        )

    # ── Public API ───────────────────────────────────────────────────────

    def score(
        self,
        sighting: Sighting,
        profile: RouteProfile,
        findings: Iterable[AnomalyFinding],
        samples: Iterable[MovementSample],
    ) -> Outcome[RiskAssessment]:
        try:
            features = self.build_features(sighting, profile, findings, samples)
            risk_score, source = self._risk_score(sighting.identifier, features)
            events = self.predict_events(features)
            actions = self.recommend_actions(risk_score, events)
            return Outcome.success(RiskAssessment(
                identifier=sighting.identifier,
                risk_score=risk_score,
                predicted_events=events,
                recommended_actions=actions,
                source=source,
            ))
        except Exception as exc:
            self._sink.log_error(f"risk scoring for {sighting.identifier}", exc)
            return Outcome.degraded(RiskAssessment.neutral(sighting.identifier), exc)

    def close(self) -> None:
        """Stop the inference worker pool; later scores use the heuristic."""
        executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)

    # ── Features ─────────────────────────────────────────────────────────

    @staticmethod
    def build_features(
        sighting: Sighting,
        profile: RouteProfile,
        findings: Iterable[AnomalyFinding],
        samples: Iterable[MovementSample],
    ) -> FeatureVector:
        finding_list = list(findings)
        sample_list = list(samples)

        if sample_list:
            last = max(s.captured_at for s in sample_list)
            staleness = (utc_now() - last).total_seconds()
        else:
            staleness = 0.0

        return FeatureVector(
            total_distance=profile.total_distance_m,
            average_speed=profile.average_speed_kmh,
            route_variation=profile.route_variation,
            anomaly_count=float(len(finding_list)),
            high_severity_anomaly_count=float(sum(1 for f in finding_list if f.is_high_severity)),
            sample_count=float(len(sample_list)),
            seconds_since_last_sample=staleness,
            sighting_confidence=sighting.confidence,
        )

    def normalise(self, features: FeatureVector) -> FeatureVector:
        s = self._saturation
        return FeatureVector(
            total_distance=_normalise(features.total_distance, s.total_distance),
            average_speed=_normalise(features.average_speed, s.average_speed),
            route_variation=_normalise(features.route_variation, s.route_variation),
            anomaly_count=_normalise(features.anomaly_count, s.anomaly_count),
            high_severity_anomaly_count=_normalise(
                features.high_severity_anomaly_count, s.high_severity_anomaly_count,
            ),
            sample_count=_normalise(features.sample_count, s.sample_count),
            seconds_since_last_sample=_normalise(
                features.seconds_since_last_sample, s.seconds_since_last_sample,
            ),
            sighting_confidence=_normalise(features.sighting_confidence, s.sighting_confidence),
        )

    # ── Score ────────────────────────────────────────────────────────────

    def heuristic_score(self, features: FeatureVector) -> float:
        n = self.normalise(features)
        w = self._heuristic
        return clamp_unit(w.average_speed * n.average_speed + w.route_variation * n.route_variation)

    def _risk_score(self, identifier: str, features: FeatureVector) -> tuple[float, ScoreSource]:
        if self._inference is None or self._executor is None:
            return self.heuristic_score(features), ScoreSource.HEURISTIC

        future = self._executor.submit(self._inference.score, features.as_list())
        try:
            raw = future.result(timeout=self._inference_timeout)
        except Exception as exc:
            future.cancel()
            self._sink.log_error(f"inference for {identifier}, using heuristic", exc)
            return self.heuristic_score(features), ScoreSource.HEURISTIC
        return clamp_unit(raw), ScoreSource.MODEL

    # ── Events & actions ─────────────────────────────────────────────────

    def event_probabilities(self, features: FeatureVector) -> dict[PredictedEventType, float]:
        n = self.normalise(features)
        return {
            PredictedEventType.THEFT_RISK: 0.5 * n.average_speed + 0.3 * n.route_variation,
            PredictedEventType.MAINTENANCE_NEEDED: 0.4 * n.total_distance + 0.6 * n.sighting_confidence,
            PredictedEventType.UNUSUAL_MOVEMENT: 0.7 * n.route_variation + 0.3 * n.anomaly_count,
            PredictedEventType.POTENTIAL_VIOLATION: (
                0.6 * n.average_speed + 0.4 * n.high_severity_anomaly_count
            ),
            PredictedEventType.HIGH_MILEAGE: 0.8 * n.total_distance + 0.2 * n.sample_count,
        }

    def predict_events(self, features: FeatureVector) -> list[PredictedEvent]:
        now = utc_now()
        events: list[PredictedEvent] = []
        for event_type, probability in self.event_probabilities(features).items():
            if probability > EVENT_PROBABILITY_THRESHOLD:
                events.append(PredictedEvent(
                    event_type=event_type,
                    probability=round(probability, 4),
                    estimated_time=now + timedelta(days=probability * EVENT_HORIZON_DAYS),
                ))
        return events

    def recommend_actions(self, risk_score: float, events: list[PredictedEvent]) -> list[str]:
        actions: list[str] = []
        if risk_score > self._security_check_threshold:
            actions.append(SECURITY_CHECK_ACTION)
        for event in events:
            actions.append(EVENT_ACTIONS[event.event_type])
        return actions

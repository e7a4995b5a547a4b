"""LangGraph nodes — thin wrappers that run one engine stage each.

Each node:
    - Receives the full AnalysisState
    - Returns a partial dict update
    - Rehydrates only the models it needs from the serialised state
    - Records a degraded stage in ``errors`` instead of raising

The engine components are injected through the ``make_*`` factories so
the graph itself holds no hidden process-wide instances.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from movement_intel.core.anomaly_detector import AnomalyDetector
from movement_intel.core.risk_scorer import RiskScorer
from movement_intel.core.route_profiler import RouteProfiler
from movement_intel.domain.anomaly import AnomalyFinding
from movement_intel.domain.risk import RiskAssessment
from movement_intel.domain.route import RouteProfile
from movement_intel.domain.sighting import MovementSample, Sighting
from movement_intel.graph.state import AnalysisState

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """Receives high-risk assessments.  Must not block for long."""

    def notify(self, assessment: RiskAssessment, findings: list[AnomalyFinding]) -> None:
        ...


def _samples(state: AnalysisState) -> list[MovementSample]:
    return [MovementSample.model_validate(s) for s in state.get("samples", [])]


def _with_error(state: AnalysisState, stage: str, error: str | None) -> list[str]:
    errors = list(state.get("errors", []))
    if error is not None:
        errors.append(f"{stage}: {error}")
    return errors


# ── 1. profile_route ────────────────────────────────────────────────────────

def make_profile_route(profiler: RouteProfiler):

    def profile_route(state: AnalysisState) -> dict:
        outcome = profiler.profile(state["identifier"], _samples(state))
        logger.debug(
            "Profiled %s: %.1f m at %.1f km/h",
            state["identifier"],
            outcome.value.total_distance_m,
            outcome.value.average_speed_kmh,
        )
        return {
            "profile": outcome.value.model_dump(),
            "errors": _with_error(state, "profile_route", outcome.error),
        }

    return profile_route


# ── 2. detect_anomalies ─────────────────────────────────────────────────────

def make_detect_anomalies(detector: AnomalyDetector):

    def detect_anomalies(state: AnalysisState) -> dict:
        sighting = Sighting.model_validate(state["sighting"])
        profile = RouteProfile.model_validate(state["profile"])
        outcome = detector.detect(sighting, profile, _samples(state))
        return {
            "findings": [f.model_dump() for f in outcome.value],
            "errors": _with_error(state, "detect_anomalies", outcome.error),
        }

    return detect_anomalies


# ── 3. score_risk ───────────────────────────────────────────────────────────

def make_score_risk(scorer: RiskScorer):

    def score_risk(state: AnalysisState) -> dict:
        sighting = Sighting.model_validate(state["sighting"])
        profile = RouteProfile.model_validate(state["profile"])
        findings = [AnomalyFinding.model_validate(f) for f in state.get("findings", [])]
        outcome = scorer.score(sighting, profile, findings, _samples(state))
        return {
            "assessment": outcome.value.model_dump(),
            "errors": _with_error(state, "score_risk", outcome.error),
        }

    return score_risk


# ── 4. notify ───────────────────────────────────────────────────────────────

def make_notify(sink: NotificationSink | None):

    def notify(state: AnalysisState) -> dict:
        if sink is None:
            return {"alerted": False}
        assessment = RiskAssessment.model_validate(state["assessment"])
        findings = [AnomalyFinding.model_validate(f) for f in state.get("findings", [])]
        try:
            sink.notify(assessment, findings)
        except Exception as exc:
            logger.error("Notification for %s failed: %s", assessment.identifier, exc)
            return {"alerted": False, "errors": _with_error(state, "notify", str(exc))}
        logger.info("Alerted on %s (risk=%.3f)", assessment.identifier, assessment.risk_score)
        return {"alerted": True}

    return notify


# ── Conditional edge ────────────────────────────────────────────────────────

def should_notify(state: AnalysisState) -> str:
    """Route to notify when the risk score reaches the alert threshold."""
    assessment: dict[str, Any] = state.get("assessment", {})
    threshold = state.get("alert_threshold", 0.7)
    if assessment.get("risk_score", 0.0) >= threshold:
        return "notify"
    return "end"

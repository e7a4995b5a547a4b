"""Graph runner — clean interface for invoking the analysis graph.

Usage:
    pipeline = AnalysisPipeline(profiler, detector, scorer)
    result = pipeline.run(sighting, samples)

The pipeline compiles the graph once, seeds the initial state per call,
invokes LangGraph and returns a typed AnalysisResult.  No store access.
"""

from __future__ import annotations

import logging
from typing import Iterable

from pydantic import BaseModel, Field

from movement_intel.core.anomaly_detector import AnomalyDetector
from movement_intel.core.risk_scorer import RiskScorer
from movement_intel.core.route_profiler import RouteProfiler
from movement_intel.domain.anomaly import AnomalyFinding
from movement_intel.domain.risk import RiskAssessment
from movement_intel.domain.route import RouteProfile
from movement_intel.domain.sighting import MovementSample, Sighting
from movement_intel.graph.builder import build_analysis_graph
from movement_intel.graph.nodes import NotificationSink
from movement_intel.graph.state import AnalysisState

logger = logging.getLogger(__name__)


class AnalysisResult(BaseModel):
    identifier: str
    profile: RouteProfile
    findings: list[AnomalyFinding] = Field(default_factory=list)
    assessment: RiskAssessment
    alerted: bool = False
    errors: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def degraded(self) -> bool:
        return bool(self.errors)


class AnalysisPipeline:
    """Per-identifier profile → detect → score pipeline over LangGraph."""

    def __init__(
        self,
        profiler: RouteProfiler,
        detector: AnomalyDetector,
        scorer: RiskScorer,
        notification_sink: NotificationSink | None = None,
        alert_threshold: float = 0.7,
    ) -> None:
        self._alert_threshold = alert_threshold
        self._graph = build_analysis_graph(profiler, detector, scorer, notification_sink)

    def run(self, sighting: Sighting, samples: Iterable[MovementSample]) -> AnalysisResult:
        initial_state: AnalysisState = {
            "identifier": sighting.identifier,
            "sighting": sighting.model_dump(),
            "samples": [s.model_dump() for s in samples],
            "findings": [],
            "alert_threshold": self._alert_threshold,
            "alerted": False,
            "errors": [],
        }

        logger.info(
            "Running analysis graph for %s (%d samples)",
            sighting.identifier, len(initial_state["samples"]),
        )
        final_state = self._graph.invoke(initial_state)

        result = AnalysisResult(
            identifier=sighting.identifier,
            profile=RouteProfile.model_validate(final_state["profile"]),
            findings=[AnomalyFinding.model_validate(f) for f in final_state.get("findings", [])],
            assessment=RiskAssessment.model_validate(final_state["assessment"]),
            alerted=final_state.get("alerted", False),
            errors=final_state.get("errors", []),
        )
        logger.info(
            "Analysis complete: identifier=%s findings=%d risk=%.3f alerted=%s degraded=%s",
            result.identifier,
            len(result.findings),
            result.assessment.risk_score,
            result.alerted,
            result.degraded,
        )
        return result

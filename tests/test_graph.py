"""Tests for the LangGraph analysis pipeline.

Exercises the individual nodes, the conditional notify edge and full
graph runs through AnalysisPipeline.
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from movement_intel.core.anomaly_detector import AnomalyDetector
from movement_intel.core.risk_scorer import SECURITY_CHECK_ACTION, RiskScorer
from movement_intel.core.route_profiler import RouteProfiler
from movement_intel.domain.enums import AnomalyType, PredictedEventType, ScoreSource
from movement_intel.domain.risk import RiskAssessment
from movement_intel.foundation.geo import distance_m
from movement_intel.graph.nodes import make_notify, make_profile_route, should_notify
from movement_intel.graph.runner import AnalysisPipeline

from tests.test_models import _BASE, _sample, _sighting, _track

# ── Helpers ──────────────────────────────────────────────────────────────────

# 50 km along the equator
_STEP_DEG = 50_000 / distance_m(0.0, 0.0, 0.0, 1.0)


def _fast_track():
    """Five samples 50 km apart over ten minutes: ~1200 km/h."""
    points = [(0.0, i * _STEP_DEG) for i in range(5)]
    return _track(points, timedelta(seconds=150))


def _parked():
    return _track([(38.7, -9.1)] * 4, timedelta(hours=1))


def _pipeline(sink=None, threshold: float = 0.7) -> AnalysisPipeline:
    return AnalysisPipeline(
        RouteProfiler(sink=MagicMock()),
        AnomalyDetector(sink=MagicMock()),
        RiskScorer(sink=MagicMock()),
        notification_sink=sink,
        alert_threshold=threshold,
    )


def _run(pipeline: AnalysisPipeline, samples, **sighting):
    with patch("movement_intel.core.risk_scorer.utc_now", return_value=_BASE + timedelta(hours=1)):
        return pipeline.run(_sighting(**sighting), samples)


# ── Nodes ────────────────────────────────────────────────────────────────────

class TestNodes:
    def test_profile_route_returns_partial_update(self) -> None:
        node = make_profile_route(RouteProfiler(sink=MagicMock()))
        state = {
            "identifier": "AA-12-BB",
            "samples": [s.model_dump() for s in _fast_track()],
            "errors": [],
        }
        update = node(state)
        assert set(update) == {"profile", "errors"}
        assert update["profile"]["sample_count"] == 5
        assert update["errors"] == []

    def test_notify_without_sink_does_not_alert(self) -> None:
        node = make_notify(None)
        assert node({"assessment": RiskAssessment.neutral("AA-12-BB").model_dump()}) == {"alerted": False}

    def test_should_notify_threshold_is_inclusive(self) -> None:
        assert should_notify({"assessment": {"risk_score": 0.7}, "alert_threshold": 0.7}) == "notify"
        assert should_notify({"assessment": {"risk_score": 0.69}, "alert_threshold": 0.7}) == "end"

    def test_should_notify_defaults(self) -> None:
        assert should_notify({}) == "end"
        assert should_notify({"assessment": {"risk_score": 0.9}}) == "notify"


# ── Full runs ────────────────────────────────────────────────────────────────

class TestPipeline:
    def test_fast_track_end_to_end(self) -> None:
        result = _run(_pipeline(), _fast_track())

        assert result.profile.total_distance_m == pytest.approx(200_000, rel=1e-6)
        assert result.profile.average_speed_kmh == pytest.approx(1200, rel=1e-6)
        assert [f.anomaly_type for f in result.findings] == [
            AnomalyType.RAPID_MOVEMENT,
            AnomalyType.UNUSUAL_LOCATION,
        ]

        assessment = result.assessment
        assert assessment.risk_score == pytest.approx(1.0)
        assert assessment.source == ScoreSource.HEURISTIC
        theft = next(e for e in assessment.predicted_events if e.event_type == PredictedEventType.THEFT_RISK)
        assert theft.probability == pytest.approx(0.8)
        assert assessment.recommended_actions[0] == SECURITY_CHECK_ACTION
        assert not result.degraded

    def test_parked_vehicle_is_quiet(self) -> None:
        result = _run(_pipeline(), _parked(), confidence=0.3)
        assert result.profile.total_distance_m == 0.0
        assert result.findings == []
        assert result.assessment.risk_score == 0.0
        assert result.assessment.predicted_events == []
        assert result.assessment.recommended_actions == []

    def test_no_samples(self) -> None:
        result = _run(_pipeline(), [])
        assert result.profile.sample_count == 0
        assert result.assessment.identifier == "AA-12-BB"

    def test_high_risk_notifies_sink(self) -> None:
        sink = MagicMock()
        result = _run(_pipeline(sink), _fast_track())
        assert result.alerted
        sink.notify.assert_called_once()
        assessment, findings = sink.notify.call_args[0]
        assert assessment.identifier == "AA-12-BB"
        assert len(findings) == 2

    def test_low_risk_skips_sink(self) -> None:
        sink = MagicMock()
        result = _run(_pipeline(sink), _parked())
        assert not result.alerted
        sink.notify.assert_not_called()

    def test_failing_sink_is_recorded_not_raised(self) -> None:
        sink = MagicMock()
        sink.notify.side_effect = ConnectionError("dashboard gone")
        result = _run(_pipeline(sink), _fast_track())
        assert not result.alerted
        assert result.degraded
        assert any(e.startswith("notify:") for e in result.errors)

    def test_degraded_stage_is_reported(self) -> None:
        class _ExplodingPolicy:
            def evaluate(self, sighting, profile, samples):
                raise RuntimeError("policy backend down")

        pipeline = AnalysisPipeline(
            RouteProfiler(sink=MagicMock()),
            AnomalyDetector(cloning_policy=_ExplodingPolicy(), sink=MagicMock()),
            RiskScorer(sink=MagicMock()),
        )
        result = _run(pipeline, _fast_track())
        assert result.findings == []
        assert result.errors == ["detect_anomalies: RuntimeError: policy backend down"]
        # scoring still runs on the profile alone
        assert result.assessment.risk_score == pytest.approx(1.0)

    def test_pipeline_is_reusable(self) -> None:
        pipeline = _pipeline()
        first = _run(pipeline, _fast_track())
        second = _run(pipeline, _parked(), identifier="CC-34-DD")
        assert first.identifier == "AA-12-BB"
        assert second.identifier == "CC-34-DD"
        assert second.findings == []

    def test_unordered_samples(self) -> None:
        samples = list(reversed(_fast_track())) + [_sample(0.0, 0.0, _BASE)]
        result = _run(_pipeline(), samples)
        assert result.profile.sample_count == 6

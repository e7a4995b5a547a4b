"""AnalysisState — the sole state object the LangGraph nodes read and write.

Every node receives the full state and returns a partial update.  Nodes
never touch the store; inputs are loaded before the graph is invoked.
Models travel through the state in serialised (``model_dump``) form.
"""

from __future__ import annotations

from typing import Any, TypedDict


class AnalysisState(TypedDict, total=False):
    """LangGraph state for the per-identifier analysis pipeline.

    Fields:
        identifier: The identifier being analysed.
        sighting: Serialised Sighting (most recent detection).
        samples: Serialised MovementSamples for the analysis window.
        profile: Serialised RouteProfile, set by profile_route.
        findings: Serialised AnomalyFindings, set by detect_anomalies.
        assessment: Serialised RiskAssessment, set by score_risk.
        alert_threshold: risk_score at or above which notify runs.
        alerted: True once a notification sink accepted an alert.
        errors: Degradation messages collected from each stage.
    """

    identifier: str
    sighting: dict[str, Any]
    samples: list[dict[str, Any]]
    profile: dict[str, Any]
    findings: list[dict[str, Any]]
    assessment: dict[str, Any]
    alert_threshold: float
    alerted: bool
    errors: list[str]

"""Graph builder — constructs the LangGraph analysis topology.

Topology:

    START → profile_route → detect_anomalies → score_risk
          → should_notify
               ├── "notify" → notify → END
               └── "end"    → END

The graph is compiled once and can be invoked many times.
"""

from __future__ import annotations

from langgraph.graph import END, START, StateGraph

from movement_intel.core.anomaly_detector import AnomalyDetector
from movement_intel.core.risk_scorer import RiskScorer
from movement_intel.core.route_profiler import RouteProfiler
from movement_intel.graph.nodes import (
    NotificationSink,
    make_detect_anomalies,
    make_notify,
    make_profile_route,
    make_score_risk,
    should_notify,
)
from movement_intel.graph.state import AnalysisState


def build_analysis_graph(
    profiler: RouteProfiler,
    detector: AnomalyDetector,
    scorer: RiskScorer,
    notification_sink: NotificationSink | None = None,
):
    """Construct and compile the analysis graph around the given components."""
    graph = StateGraph(AnalysisState)

    graph.add_node("profile_route", make_profile_route(profiler))
    graph.add_node("detect_anomalies", make_detect_anomalies(detector))
    graph.add_node("score_risk", make_score_risk(scorer))
    graph.add_node("notify", make_notify(notification_sink))

    graph.add_edge(START, "profile_route")
    graph.add_edge("profile_route", "detect_anomalies")
    graph.add_edge("detect_anomalies", "score_risk")

    graph.add_conditional_edges(
        "score_risk",
        should_notify,
        {
            "notify": "notify",
            "end": END,
        },
    )
    graph.add_edge("notify", END)

    return graph.compile()

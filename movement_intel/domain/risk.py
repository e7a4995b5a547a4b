"""Risk domain models — feature vectors and assessments.

The feature vector order is part of the contract with any external
scoring model: models are trained against ``FeatureVector.as_list()``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from movement_intel.domain.enums import PredictedEventType, ScoreSource


class FeatureVector(BaseModel):
    """Fixed-order numeric features describing one identifier."""

    total_distance: float
    average_speed: float
    route_variation: float
    anomaly_count: float
    high_severity_anomaly_count: float
    sample_count: float
    seconds_since_last_sample: float
    sighting_confidence: float

    model_config = {"frozen": True}

    def as_list(self) -> list[float]:
        return [
            self.total_distance,
            self.average_speed,
            self.route_variation,
            self.anomaly_count,
            self.high_severity_anomaly_count,
            self.sample_count,
            self.seconds_since_last_sample,
            self.sighting_confidence,
        ]


class PredictedEvent(BaseModel):
    event_type: PredictedEventType
    probability: float
    estimated_time: Optional[datetime] = None

    model_config = {"frozen": True}


class RiskAssessment(BaseModel):
    """A normalised risk score plus predicted events and recommended actions."""

    identifier: str
    risk_score: float = Field(0.0, ge=0.0, le=1.0)
    predicted_events: list[PredictedEvent] = Field(default_factory=list)
    recommended_actions: list[str] = Field(default_factory=list)
    source: ScoreSource = ScoreSource.NEUTRAL

    model_config = {"frozen": True}

    @classmethod
    def neutral(cls, identifier: str) -> RiskAssessment:
        return cls(identifier=identifier)

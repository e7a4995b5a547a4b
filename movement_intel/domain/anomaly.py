"""AnomalyFinding — a flagged deviation in an identifier's history."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from movement_intel.domain.enums import AnomalySeverity, AnomalyType
from movement_intel.foundation.clock import utc_now


class AnomalyFinding(BaseModel):
    identifier: str
    anomaly_type: AnomalyType
    severity: AnomalySeverity
    details: dict[str, str] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}

    @property
    def is_high_severity(self) -> bool:
        return self.severity in (AnomalySeverity.HIGH, AnomalySeverity.CRITICAL)

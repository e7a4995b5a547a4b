"""RouteProfile — derived per-identifier summary of movement.

Computed fresh on every request and never persisted.  ``route_variation``
is a coarse spread proxy in squared degrees, not metres; the anomaly
threshold that consumes it is calibrated against this exact formula.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from movement_intel.domain.sighting import MovementSample


class FlaggedMovement(BaseModel):
    """A consecutive sample pair exceeding the distance and duration thresholds."""

    start: MovementSample
    end: MovementSample
    distance_m: float
    duration_seconds: float

    model_config = {"frozen": True}


class RouteProfile(BaseModel):
    identifier: str
    total_distance_m: float = Field(0.0, description="Sum of consecutive leg distances")
    average_speed_kmh: float = Field(0.0, description="Total distance over elapsed time")
    route_variation: float = Field(0.0, description="Mean of latitude and longitude variance")
    frequent_locations: list[MovementSample] = Field(default_factory=list)
    flagged_movements: list[FlaggedMovement] = Field(default_factory=list)
    sample_count: int = 0

    model_config = {"frozen": True}

    @classmethod
    def empty(cls, identifier: str, sample_count: int = 0) -> RouteProfile:
        """The zero-valued profile used for short or failed inputs."""
        return cls(identifier=identifier, sample_count=sample_count)

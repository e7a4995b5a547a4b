"""Controlled enumerations for the movement-intel domain.

Every categorical field in the domain references an enum defined here.
Ordering of members is significant where noted: detectors and scorers
emit results in declaration order.
"""

from __future__ import annotations

from enum import Enum


class AnomalyType(str, Enum):
    """Kinds of deviation an identifier's history can exhibit."""

    UNUSUAL_LOCATION = "unusual_location"
    RAPID_MOVEMENT = "rapid_movement"
    FREQUENCY_DEVIATION = "frequency_deviation"
    MULTIPLE_JURISDICTIONS = "multiple_jurisdictions"
    POTENTIAL_CLONING = "potential_cloning"


class AnomalySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class PredictedEventType(str, Enum):
    """Candidate future events, in the order the scorer evaluates them."""

    THEFT_RISK = "theft_risk"
    MAINTENANCE_NEEDED = "maintenance_needed"
    UNUSUAL_MOVEMENT = "unusual_movement"
    POTENTIAL_VIOLATION = "potential_violation"
    HIGH_MILEAGE = "high_mileage"


class ScoreSource(str, Enum):
    """Where a risk score came from."""

    MODEL = "model"
    HEURISTIC = "heuristic"
    NEUTRAL = "neutral"


class TrendType(str, Enum):
    LOCATION_HOTSPOT = "location_hotspot"
    TEMPORAL_PATTERN = "temporal_pattern"
    ANOMALY_CLUSTER = "anomaly_cluster"
    SECURITY_RISK = "security_risk"


class TrendIntensity(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

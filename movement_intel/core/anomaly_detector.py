"""AnomalyDetector — independent checks over a route profile and its samples.

Each check is either silent or emits exactly one AnomalyFinding.  Findings
are returned in a fixed order:

    1. RAPID_MOVEMENT          average_speed_kmh > rapid_speed_kmh       (HIGH)
    2. UNUSUAL_LOCATION        route_variation   > variation_threshold   (MEDIUM)
    3. FREQUENCY_DEVIATION     captures_per_day  > captures_threshold    (MEDIUM)
    4. MULTIPLE_JURISDICTIONS  delegated to an injected JurisdictionPolicy
    5. POTENTIAL_CLONING       delegated to an injected CloningPolicy

captures_per_day = sample_count / (whole days between first and last + 1)

Without policies, checks 4 and 5 never fire.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

from movement_intel.domain.anomaly import AnomalyFinding
from movement_intel.domain.enums import AnomalySeverity, AnomalyType
from movement_intel.domain.route import RouteProfile
from movement_intel.domain.sighting import MovementSample, Sighting
from movement_intel.foundation.logging_sink import LoggingSink, StdlibLoggingSink
from movement_intel.foundation.outcome import Outcome


class JurisdictionPolicy(Protocol):
    """Hook deciding whether an identifier crossed jurisdictions."""

    def evaluate(
        self,
        sighting: Sighting,
        profile: RouteProfile,
        samples: list[MovementSample],
    ) -> Optional[AnomalyFinding]:
        ...


class CloningPolicy(Protocol):
    """Hook deciding whether an identifier looks cloned."""

    def evaluate(
        self,
        sighting: Sighting,
        profile: RouteProfile,
        samples: list[MovementSample],
    ) -> Optional[AnomalyFinding]:
        ...


@dataclass(frozen=True)
class AnomalyThresholds:
    rapid_speed_kmh: float = 200.0
    variation_threshold: float = 0.1
    captures_per_day_threshold: float = 10.0


DetectionInput = tuple[Sighting, RouteProfile, list[MovementSample]]


class AnomalyDetector:
    """Stateless anomaly detection for one identifier at a time."""

    def __init__(
        self,
        thresholds: AnomalyThresholds | None = None,
        jurisdiction_policy: JurisdictionPolicy | None = None,
        cloning_policy: CloningPolicy | None = None,
        sink: LoggingSink | None = None,
    ) -> None:
        self._thresholds = thresholds or AnomalyThresholds()
        self._jurisdiction_policy = jurisdiction_policy
        self._cloning_policy = cloning_policy
        self._sink = sink or StdlibLoggingSink()

    # ── Public API ───────────────────────────────────────────────────────

    def detect(
        self,
        sighting: Sighting,
        profile: RouteProfile,
        samples: Iterable[MovementSample],
    ) -> Outcome[list[AnomalyFinding]]:
        """Run every check for one identifier and collect the findings that fired."""
        try:
            sample_list = list(samples)
            candidates = [
                self._rapid_movement(sighting, profile),
                self._unusual_location(sighting, profile),
                self._frequency_deviation(sighting, sample_list),
                self._multiple_jurisdictions(sighting, profile, sample_list),
                self._potential_cloning(sighting, profile, sample_list),
            ]
            return Outcome.success([f for f in candidates if f is not None])
        except Exception as exc:
            self._sink.log_error(f"anomaly detection for {sighting.identifier}", exc)
            return Outcome.degraded([], exc)

    def detect_batch(self, items: Iterable[DetectionInput]) -> dict[str, Outcome[list[AnomalyFinding]]]:
        """Detect per identifier; a failing identifier never aborts the batch."""
        results: dict[str, Outcome[list[AnomalyFinding]]] = {}
        for sighting, profile, samples in items:
            results[sighting.identifier] = self.detect(sighting, profile, samples)
        return results

    # ── Checks ───────────────────────────────────────────────────────────

    def _rapid_movement(self, sighting: Sighting, profile: RouteProfile) -> Optional[AnomalyFinding]:
        if profile.average_speed_kmh <= self._thresholds.rapid_speed_kmh:
            return None
        return AnomalyFinding(
            identifier=sighting.identifier,
            anomaly_type=AnomalyType.RAPID_MOVEMENT,
            severity=AnomalySeverity.HIGH,
            details={
                "averageSpeed": f"{profile.average_speed_kmh:.2f} km/h",
                "totalDistance": f"{profile.total_distance_m:.2f} m",
            },
        )

    def _unusual_location(self, sighting: Sighting, profile: RouteProfile) -> Optional[AnomalyFinding]:
        if profile.route_variation <= self._thresholds.variation_threshold:
            return None
        return AnomalyFinding(
            identifier=sighting.identifier,
            anomaly_type=AnomalyType.UNUSUAL_LOCATION,
            severity=AnomalySeverity.MEDIUM,
            details={
                "routeVariation": f"{profile.route_variation:.6f}",
                "frequentLocations": str(len(profile.frequent_locations)),
            },
        )

    def _frequency_deviation(
        self,
        sighting: Sighting,
        samples: list[MovementSample],
    ) -> Optional[AnomalyFinding]:
        per_day = captures_per_day(samples)
        if per_day <= self._thresholds.captures_per_day_threshold:
            return None
        return AnomalyFinding(
            identifier=sighting.identifier,
            anomaly_type=AnomalyType.FREQUENCY_DEVIATION,
            severity=AnomalySeverity.MEDIUM,
            details={
                "capturesPerDay": f"{per_day:.2f}",
                "totalCaptures": str(len(samples)),
            },
        )

    def _multiple_jurisdictions(
        self,
        sighting: Sighting,
        profile: RouteProfile,
        samples: list[MovementSample],
    ) -> Optional[AnomalyFinding]:
        if self._jurisdiction_policy is None:
            return None
        return self._jurisdiction_policy.evaluate(sighting, profile, samples)

    def _potential_cloning(
        self,
        sighting: Sighting,
        profile: RouteProfile,
        samples: list[MovementSample],
    ) -> Optional[AnomalyFinding]:
        if self._cloning_policy is None:
            return None
        return self._cloning_policy.evaluate(sighting, profile, samples)


def captures_per_day(samples: list[MovementSample]) -> float:
    """Samples per calendar-day span, counting a same-day history as one day."""
    if not samples:
        return 0.0
    first = min(s.captured_at for s in samples)
    last = max(s.captured_at for s in samples)
    days_between = (last - first).days
    return len(samples) / (days_between + 1)

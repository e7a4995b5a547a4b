"""TrendAggregator — batch-level insights across many identifiers.

Produces four insights per run, in order:

    LOCATION_HOTSPOT  top locations by sighting frequency
    TEMPORAL_PATTERN  sighting counts per hour-of-day slot
    ANOMALY_CLUSTER   low-confidence sightings (plus identifiers with
                      high-severity findings, when a findings join is given)
    SECURITY_RISK     sightings below the security confidence floor or
                      matching a configured risk marker

Intensity comes from a count with fixed cut points:
    > 100 CRITICAL, > 50 HIGH, > 20 MODERATE, else LOW

Unlike the per-identifier components, a failure aborts the whole run and
yields an empty list: trend computation is one batch job.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping

from movement_intel.domain.anomaly import AnomalyFinding
from movement_intel.domain.enums import TrendIntensity, TrendType
from movement_intel.domain.sighting import Sighting
from movement_intel.domain.trend import GeographicHotspot, TemporalSlot, TrendInsight
from movement_intel.foundation.clock import utc_now
from movement_intel.foundation.logging_sink import LoggingSink, StdlibLoggingSink
from movement_intel.foundation.outcome import Outcome

UNKNOWN_LOCATION = "unknown"


def intensity_for(count: int) -> TrendIntensity:
    if count > 100:
        return TrendIntensity.CRITICAL
    if count > 50:
        return TrendIntensity.HIGH
    if count > 20:
        return TrendIntensity.MODERATE
    return TrendIntensity.LOW


@dataclass(frozen=True)
class TrendConfig:
    hotspot_limit: int = 5
    anomaly_confidence_floor: float = 0.5
    security_confidence_floor: float = 0.6
    risk_markers: tuple[str, ...] = field(default=("STOLEN", "HIGH_RISK_AREA"))


class TrendAggregator:
    """Stateless aggregation over a materialised batch of sightings."""

    def __init__(
        self,
        config: TrendConfig | None = None,
        sink: LoggingSink | None = None,
    ) -> None:
        self._config = config or TrendConfig()
        self._sink = sink or StdlibLoggingSink()

    # ── Public API ───────────────────────────────────────────────────────

    def aggregate(
        self,
        sightings: Iterable[Sighting],
        findings_by_identifier: Mapping[str, list[AnomalyFinding]] | None = None,
    ) -> Outcome[list[TrendInsight]]:
        try:
            batch = list(sightings)
            start, end = self._span(batch)
            insights = [
                self._location_hotspots(batch, start, end),
                self._temporal_patterns(batch, start, end),
                self._anomaly_cluster(batch, start, end, findings_by_identifier or {}),
                self._security_risks(batch, start, end),
            ]
            self._sink.log_info(
                "trend aggregation",
                f"{len(batch)} sightings -> {len(insights)} insights",
            )
            return Outcome.success(insights)
        except Exception as exc:
            self._sink.log_error("trend aggregation", exc)
            return Outcome.degraded([], exc)

    # ── Insights ─────────────────────────────────────────────────────────

    def _location_hotspots(self, batch: list[Sighting], start: datetime, end: datetime) -> TrendInsight:
        groups: dict[str, list[Sighting]] = defaultdict(list)
        for s in batch:
            groups[s.location or UNKNOWN_LOCATION].append(s)

        hotspots = [
            GeographicHotspot(
                location=location,
                frequency=len(members),
                unique_identifiers=len({m.identifier for m in members}),
                average_confidence=sum(m.confidence for m in members) / len(members),
            )
            for location, members in groups.items()
        ]
        top = sorted(hotspots, key=lambda h: (-h.frequency, h.location))[: self._config.hotspot_limit]

        return TrendInsight(
            trend_type=TrendType.LOCATION_HOTSPOT,
            intensity=intensity_for(len(top)),
            start=start,
            end=end,
            affected_count=len(batch),
            details={"hotspots": top},
        )

    def _temporal_patterns(self, batch: list[Sighting], start: datetime, end: datetime) -> TrendInsight:
        counts: dict[str, int] = defaultdict(int)
        for s in batch:
            counts[f"{s.captured_at.hour:02d}:00"] += 1

        slots = sorted(
            (TemporalSlot(time_slot=slot, count=count) for slot, count in counts.items()),
            key=lambda t: (-t.count, t.time_slot),
        )
        peak = slots[0].count if slots else 0
        peak_hours = [t.time_slot for t in slots if t.count == peak and peak > 0]

        return TrendInsight(
            trend_type=TrendType.TEMPORAL_PATTERN,
            intensity=intensity_for(len(slots)),
            start=start,
            end=end,
            affected_count=len(batch),
            details={"temporalPatterns": slots, "peakHours": peak_hours},
        )

    def _anomaly_cluster(
        self,
        batch: list[Sighting],
        start: datetime,
        end: datetime,
        findings_by_identifier: Mapping[str, list[AnomalyFinding]],
    ) -> TrendInsight:
        flagged_ids = {
            identifier
            for identifier, findings in findings_by_identifier.items()
            if any(f.is_high_severity for f in findings)
        }
        floor = self._config.anomaly_confidence_floor
        anomalous = [s for s in batch if s.confidence < floor or s.identifier in flagged_ids]

        return TrendInsight(
            trend_type=TrendType.ANOMALY_CLUSTER,
            intensity=intensity_for(len(anomalous)),
            start=start,
            end=end,
            affected_count=len(anomalous),
            details={"anomalousSightings": anomalous},
        )

    def _security_risks(self, batch: list[Sighting], start: datetime, end: datetime) -> TrendInsight:
        floor = self._config.security_confidence_floor
        suspicious = [s for s in batch if s.confidence < floor or self._matches_marker(s)]

        return TrendInsight(
            trend_type=TrendType.SECURITY_RISK,
            intensity=intensity_for(len(suspicious)),
            start=start,
            end=end,
            affected_count=len(suspicious),
            details={"suspiciousSightings": suspicious},
        )

    # ── Helpers ──────────────────────────────────────────────────────────

    def _matches_marker(self, sighting: Sighting) -> bool:
        identifier = sighting.identifier.upper()
        location = (sighting.location or "").upper()
        return any(
            marker.upper() in identifier or marker.upper() in location
            for marker in self._config.risk_markers
        )

    @staticmethod
    def _span(batch: list[Sighting]) -> tuple[datetime, datetime]:
        if not batch:
            now = utc_now()
            return now, now
        return (
            min(s.captured_at for s in batch),
            max(s.captured_at for s in batch),
        )

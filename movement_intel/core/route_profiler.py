"""RouteProfiler — reconstructs a route summary from movement samples.

Design principles:
    1. Pure function over an already-materialised slice of samples.
    2. Never raises: failures yield the zero-valued profile and go to the
       LoggingSink.
    3. Samples are re-sorted by capture time; callers' ordering is not trusted.

Metrics:
    total_distance_m   = sum of haversine legs between consecutive samples
    average_speed_kmh  = total_distance_m / elapsed_seconds * 3.6
    route_variation    = (var(latitudes) + var(longitudes)) / 2
    frequent_locations = samples with more than ``frequent_ratio * n`` other
                         samples inside ``frequent_radius_m``
    flagged_movements  = consecutive legs longer than ``flag_distance_m``
                         AND slower than ``flag_duration_seconds``
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from statistics import pvariance
from typing import Iterable

import numpy as np
from scipy.spatial import cKDTree

from movement_intel.domain.route import FlaggedMovement, RouteProfile
from movement_intel.domain.sighting import MovementSample
from movement_intel.foundation.geo import EARTH_RADIUS_M, sample_distance_m
from movement_intel.foundation.logging_sink import LoggingSink, StdlibLoggingSink
from movement_intel.foundation.outcome import Outcome


@dataclass(frozen=True)
class RouteThresholds:
    """Configurable cut points for route profiling."""

    frequent_radius_m: float = 100.0
    frequent_ratio: float = 0.1
    flag_distance_m: float = 500.0
    flag_duration_seconds: float = 3600.0
    # Above this many samples the frequent-location scan uses a KD-tree
    spatial_index_threshold: int = 300


class RouteProfiler:
    """Stateless route reconstruction over one identifier's samples."""

    def __init__(
        self,
        thresholds: RouteThresholds | None = None,
        sink: LoggingSink | None = None,
    ) -> None:
        self._thresholds = thresholds or RouteThresholds()
        self._sink = sink or StdlibLoggingSink()

    # ── Public API ───────────────────────────────────────────────────────

    def profile(self, identifier: str, samples: Iterable[MovementSample]) -> Outcome[RouteProfile]:
        """Build a RouteProfile for *identifier* from its samples."""
        try:
            ordered = sorted(samples, key=lambda s: s.captured_at)
            if len(ordered) < 2:
                return Outcome.success(RouteProfile.empty(identifier, sample_count=len(ordered)))
            return Outcome.success(self._build(identifier, ordered))
        except Exception as exc:
            self._sink.log_error(f"route profile for {identifier}", exc)
            return Outcome.degraded(RouteProfile.empty(identifier), exc)

    # ── Construction ─────────────────────────────────────────────────────

    def _build(self, identifier: str, ordered: list[MovementSample]) -> RouteProfile:
        legs = [sample_distance_m(a, b) for a, b in zip(ordered, ordered[1:])]
        total = sum(legs)

        return RouteProfile(
            identifier=identifier,
            total_distance_m=total,
            average_speed_kmh=self._average_speed(ordered, total),
            route_variation=self._route_variation(ordered),
            frequent_locations=self._frequent_locations(ordered),
            flagged_movements=self._flagged_movements(ordered, legs),
            sample_count=len(ordered),
        )

    @staticmethod
    def _average_speed(ordered: list[MovementSample], total_distance_m: float) -> float:
        elapsed = (ordered[-1].captured_at - ordered[0].captured_at).total_seconds()
        if elapsed <= 0:
            return 0.0
        return total_distance_m / elapsed * 3.6

    @staticmethod
    def _route_variation(ordered: list[MovementSample]) -> float:
        lat_var = pvariance([s.latitude for s in ordered])
        lon_var = pvariance([s.longitude for s in ordered])
        return (lat_var + lon_var) / 2

    def _flagged_movements(
        self,
        ordered: list[MovementSample],
        legs: list[float],
    ) -> list[FlaggedMovement]:
        t = self._thresholds
        flagged: list[FlaggedMovement] = []
        for (start, end), distance in zip(zip(ordered, ordered[1:]), legs):
            duration = (end.captured_at - start.captured_at).total_seconds()
            if distance > t.flag_distance_m and duration > t.flag_duration_seconds:
                flagged.append(FlaggedMovement(
                    start=start,
                    end=end,
                    distance_m=distance,
                    duration_seconds=duration,
                ))
        return flagged

    # ── Frequent locations ───────────────────────────────────────────────

    def _frequent_locations(self, ordered: list[MovementSample]) -> list[MovementSample]:
        t = self._thresholds
        n = len(ordered)
        cutoff = n * t.frequent_ratio

        if n > t.spatial_index_threshold:
            counts = self._neighbour_counts_indexed(ordered)
        else:
            counts = self._neighbour_counts_pairwise(ordered)

        return [sample for sample, count in zip(ordered, counts) if count > cutoff]

    def _neighbour_counts_pairwise(self, ordered: list[MovementSample]) -> list[int]:
        radius = self._thresholds.frequent_radius_m
        counts = [0] * len(ordered)
        for i in range(len(ordered)):
            for j in range(i + 1, len(ordered)):
                if sample_distance_m(ordered[i], ordered[j]) <= radius:
                    counts[i] += 1
                    counts[j] += 1
        return counts

    def _neighbour_counts_indexed(self, ordered: list[MovementSample]) -> list[int]:
        """Candidate pairs from a KD-tree over Earth-centred coordinates, confirmed by haversine.

        The straight-line (chord) distance between two points on the sphere
        is monotone in their great-circle distance, so a chord query at the
        radius' chord length returns every in-radius pair with no special
        case near the poles or across the antimeridian.
        """
        radius = self._thresholds.frequent_radius_m
        lat = np.radians([s.latitude for s in ordered])
        lon = np.radians([s.longitude for s in ordered])
        xyz = EARTH_RADIUS_M * np.column_stack((
            np.cos(lat) * np.cos(lon),
            np.cos(lat) * np.sin(lon),
            np.sin(lat),
        ))
        chord = 2 * EARTH_RADIUS_M * math.sin(radius / (2 * EARTH_RADIUS_M))

        counts = [0] * len(ordered)
        # Slight slack on the chord; haversine has the final word
        for i, j in cKDTree(xyz).query_pairs(chord * (1 + 1e-9) + 1e-6):
            if sample_distance_m(ordered[i], ordered[j]) <= radius:
                counts[i] += 1
                counts[j] += 1
        return counts

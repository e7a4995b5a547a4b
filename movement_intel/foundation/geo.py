"""Great-circle distance between coordinates.

Haversine on a spherical Earth.  Distances are in metres.  The functions
never raise: non-finite input collapses to 0.0 so a single bad fix cannot
poison a route total.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from movement_intel.domain.sighting import MovementSample

EARTH_RADIUS_M = 6_371_008.8


def distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two (lat, lon) pairs in metres."""
    try:
        coords = (float(lat1), float(lon1), float(lat2), float(lon2))
    except (TypeError, ValueError):
        return 0.0
    if not all(math.isfinite(c) for c in coords):
        return 0.0

    phi1, lam1, phi2, lam2 = map(math.radians, coords)
    dphi = phi2 - phi1
    dlam = lam2 - lam1
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    # Rounding can push `a` a hair outside [0, 1] for antipodal points
    a = min(max(a, 0.0), 1.0)
    result = 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))

    if not math.isfinite(result):
        return 0.0
    return result


def sample_distance_m(a: MovementSample, b: MovementSample) -> float:
    """Distance in metres between two movement samples."""
    return distance_m(a.latitude, a.longitude, b.latitude, b.longitude)

"""GpsFixAdapter — translates raw tracker fixes into movement samples.

Expected raw format:
{
    "source_type": "gps_fix",
    "plate": "AA-12-BB",
    "lat": 38.7205,
    "lon": -9.1459,
    "timestamp": "2026-02-13T14:00:00Z",
    "accuracy": 4.0                       (optional)
}
"""

from __future__ import annotations

from typing import Any

from movement_intel.adapters.base import Ingestion, SightingAdapter, normalise_plate
from movement_intel.domain.sighting import MovementSample


class GpsFixAdapter(SightingAdapter):

    @property
    def source_name(self) -> str:
        return "gps_fix"

    def can_handle(self, raw: dict[str, Any]) -> bool:
        return raw.get("source_type") == "gps_fix"

    def adapt(self, raw: dict[str, Any]) -> Ingestion:
        for key in ("plate", "lat", "lon", "timestamp"):
            if raw.get(key) is None:
                raise ValueError(f"gps_fix payload missing '{key}'")

        identifier = normalise_plate(str(raw["plate"]))
        # Some trackers report a negative accuracy when the fix is unknown
        accuracy = max(float(raw.get("accuracy") or 0.0), 0.0)

        sample = MovementSample.model_validate({
            "identifier": identifier,
            "latitude": raw["lat"],
            "longitude": raw["lon"],
            "captured_at": raw["timestamp"],
            "accuracy": accuracy,
        })
        return Ingestion(identifier=identifier, sample=sample)

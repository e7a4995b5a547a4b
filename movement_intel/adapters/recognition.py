"""RecognitionAdapter — translates plate recogniser payloads.

Expected raw format:
{
    "source_type": "plate_recognition",
    "plate_text": "aa 12 bb",
    "confidence": 0.87,
    "captured_at": "2026-02-13T14:00:00Z",
    "location": "Av. da Liberdade",      (optional)
    "latitude": 38.7205,                  (optional, with longitude)
    "longitude": -9.1459,
    "accuracy": 12.5                      (optional)
}

A payload with coordinates also yields a MovementSample at the same time.
"""

from __future__ import annotations

from typing import Any

from movement_intel.adapters.base import Ingestion, SightingAdapter, normalise_plate
from movement_intel.domain.sighting import MovementSample, Sighting


class RecognitionAdapter(SightingAdapter):
    """Maps plate recognition payloads to a Sighting and optional sample."""

    @property
    def source_name(self) -> str:
        return "plate_recognition"

    def can_handle(self, raw: dict[str, Any]) -> bool:
        return raw.get("source_type") == "plate_recognition"

    def adapt(self, raw: dict[str, Any]) -> Ingestion:
        plate_text = raw.get("plate_text")
        if not plate_text:
            raise ValueError("plate_recognition payload missing 'plate_text'")

        captured_at = raw.get("captured_at")
        if not captured_at:
            raise ValueError("plate_recognition payload missing 'captured_at'")

        confidence = raw.get("confidence")
        if confidence is None:
            raise ValueError("plate_recognition payload missing 'confidence'")

        identifier = normalise_plate(str(plate_text))

        sighting = Sighting.model_validate({
            "identifier": identifier,
            "captured_at": captured_at,
            "confidence": float(confidence),
            "location": raw.get("location"),
        })

        sample = None
        lat, lon = raw.get("latitude"), raw.get("longitude")
        if lat is not None and lon is not None:
            sample = MovementSample.model_validate({
                "identifier": identifier,
                "latitude": lat,
                "longitude": lon,
                "captured_at": captured_at,
                "accuracy": raw.get("accuracy", 0.0),
            })

        return Ingestion(identifier=identifier, sighting=sighting, sample=sample)

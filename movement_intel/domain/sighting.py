"""Canonical input models — sightings and movement samples.

A Sighting is one detection of an identifier (a plate) with the
recogniser's confidence.  A MovementSample is one geolocation fix tied
to an identifier's history.  Both are immutable and validated at the
boundary so the engine never re-checks field constraints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from movement_intel.foundation.clock import ensure_utc


class Sighting(BaseModel):
    """One detection event of an identifier at a point in time."""

    identifier: str = Field(..., min_length=1, max_length=32, description="Normalised plate text")
    captured_at: datetime = Field(..., description="When the identifier was recognised (UTC)")
    # Nominally [0, 1] but recognisers occasionally report outside it
    confidence: float = Field(..., description="Recogniser confidence")
    location: Optional[str] = Field(
        default=None,
        max_length=256,
        description="Free-text location label supplied by the capture point",
    )

    model_config = {"frozen": True}

    @field_validator("captured_at")
    @classmethod
    def captured_at_must_be_aware(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class MovementSample(BaseModel):
    """A single geolocation fix in an identifier's history."""

    identifier: str = Field(..., min_length=1, max_length=32)
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    captured_at: datetime
    accuracy: float = Field(0.0, ge=0.0, description="Horizontal accuracy radius in metres")

    model_config = {"frozen": True}

    @field_validator("captured_at")
    @classmethod
    def captured_at_must_be_aware(cls, v: datetime) -> datetime:
        return ensure_utc(v)

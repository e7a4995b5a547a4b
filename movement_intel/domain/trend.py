"""Trend domain models — batch-level aggregates across many identifiers."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from movement_intel.domain.enums import TrendIntensity, TrendType


class GeographicHotspot(BaseModel):
    location: str
    frequency: int
    unique_identifiers: int
    average_confidence: float

    model_config = {"frozen": True}


class TemporalSlot(BaseModel):
    time_slot: str = Field(..., description="Hour of day, zero-padded, e.g. '07:00'")
    count: int

    model_config = {"frozen": True}


class TrendInsight(BaseModel):
    """One aggregate observation over a batch of sightings.

    ``start`` and ``end`` span the whole input batch, not the subset the
    insight describes.
    """

    trend_type: TrendType
    intensity: TrendIntensity
    start: datetime
    end: datetime
    affected_count: int
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

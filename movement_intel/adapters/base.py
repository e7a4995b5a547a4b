"""Abstract base for ingestion adapters.

Ingestion adapters normalise raw payloads from capture front ends (plate
recognisers, GPS trackers) into canonical Sightings and MovementSamples.

Architectural rules:
    1. Adapters must NOT mutate the incoming payload dict.
    2. adapt() must return a valid Ingestion or raise ValueError.
    3. No adapter may call the store directly.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel, model_validator

from movement_intel.domain.sighting import MovementSample, Sighting

_SEPARATORS = re.compile(r"[\s\-]")


class Ingestion(BaseModel):
    """What one raw payload contributes to the store."""

    identifier: str
    sighting: Optional[Sighting] = None
    sample: Optional[MovementSample] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def must_carry_something(self) -> "Ingestion":
        if self.sighting is None and self.sample is None:
            raise ValueError("ingestion carries neither a sighting nor a sample")
        return self


def normalise_plate(raw: str) -> str:
    """Upper-case plate text without separators; six-character plates become XX-00-XX."""
    clean = _SEPARATORS.sub("", raw or "").upper()
    if not clean:
        raise ValueError("empty plate text")
    if len(clean) == 6:
        return f"{clean[:2]}-{clean[2:4]}-{clean[4:]}"
    return clean


class SightingAdapter(ABC):
    """Base class for converting raw upstream payloads into an Ingestion."""

    @abstractmethod
    def can_handle(self, raw: dict[str, Any]) -> bool:
        """Return True if this adapter knows how to translate *raw*.

        Must be a fast, non-destructive check (e.g. key presence).
        """
        ...

    @abstractmethod
    def adapt(self, raw: dict[str, Any]) -> Ingestion:
        """Translate a raw payload dict into an Ingestion.

        Raises:
            ValueError: If the payload cannot be normalised.
        """
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        ...

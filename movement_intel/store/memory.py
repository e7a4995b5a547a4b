"""In-memory movement store with async-safe access.

Design notes:
    - An asyncio.Lock guards all mutations so concurrent WebSocket handlers
      never corrupt state.
    - Storage is append-only: sightings and samples are never updated.
    - Range queries are inclusive on both ends.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import datetime
from typing import Optional

from movement_intel.domain.sighting import MovementSample, Sighting

logger = logging.getLogger(__name__)


def _in_range(ts: datetime, since: Optional[datetime], until: Optional[datetime]) -> bool:
    if since is not None and ts < since:
        return False
    if until is not None and ts > until:
        return False
    return True


class InMemoryMovementStore:
    """Append-only store of sightings and movement samples keyed by identifier."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._sightings: list[Sighting] = []
        self._samples: dict[str, list[MovementSample]] = defaultdict(list)

    # ── Writes ───────────────────────────────────────────────────────────

    async def add_sighting(self, sighting: Sighting) -> None:
        async with self._lock:
            self._sightings.append(sighting)
            logger.debug("Stored sighting %s at %s", sighting.identifier, sighting.captured_at)

    async def add_sample(self, sample: MovementSample) -> None:
        async with self._lock:
            self._samples[sample.identifier].append(sample)
            logger.debug("Stored sample for %s (%d total)", sample.identifier, len(self._samples[sample.identifier]))

    # ── Reads ────────────────────────────────────────────────────────────

    async def samples_for_identifier(
        self,
        identifier: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> list[MovementSample]:
        async with self._lock:
            return [
                s for s in self._samples.get(identifier, [])
                if _in_range(s.captured_at, since, until)
            ]

    async def sightings_in_range(self, since: datetime, until: datetime) -> list[Sighting]:
        async with self._lock:
            return [s for s in self._sightings if _in_range(s.captured_at, since, until)]

    async def sighting_by_identifier(self, identifier: str) -> Optional[Sighting]:
        async with self._lock:
            matches = [s for s in self._sightings if s.identifier == identifier]
        if not matches:
            return None
        return max(matches, key=lambda s: s.captured_at)

    # ── Observability ────────────────────────────────────────────────────

    async def counts(self) -> dict[str, int]:
        async with self._lock:
            return {
                "sightings": len(self._sightings),
                "identifiers": len({s.identifier for s in self._sightings} | set(self._samples)),
                "samples": sum(len(v) for v in self._samples.values()),
            }

"""PersistentStore — the contract the service layer reads history through.

Implementations return samples already scoped to one identifier.  Order is
not guaranteed; the engine sorts defensively.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from movement_intel.domain.sighting import MovementSample, Sighting


class PersistentStore(Protocol):
    async def samples_for_identifier(
        self,
        identifier: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> list[MovementSample]:
        ...

    async def sightings_in_range(self, since: datetime, until: datetime) -> list[Sighting]:
        ...

    async def sighting_by_identifier(self, identifier: str) -> Optional[Sighting]:
        """Most recent sighting of *identifier*, or None."""
        ...

    async def add_sighting(self, sighting: Sighting) -> None:
        ...

    async def add_sample(self, sample: MovementSample) -> None:
        ...

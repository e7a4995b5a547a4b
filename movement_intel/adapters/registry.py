"""Adapter Registry — selects the ingestion adapter for a raw payload.

Adapters are tried in registration order; the first whose can_handle()
returns True wins.  Fail fast if nothing matches.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from movement_intel.adapters.base import Ingestion, SightingAdapter

logger = logging.getLogger(__name__)


@dataclass
class AdapterStats:
    adapter_name: str
    accepted_count: int = 0
    rejected_count: int = 0


class NoAdapterFoundError(Exception):
    """Raised when no registered adapter can handle a payload."""


class AdaptationError(Exception):
    """Raised when a matched adapter fails to translate the payload."""

    def __init__(self, adapter_name: str, reason: str) -> None:
        self.adapter_name = adapter_name
        self.reason = reason
        super().__init__(f"Adapter '{adapter_name}' failed: {reason}")


class AdapterRegistry:
    """Registry of ingestion adapters with per-adapter stats.

    Usage:
        registry = AdapterRegistry()
        registry.register(RecognitionAdapter())
        registry.register(GpsFixAdapter())

        ingestion = registry.adapt(raw_payload)
    """

    def __init__(self) -> None:
        self._adapters: list[SightingAdapter] = []
        self._stats: dict[str, AdapterStats] = {}

    def register(self, adapter: SightingAdapter) -> None:
        self._adapters.append(adapter)
        self._stats[adapter.source_name] = AdapterStats(adapter.source_name)
        logger.info("Registered adapter: %s", adapter.source_name)

    def adapt(self, raw: dict[str, Any]) -> Ingestion:
        """Route a raw payload through the first matching adapter.

        Raises:
            NoAdapterFoundError: If no adapter's can_handle() returns True.
            AdaptationError: If the matched adapter fails to translate.
        """
        adapter = next((a for a in self._adapters if a.can_handle(raw)), None)
        if adapter is None:
            raise NoAdapterFoundError(
                f"No adapter can handle payload with keys: {sorted(raw.keys())}"
            )

        stats = self._stats[adapter.source_name]
        try:
            ingestion = adapter.adapt(raw)
        except (ValueError, TypeError) as exc:
            stats.rejected_count += 1
            logger.warning("Adapter '%s' rejected payload: %s", adapter.source_name, exc)
            raise AdaptationError(adapter.source_name, str(exc)) from exc

        stats.accepted_count += 1
        logger.debug("Adapter '%s' accepted payload for %s", adapter.source_name, ingestion.identifier)
        return ingestion

    @property
    def adapter_names(self) -> list[str]:
        return [a.source_name for a in self._adapters]

    @property
    def stats(self) -> list[dict]:
        return [asdict(s) for s in self._stats.values()]

    @property
    def total_accepted(self) -> int:
        return sum(s.accepted_count for s in self._stats.values())

    @property
    def total_rejected(self) -> int:
        return sum(s.rejected_count for s in self._stats.values())

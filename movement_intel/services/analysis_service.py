"""AnalysisService — loads history from the store and runs the engine.

This is the only layer that talks to the PersistentStore.  Every store
call is bounded by ``store_timeout``.  On timeout or store failure the
service proceeds with the documented empty input and reports the problem
in the result (``AnalysisResult.errors`` / ``Outcome.error``) instead of
hanging or raising.  A failed sighting lookup is the exception: without
the sighting there is nothing to analyse, so it raises
StoreUnavailableError.  The synchronous engine work runs in a worker
thread so the event loop stays responsive.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Optional, TypeVar

from movement_intel.core.anomaly_detector import AnomalyDetector
from movement_intel.core.route_profiler import RouteProfiler
from movement_intel.core.trend_aggregator import TrendAggregator
from movement_intel.domain.anomaly import AnomalyFinding
from movement_intel.domain.sighting import MovementSample, Sighting
from movement_intel.domain.trend import TrendInsight
from movement_intel.foundation.clock import ensure_utc, utc_now
from movement_intel.foundation.outcome import Outcome
from movement_intel.graph.runner import AnalysisPipeline, AnalysisResult
from movement_intel.store.protocol import PersistentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreUnavailableError(Exception):
    """Raised when the store cannot answer a lookup the request depends on."""


class AnalysisService:
    """Async façade over store + engine used by the HTTP and WebSocket layers."""

    def __init__(
        self,
        store: PersistentStore,
        pipeline: AnalysisPipeline,
        aggregator: TrendAggregator,
        profiler: RouteProfiler | None = None,
        detector: AnomalyDetector | None = None,
        store_timeout: float = 5.0,
        trend_window: timedelta = timedelta(days=30),
    ) -> None:
        self._store = store
        self._pipeline = pipeline
        self._aggregator = aggregator
        self._profiler = profiler
        self._detector = detector
        self._store_timeout = store_timeout
        self._trend_window = trend_window

    # ── Per-identifier analysis ──────────────────────────────────────────

    async def analyze(
        self,
        identifier: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> Optional[AnalysisResult]:
        """Run the full pipeline for *identifier*; None when it was never sighted.

        Raises:
            StoreUnavailableError: If the sighting lookup fails or times out.
        """
        since, until = _utc_or_none(since), _utc_or_none(until)

        lookup = await self._bounded(
            self._store.sighting_by_identifier(identifier), None, f"sighting lookup for {identifier}",
        )
        if not lookup.ok:
            raise StoreUnavailableError(lookup.error)
        if lookup.value is None:
            return None

        samples = await self._bounded(
            self._store.samples_for_identifier(identifier, since, until),
            [],
            f"sample query for {identifier}",
        )
        result = await asyncio.to_thread(self._pipeline.run, lookup.value, samples.value)
        if samples.ok:
            return result
        return result.model_copy(update={"errors": [f"load_samples: {samples.error}", *result.errors]})

    # ── Batch trends ─────────────────────────────────────────────────────

    async def trends(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        with_findings: bool = False,
    ) -> Outcome[list[TrendInsight]]:
        until = _utc_or_none(until) or utc_now()
        since = _utc_or_none(since) or (until - self._trend_window)

        sightings = await self._bounded(
            self._store.sightings_in_range(since, until), [], "sighting range query",
        )
        store_errors = [] if sightings.ok else [f"sighting range query: {sightings.error}"]

        findings: dict[str, list[AnomalyFinding]] = {}
        if with_findings and self._profiler is not None and self._detector is not None:
            findings, sample_errors = await self._findings_for(sightings.value, since, until)
            store_errors.extend(sample_errors)

        outcome = await asyncio.to_thread(self._aggregator.aggregate, sightings.value, findings)
        if not store_errors:
            return outcome
        if outcome.error is not None:
            store_errors.append(outcome.error)
        return Outcome.degraded(outcome.value, "; ".join(store_errors))

    async def _findings_for(
        self,
        sightings: list[Sighting],
        since: datetime,
        until: datetime,
    ) -> tuple[dict[str, list[AnomalyFinding]], list[str]]:
        latest: dict[str, Sighting] = {}
        for s in sightings:
            if s.identifier not in latest or s.captured_at > latest[s.identifier].captured_at:
                latest[s.identifier] = s

        errors: list[str] = []
        inputs: list[tuple[Sighting, list[MovementSample]]] = []
        for identifier, sighting in latest.items():
            samples = await self._bounded(
                self._store.samples_for_identifier(identifier, since, until),
                [],
                f"sample query for {identifier}",
            )
            if not samples.ok:
                errors.append(f"sample query for {identifier}: {samples.error}")
            inputs.append((sighting, samples.value))

        def detect_all() -> dict[str, list[AnomalyFinding]]:
            assert self._profiler is not None and self._detector is not None
            items = [
                (sighting, self._profiler.profile(sighting.identifier, samples).value, samples)
                for sighting, samples in inputs
            ]
            return {k: v.value for k, v in self._detector.detect_batch(items).items()}

        return await asyncio.to_thread(detect_all), errors

    # ── Helpers ──────────────────────────────────────────────────────────

    async def _bounded(self, call: Awaitable[T], default: T, context: str) -> Outcome[T]:
        try:
            return Outcome.success(await asyncio.wait_for(call, timeout=self._store_timeout))
        except asyncio.TimeoutError:
            logger.error("Store timeout after %.1fs during %s", self._store_timeout, context)
            return Outcome.degraded(default, f"store timeout after {self._store_timeout:.1f}s")
        except Exception as exc:
            logger.error("Store failure during %s: %s", context, exc, exc_info=True)
            return Outcome.degraded(default, exc)


def _utc_or_none(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None

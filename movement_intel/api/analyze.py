"""REST endpoints for per-identifier analysis and batch trends.

Paths:
    GET /api/identifiers/{identifier}/analyze
    GET /api/trends

Both return plain JSON.  Engine degradation is reported in the body
(``degraded`` / ``errors``) rather than as an HTTP failure.  Query bounds
without a time zone are read as UTC.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, HTTPException

from movement_intel.adapters.base import normalise_plate
from movement_intel.foundation.clock import ensure_utc
from movement_intel.services.analysis_service import AnalysisService, StoreUnavailableError

logger = logging.getLogger(__name__)


def _window(
    since: Optional[datetime],
    until: Optional[datetime],
) -> tuple[Optional[datetime], Optional[datetime]]:
    since = ensure_utc(since) if since is not None else None
    until = ensure_utc(until) if until is not None else None
    if since and until and since > until:
        raise HTTPException(status_code=400, detail="'since' must not be after 'until'")
    return since, until


def create_analyze_router(service: AnalysisService) -> APIRouter:
    """Factory that wires the analysis endpoints to an AnalysisService."""

    router = APIRouter(prefix="/api", tags=["analysis"])

    @router.get("/identifiers/{identifier}/analyze")
    async def analyze_identifier(
        identifier: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """Route profile, anomaly findings and risk assessment for one identifier."""
        try:
            key = normalise_plate(identifier)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        since, until = _window(since, until)

        try:
            result = await service.analyze(key, since, until)
        except StoreUnavailableError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        if result is None:
            raise HTTPException(status_code=404, detail=f"Identifier {key} has no sightings")

        body = result.model_dump(mode="json")
        body["degraded"] = result.degraded
        return body

    @router.get("/trends")
    async def trends(
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        with_findings: bool = False,
    ) -> dict[str, Any]:
        """Hotspot, temporal, anomaly-cluster and security-risk insights."""
        since, until = _window(since, until)

        outcome = await service.trends(since, until, with_findings=with_findings)
        return {
            "insights": [i.model_dump(mode="json") for i in outcome.value],
            "count": len(outcome.value),
            "degraded": not outcome.ok,
            "error": outcome.error,
        }

    return router

"""WebSocket endpoints for sighting ingestion and dashboard alerts.

Paths:
    /ws/sighting   raw capture payloads → adapter registry → store
    /ws/dashboard  clients receive risk alerts

After each accepted sighting the identifier is re-analysed in a background
task; the analysis graph notifies the dashboard when the risk score
crosses the alert threshold.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from movement_intel.adapters.registry import (
    AdaptationError,
    AdapterRegistry,
    NoAdapterFoundError,
)
from movement_intel.services.analysis_service import AnalysisService
from movement_intel.services.connection_manager import DashboardManager
from movement_intel.store.protocol import PersistentStore

logger = logging.getLogger(__name__)


def create_sighting_router(
    store: PersistentStore,
    registry: AdapterRegistry,
    service: AnalysisService | None = None,
    dashboard: DashboardManager | None = None,
) -> APIRouter:
    """Factory that wires the ingestion and dashboard sockets."""

    router = APIRouter()
    background: set[asyncio.Task] = set()

    async def _reanalyse(identifier: str) -> None:
        assert service is not None
        try:
            await service.analyze(identifier)
        except Exception as exc:
            logger.error("Background analysis of %s failed: %s", identifier, exc, exc_info=True)

    @router.websocket("/ws/sighting")
    async def ingest_sighting(websocket: WebSocket) -> None:
        await websocket.accept()
        logger.info("Capture source connected")

        try:
            while True:
                raw = await websocket.receive_json()

                try:
                    ingestion = registry.adapt(raw)
                except NoAdapterFoundError as exc:
                    await websocket.send_json({
                        "status": "error",
                        "reason": "no_adapter",
                        "detail": str(exc),
                    })
                    continue
                except AdaptationError as exc:
                    await websocket.send_json({
                        "status": "error",
                        "reason": "adaptation_failed",
                        "adapter": exc.adapter_name,
                        "detail": exc.reason,
                    })
                    continue

                if ingestion.sighting is not None:
                    await store.add_sighting(ingestion.sighting)
                if ingestion.sample is not None:
                    await store.add_sample(ingestion.sample)

                await websocket.send_json({
                    "status": "accepted",
                    "identifier": ingestion.identifier,
                    "sighting": ingestion.sighting is not None,
                    "sample": ingestion.sample is not None,
                })

                if service is not None and dashboard is not None and dashboard.client_count:
                    task = asyncio.create_task(_reanalyse(ingestion.identifier))
                    background.add(task)
                    task.add_done_callback(background.discard)

        except WebSocketDisconnect:
            logger.info("Capture source disconnected")

    @router.websocket("/ws/dashboard")
    async def dashboard_socket(websocket: WebSocket) -> None:
        if dashboard is None:
            await websocket.close(code=1013)
            return
        await dashboard.connect(websocket)
        try:
            while True:
                # Clients only listen; drain anything they send
                await websocket.receive_text()
        except WebSocketDisconnect:
            dashboard.disconnect(websocket)

    return router

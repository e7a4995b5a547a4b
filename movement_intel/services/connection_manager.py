"""DashboardManager — pushes high-risk alerts to connected WebSocket clients.

Implements the NotificationSink protocol.  ``notify`` is called from the
analysis graph, which runs in a worker thread, so broadcasts are handed
back to the event loop that accepted the clients.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

from movement_intel.domain.anomaly import AnomalyFinding
from movement_intel.domain.risk import RiskAssessment

logger = logging.getLogger(__name__)


def alert_payload(assessment: RiskAssessment, findings: list[AnomalyFinding]) -> dict[str, Any]:
    return {
        "type": "risk_alert",
        "assessment": assessment.model_dump(mode="json"),
        "findings": [f.model_dump(mode="json") for f in findings],
    }


class DashboardManager:
    """Tracks dashboard clients and broadcasts alerts to them."""

    def __init__(self) -> None:
        self._clients: set[WebSocket] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

    # ── Client management ────────────────────────────────────────────

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self._loop = asyncio.get_running_loop()
        self._clients.add(ws)
        logger.info("Dashboard client connected (%d total)", len(self._clients))

    def disconnect(self, ws: WebSocket) -> None:
        self._clients.discard(ws)
        logger.info("Dashboard client disconnected (%d remaining)", len(self._clients))

    @property
    def client_count(self) -> int:
        return len(self._clients)

    # ── NotificationSink ─────────────────────────────────────────────

    def notify(self, assessment: RiskAssessment, findings: list[AnomalyFinding]) -> None:
        if not self._clients or self._loop is None:
            return
        payload = alert_payload(assessment, findings)
        asyncio.run_coroutine_threadsafe(self.broadcast_json(payload), self._loop)

    async def broadcast_json(self, data: dict[str, Any]) -> None:
        """Send a JSON payload to every connected client, dropping dead ones."""
        for ws in list(self._clients):
            try:
                await ws.send_json(data)
            except Exception as exc:
                logger.warning("Dropping dashboard client after send failure: %s", exc)
                self._clients.discard(ws)

"""Tests for the HTTP and WebSocket surface."""

import pytest
from fastapi.testclient import TestClient

from movement_intel.config import Settings
from movement_intel.main import create_app

_STEP = 0.45


def _recognition(i: int, **overrides) -> dict:
    payload = {
        "source_type": "plate_recognition",
        "plate_text": "aa12bb",
        "confidence": 0.9,
        "captured_at": f"2026-02-13T14:{i * 2:02d}:30Z",
        "location": "A1 northbound",
        "latitude": 0.0,
        "longitude": i * _STEP,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def client():
    with TestClient(create_app(Settings(inference_enabled=False))) as c:
        yield c


def _ingest(client: TestClient, payloads: list[dict]) -> list[dict]:
    acks = []
    with client.websocket_connect("/ws/sighting") as ws:
        for p in payloads:
            ws.send_json(p)
            acks.append(ws.receive_json())
    return acks


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["sightings"] == 0
        assert body["inference_enabled"] is False
        assert {a["adapter_name"] for a in body["adapters"]} == {"plate_recognition", "gps_fix"}


class TestIngestSocket:
    def test_accepted_ack(self, client: TestClient) -> None:
        ack = _ingest(client, [_recognition(0)])[0]
        assert ack == {"status": "accepted", "identifier": "AA-12-BB", "sighting": True, "sample": True}

    def test_unknown_payload(self, client: TestClient) -> None:
        ack = _ingest(client, [{"source_type": "radar"}])[0]
        assert ack["status"] == "error"
        assert ack["reason"] == "no_adapter"

    def test_invalid_payload(self, client: TestClient) -> None:
        ack = _ingest(client, [_recognition(0, plate_text="")])[0]
        assert ack["status"] == "error"
        assert ack["reason"] == "adaptation_failed"
        assert ack["adapter"] == "plate_recognition"

    def test_missing_confidence_rejected(self, client: TestClient) -> None:
        payload = _recognition(0)
        del payload["confidence"]
        ack = _ingest(client, [payload])[0]
        assert ack["status"] == "error"
        assert ack["reason"] == "adaptation_failed"
        assert client.get("/health").json()["sightings"] == 0

    def test_counts_after_ingest(self, client: TestClient) -> None:
        _ingest(client, [_recognition(i) for i in range(3)])
        body = client.get("/health").json()
        assert body["sightings"] == 3
        assert body["samples"] == 3
        assert body["total_adapted"] == 3


class TestAnalyzeEndpoint:
    def test_fast_track_is_high_risk(self, client: TestClient) -> None:
        _ingest(client, [_recognition(i) for i in range(5)])
        response = client.get("/api/identifiers/aa-12-bb/analyze")
        assert response.status_code == 200
        body = response.json()
        assert body["identifier"] == "AA-12-BB"
        assert body["profile"]["sample_count"] == 5
        assert body["assessment"]["risk_score"] > 0.9
        assert "rapid_movement" in {f["anomaly_type"] for f in body["findings"]}
        assert body["degraded"] is False

    def test_unknown_identifier_404(self, client: TestClient) -> None:
        assert client.get("/api/identifiers/ZZ99ZZ/analyze").status_code == 404

    def test_inverted_window_400(self, client: TestClient) -> None:
        response = client.get(
            "/api/identifiers/AA12BB/analyze",
            params={"since": "2026-02-14T00:00:00Z", "until": "2026-02-13T00:00:00Z"},
        )
        assert response.status_code == 400

    def test_blank_identifier_400(self, client: TestClient) -> None:
        assert client.get("/api/identifiers/%20/analyze").status_code == 400

    def test_naive_since_is_read_as_utc(self, client: TestClient) -> None:
        _ingest(client, [_recognition(i) for i in range(5)])
        response = client.get(
            "/api/identifiers/AA12BB/analyze",
            params={"since": "2026-02-13T00:00:00"},
        )
        assert response.status_code == 200
        assert response.json()["profile"]["sample_count"] == 5

    def test_mixed_naive_and_aware_window(self, client: TestClient) -> None:
        _ingest(client, [_recognition(i) for i in range(5)])
        ok = client.get(
            "/api/identifiers/AA12BB/analyze",
            params={"since": "2026-02-13T00:00:00", "until": "2026-02-14T00:00:00Z"},
        )
        inverted = client.get(
            "/api/identifiers/AA12BB/analyze",
            params={"since": "2026-02-14T00:00:00", "until": "2026-02-13T00:00:00Z"},
        )
        assert ok.status_code == 200
        assert ok.json()["profile"]["sample_count"] == 5
        assert inverted.status_code == 400


class TestTrendsEndpoint:
    def test_trends(self, client: TestClient) -> None:
        _ingest(client, [_recognition(i, confidence=0.3) for i in range(3)])
        body = client.get(
            "/api/trends",
            params={"since": "2026-02-13T00:00:00Z", "until": "2026-02-14T00:00:00Z"},
        ).json()
        assert body["count"] == 4
        assert body["degraded"] is False
        by_type = {i["trend_type"]: i for i in body["insights"]}
        assert by_type["anomaly_cluster"]["affected_count"] == 3
        assert by_type["temporal_pattern"]["details"]["peakHours"] == ["14:00"]

    def test_naive_window_is_read_as_utc(self, client: TestClient) -> None:
        _ingest(client, [_recognition(i, confidence=0.3) for i in range(3)])
        body = client.get(
            "/api/trends",
            params={"since": "2026-02-13T00:00:00", "until": "2026-02-14T00:00:00"},
        ).json()
        assert body["degraded"] is False
        by_type = {i["trend_type"]: i for i in body["insights"]}
        assert by_type["anomaly_cluster"]["affected_count"] == 3

    def test_mixed_naive_and_aware_window(self, client: TestClient) -> None:
        _ingest(client, [_recognition(i) for i in range(3)])
        response = client.get(
            "/api/trends",
            params={"since": "2026-02-13T00:00:00Z", "until": "2026-02-14T00:00:00"},
        )
        assert response.status_code == 200
        assert response.json()["degraded"] is False

    def test_trends_with_findings(self, client: TestClient) -> None:
        _ingest(client, [_recognition(i) for i in range(5)])
        body = client.get(
            "/api/trends",
            params={
                "since": "2026-02-13T00:00:00Z",
                "until": "2026-02-14T00:00:00Z",
                "with_findings": "true",
            },
        ).json()
        by_type = {i["trend_type"]: i for i in body["insights"]}
        assert by_type["anomaly_cluster"]["affected_count"] == 5


class TestDashboardSocket:
    def test_dashboard_receives_alert(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/dashboard") as dashboard:
            _ingest(client, [_recognition(i) for i in range(5)])
            client.get("/api/identifiers/AA12BB/analyze")
            # Every analysis of a high-risk identifier pushes one alert
            alert = dashboard.receive_json()
            assert alert["type"] == "risk_alert"
            assert alert["assessment"]["identifier"] == "AA-12-BB"


class TestLifespan:
    def test_shutdown_closes_risk_scorer_pool(self) -> None:
        app = create_app(Settings(inference_enabled=True))
        scorer = app.state.scorer
        executor = scorer._executor
        assert executor is not None

        with TestClient(app):
            pass

        assert scorer._executor is None
        assert executor._shutdown

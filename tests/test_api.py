"""
API tests - routes over a fresh coordinator per test, timers disabled.
"""

import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from src.api.main import create_app
from src.core.block import ProofOfWorkSealer
from src.core.config import ScanConfig
from src.core.coordinator import EventCoordinator
from src.core.ledger import Ledger


@pytest.fixture
def coordinator():
    return EventCoordinator(
        ledger=Ledger(ProofOfWorkSealer(1)),
        scan_config=ScanConfig(roots=["/srv/app"], exclude_dirs=[".git"], interval_sec=60),
        agents={},
    )


@pytest.fixture
def client(coordinator):
    app = create_app(coordinator, start_heartbeat=False)
    with TestClient(app) as test_client:
        yield test_client


class TestEventsAndMining:

    def test_post_event_queues(self, client):
        response = client.post("/events", json={"type": "login_failed", "source": "auth-service"})

        assert response.status_code == 202
        data = response.json()
        assert data["status"] == "queued"
        assert data["event"]["severity"] == "info"
        assert data["event"]["message"] == ""
        assert data["event"]["details"] == {}

        pending = client.get("/pending").json()
        assert pending["count"] == 1
        assert pending["events"][0]["type"] == "login_failed"

    @pytest.mark.parametrize("body,field", [
        ({"source": "auth-service"}, "type"),
        ({"type": "x", "source": "  "}, "source"),
        ({"type": "x", "source": "s", "details": [1, 2]}, "details"),
        ({"type": "x", "source": "s", "severity": 5}, "severity"),
    ])
    def test_post_event_validation(self, client, body, field):
        response = client.post("/events", json=body)

        assert response.status_code == 400
        assert response.json()["field"] == field
        assert field in response.json()["error"]
        assert client.get("/pending").json()["count"] == 0

    def test_post_event_non_object_body(self, client):
        response = client.post("/events", json=["not", "an", "object"])

        assert response.status_code == 400
        assert response.json() == {"error": "Request body must be a JSON object"}

    def test_mine_then_chain(self, client):
        client.post("/events", json={"type": "login_failed", "source": "auth-service",
                                     "severity": "high", "details": {"user": "bob"}})

        mined = client.post("/mine")
        assert mined.status_code == 201
        block = mined.json()
        assert block["index"] == 1
        assert block["hash"].startswith("0")
        assert block["data"][0]["details"] == {"user": "bob"}

        chain = client.get("/chain").json()
        assert chain["length"] == 2
        assert chain["chain"][1]["previousHash"] == chain["chain"][0]["hash"]
        assert chain["chain"][0]["data"] == {"message": "Genesis Block"}

        assert client.get("/pending").json() == {"count": 0, "events": []}
        assert client.get("/verify").json() == {"valid": True, "length": 2}

    def test_mine_empty_queue(self, client):
        response = client.post("/mine")

        assert response.status_code == 400
        assert response.json() == {"error": "No pending events to mine"}
        assert client.get("/chain").json()["length"] == 1

    def test_verify_reports_tampering(self, client, coordinator):
        client.post("/events", json={"type": "t", "source": "s"})
        client.post("/mine")
        ledger = coordinator.ledger
        ledger._chain[1] = ledger._chain[1].with_changes(nonce=ledger._chain[1].nonce + 1)

        assert client.get("/verify").json() == {"valid": False, "length": 2}
        health = client.get("/health").json()
        assert health["status"] == "ok"
        assert health["valid"] is False


class TestScans:

    @pytest.mark.parametrize("path,domain", [
        ("/scan/files", "files"),
        ("/scan/network", "network"),
        ("/scan/accounts", "accounts"),
        ("/scan/full", "all"),
    ])
    def test_scan_routes(self, client, coordinator, path, domain):
        coordinator.trigger_poll = MagicMock(return_value=["e1", "e2"])

        response = client.post(path)

        assert response.status_code == 202
        assert response.json() == {"status": "queued", "domain": domain, "event_count": 2}
        coordinator.trigger_poll.assert_called_once_with(domain)


class TestConfigRoutes:

    def test_get_config(self, client):
        assert client.get("/config").json() == {
            "intervalMs": 60000, "roots": ["/srv/app"], "excludeDirs": [".git"]
        }

    def test_set_roots(self, client):
        response = client.post("/config/roots", json={"roots": [" /etc ", ""]})

        assert response.status_code == 200
        assert response.json()["roots"] == ["/etc"]

    @pytest.mark.parametrize("body", [{"roots": []}, {"roots": ["  "]}, {"roots": "/etc"}, {}])
    def test_set_roots_rejected(self, client, body):
        response = client.post("/config/roots", json=body)

        assert response.status_code == 400
        assert response.json()["field"] == "roots"
        assert client.get("/config").json()["roots"] == ["/srv/app"]

    def test_set_excludes(self, client):
        response = client.post("/config/excludes", json={"excludeDirs": ["node_modules", " "]})

        assert response.status_code == 200
        assert response.json()["excludeDirs"] == ["node_modules"]

    def test_set_excludes_rejected(self, client):
        response = client.post("/config/excludes", json={"excludeDirs": "dist"})
        assert response.status_code == 400


class TestLifespan:

    def test_heartbeat_started_and_stopped(self, coordinator):
        coordinator.start = MagicMock()
        coordinator.stop = MagicMock()

        with TestClient(create_app(coordinator, start_heartbeat=True)) as test_client:
            assert test_client.get("/health").status_code == 200
            coordinator.start.assert_called_once()

        coordinator.stop.assert_called_once()

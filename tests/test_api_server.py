import json

import pytest
from fastapi.testclient import TestClient

from vibetorrent.api.server import create_app
from vibetorrent.config import access
from vibetorrent.config.schema import Config, RTorrentConfig
from vibetorrent.rtorrent.mock import MockClient
from vibetorrent.services.connection.daemon_connection import DaemonConnection


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    for name in ("RTORRENT_SOCKET", "HOST", "PORT", "VIBETORRENT_RTORRENT__SOCKET"):
        monkeypatch.delenv(name, raising=False)
    access.clear_config_cache()
    yield
    access.clear_config_cache()


@pytest.fixture
def mock_app(tmp_path):
    config = Config(rtorrent=RTorrentConfig(socket="mock"))
    return create_app(config, config_path=tmp_path / "config.json")


def test_root_and_health(mock_app):
    with TestClient(mock_app) as client:
        root = client.get("/").json()
        assert root["service"] == "vibetorrent-api"
        assert root["rtorrent"] == "configured"
        assert client.get("/health").json() == {"ok": True, "service": "vibetorrent-api"}


def test_torrent_routes_answer_503_until_configured(tmp_path):
    app = create_app(Config(), config_path=tmp_path / "config.json")
    with TestClient(app) as client:
        response = client.get("/api/torrents")
        assert response.status_code == 503
        assert response.json()["error"] == "NOT_CONFIGURED"
        assert client.get("/api/stats").status_code == 503
        assert client.get("/health").status_code == 200
        assert client.get("/api/setup").json()["state"] == "unconfigured"


def test_setup_flow_saves_and_switches(tmp_path):
    path = tmp_path / "config.json"
    app = create_app(Config(), config_path=path)
    with TestClient(app) as client:
        response = client.post("/api/setup", json={"socket_type": "mock", "default_path": "/data"})
        assert response.status_code == 200
        assert response.json()["state"] == "configured"

        saved = json.loads(path.read_text(encoding="utf-8"))
        assert saved["rtorrent"]["socket"] == "mock"
        assert saved["downloads"]["defaultPath"] == "/data"

        status = client.get("/api/setup").json()
        assert status["configured"] is True
        assert status["downloads"]["default_path"] == "/data"
        assert client.get("/api/torrents").json()["total"] == 2


def test_setup_validation_and_connection_errors(tmp_path):
    path = tmp_path / "config.json"
    app = create_app(Config(), config_path=path)
    with TestClient(app) as client:
        response = client.post("/api/setup", json={"socket_type": "tcp", "tcp_host": "localhost"})
        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Host and port are required for TCP connection"

        missing = tmp_path / "missing.sock"
        response = client.post("/api/setup", json={"socket_type": "unix", "unix_socket": str(missing)})
        assert response.status_code == 502
        assert response.json()["detail"]["error"] == "CONNECTION_FAILED"
        assert not path.exists()
        assert client.get("/api/setup").json()["last_error"]


def test_list_filter_search_and_sort_cookie(mock_app):
    with TestClient(mock_app) as client:
        response = client.get("/api/torrents", params={"sort": "name", "order": "desc"})
        assert response.status_code == 200
        assert response.cookies.get("torrent_sort") == "name:desc"
        assert [t["name"] for t in response.json()["torrents"]] == ["Linux ISO 23.10", "Demo Movie 2024"]

        remembered = client.get("/api/torrents").json()
        assert remembered["sort"] == "name"
        assert remembered["order"] == "desc"

        seeding = client.get("/api/torrents", params={"filter": "seeding"}).json()
        assert [t["hash"] for t in seeding["torrents"]] == ["456"]
        labelled = client.get("/api/torrents", params={"filter": "label:Movies", "search": "demo"}).json()
        assert [t["hash"] for t in labelled["torrents"]] == ["123"]

        assert client.get("/api/torrents", params={"filter": "bogus"}).status_code == 400


def test_counts_stats_and_system(mock_app):
    with TestClient(mock_app) as client:
        counts = client.get("/api/counts").json()
        assert counts["counts"] == {"all": 2, "downloading": 1, "seeding": 1, "paused": 0}
        assert counts["label_counts"] == {"Movies": 1, "OS": 1}
        stats = client.get("/api/stats").json()
        assert stats["download_rate"] == 500_000
        assert client.get("/api/system").json()["hostname"] == "mock"


def test_detail_files_trackers_and_not_found(mock_app):
    with TestClient(mock_app) as client:
        detail = client.get("/api/torrents/123").json()
        assert detail["torrent"]["label"] == "Movies"
        assert len(detail["files"]) == 2
        assert client.get("/api/torrents/123/files").json()["files"][0]["name"] == "file1.mp4"
        assert client.get("/api/torrents/456/trackers").json()["trackers"][0]["enabled"] is True

        response = client.get("/api/torrents/nope")
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"
        assert client.get("/api/torrents/nope/files").status_code == 502


def test_actions_priority_label_and_delete(mock_app):
    with TestClient(mock_app) as client:
        assert client.post("/api/torrents/123/pause").json()["action"] == "pause"
        assert client.get("/api/torrents/123").json()["torrent"]["state"] == "paused"
        assert client.post("/api/torrents/123/explode").status_code == 400
        assert client.post("/api/torrents/nope/start").status_code == 502

        assert client.post("/api/torrents/123/priority", json={"priority": 0}).json()["priority"] == 0
        assert client.post("/api/torrents/123/priority", json={"priority": 7}).status_code == 400
        assert client.post("/api/torrents/123/label", json={"label": "Archive"}).json()["label"] == "Archive"
        assert client.get("/api/torrents/123").json()["torrent"]["label"] == "Archive"

        assert client.delete("/api/torrents/123").json()["removed"] is True
        assert client.get("/api/torrents/123").status_code == 404


def test_add_by_url_and_upload(mock_app):
    with TestClient(mock_app) as client:
        response = client.post("/api/torrents", json={"url": "magnet:?xt=urn:btih:abc", "auto_start": False})
        assert response.json() == {"ok": True, "source": "url", "auto_start": False}

        response = client.post(
            "/api/torrents/upload",
            files={"file": ("demo.torrent", b"d4:infod4:name1:xee", "application/x-bittorrent")},
            data={"auto_start": "true", "download_path": "/srv/dl"},
        )
        payload = response.json()
        assert payload["filename"] == "demo.torrent"
        assert payload["bytes"] == 19

        assert client.get("/api/counts").json()["counts"]["all"] == 4

        bad_path = client.post("/api/torrents", json={"url": "magnet:?xt=urn:btih:def", "download_path": '/x"y'})
        assert bad_path.status_code == 400
        assert bad_path.json()["error"] == "VALIDATION_ERROR"

        empty = client.post("/api/torrents/upload", files={"file": ("empty.torrent", b"", "application/x-bittorrent")})
        assert empty.status_code == 400


def test_prepared_connection_is_used(tmp_path):
    connection = DaemonConnection()
    connection.activate("mock", MockClient(torrents=[]), "test")
    app = create_app(Config(), config_path=tmp_path / "config.json", connection=connection)
    with TestClient(app) as client:
        assert client.get("/api/torrents").json()["torrents"] == []
        assert client.get("/api/setup").json()["client_version"] == "test"


def test_setup_rejects_malformed_port_as_bad_request(tmp_path):
    path = tmp_path / "config.json"
    app = create_app(Config(), config_path=path)
    with TestClient(app) as client:
        response = client.post("/api/setup", json={"socket_type": "tcp", "tcp_host": "localhost", "tcp_port": "abc"})
        assert response.status_code == 400
        assert response.json()["detail"] == {
            "error": "INVALID_REQUEST",
            "message": "invalid TCP port in 'tcp://localhost:abc'",
        }
        assert not path.exists()
        assert client.get("/api/setup").json()["state"] == "unconfigured"

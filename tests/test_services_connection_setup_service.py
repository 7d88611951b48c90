import pytest

from vibetorrent.config.schema import Config
from vibetorrent.services.connection.daemon_connection import DaemonConnection
from vibetorrent.services.connection.setup_service import (
    apply_setup_http,
    build_endpoint,
    setup_status_http,
)
from vibetorrent.services.errors import ServiceError
from vibetorrent.utils.exceptions import TransportError


class _Client:
    def __init__(self, endpoint, error=None):
        self.endpoint = endpoint
        self._error = error

    async def test_connection(self):
        if self._error:
            raise self._error
        return "0.9.8"


def _connection(failing=()):
    def factory(endpoint, **_kwargs):
        return _Client(endpoint, TransportError("connection refused") if endpoint in failing else None)

    return DaemonConnection(client_factory=factory)


def test_build_endpoint():
    assert build_endpoint(socket_type="unix", unix_socket=" /run/rt.sock ") == "unix:///run/rt.sock"
    assert build_endpoint(socket_type="TCP", tcp_host="localhost", tcp_port=5000) == "tcp://localhost:5000"
    assert build_endpoint(socket_type="", tcp_host="h", tcp_port="1") == "tcp://h:1"
    assert build_endpoint(socket_type="mock") == "mock"


@pytest.mark.parametrize(
    "kwargs,message",
    [
        ({"socket_type": "unix"}, "Unix socket path is required"),
        ({"socket_type": "tcp", "tcp_host": "localhost"}, "Host and port are required for TCP connection"),
        ({"socket_type": "tcp", "tcp_port": "5000"}, "Host and port are required for TCP connection"),
        ({"socket_type": "pipe"}, "unknown socket type: pipe"),
        ({"socket_type": "tcp", "tcp_host": "localhost", "tcp_port": "abc"}, "invalid TCP port in 'tcp://localhost:abc'"),
        ({"socket_type": "tcp", "tcp_host": "localhost", "tcp_port": 70000}, "invalid TCP port in 'tcp://localhost:70000'"),
    ],
)
def test_build_endpoint_errors(kwargs, message):
    with pytest.raises(ServiceError) as exc:
        build_endpoint(**kwargs)
    assert exc.value.code == "INVALID_REQUEST"
    assert exc.value.message == message


def test_setup_status_http():
    config = Config()
    config.downloads.default_path = "/data"
    payload = setup_status_http(connection=_connection(), config=config)
    assert payload["ok"] is True
    assert payload["state"] == "unconfigured"
    assert payload["downloads"]["default_path"] == "/data"


@pytest.mark.asyncio
async def test_apply_setup_tests_then_saves_then_activates():
    connection = _connection()
    saved = []

    def persist(endpoint, **kwargs):
        assert not connection.is_configured
        saved.append((endpoint, kwargs))

    form = {
        "socket_type": "tcp",
        "tcp_host": "seedbox",
        "tcp_port": "5000",
        "default_path": " /data ",
        "temp_path": "",
    }
    payload = await apply_setup_http(connection=connection, form=form, persist_setup=persist)

    assert payload == {"ok": True, "endpoint": "tcp://seedbox:5000", "client_version": "0.9.8", "state": "configured"}
    assert saved == [("tcp://seedbox:5000", {"default_path": "/data", "temp_path": ""})]
    assert connection.require_client().endpoint == "tcp://seedbox:5000"


@pytest.mark.asyncio
async def test_apply_setup_connection_failure_saves_nothing():
    connection = _connection(failing={"unix:///nope.sock"})
    saved = []

    with pytest.raises(ServiceError) as exc:
        await apply_setup_http(
            connection=connection,
            form={"socket_type": "unix", "unix_socket": "/nope.sock"},
            persist_setup=lambda *a, **k: saved.append(a),
        )

    assert exc.value.code == "CONNECTION_FAILED"
    assert exc.value.message == "Cannot connect to rTorrent: connection refused"
    assert saved == []
    assert not connection.is_configured


@pytest.mark.asyncio
async def test_apply_setup_save_failure_keeps_previous_client():
    connection = _connection()
    await connection.configure("tcp://old:1")

    def persist(endpoint, **kwargs):
        raise OSError("read-only file system")

    with pytest.raises(ServiceError) as exc:
        await apply_setup_http(
            connection=connection,
            form={"socket_type": "tcp", "tcp_host": "new", "tcp_port": 2},
            persist_setup=persist,
        )

    assert exc.value.code == "SAVE_FAILED"
    assert connection.endpoint == "tcp://old:1"

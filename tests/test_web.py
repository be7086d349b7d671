"""Tests for the Flask inspection UI.

Tests use ``pytest.importorskip`` so they are skipped gracefully when
Flask is not installed.
"""

from __future__ import annotations

import errno
import stat
from typing import Any

import pytest

flask = pytest.importorskip("flask")

from heisenberg_fs.engine import FilesystemEngine  # noqa: E402
from heisenberg_fs.identity import fixed_identity  # noqa: E402
from heisenberg_fs.web.app import create_app  # noqa: E402

HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
MODE = stat.S_IFREG | 0o644


def _engine() -> FilesystemEngine:
    """Create an engine owned by uid/gid 1000."""
    return FilesystemEngine(identity=fixed_identity(1000, 1000))


def _client(engine: FilesystemEngine | None = None) -> Any:
    """Create a test client for an engine."""
    app = create_app(engine or _engine())
    app.config["TESTING"] = True
    return app.test_client()


def _post(client: Any, kind: str, **args: Any) -> Any:
    """POST one request to /api/request."""
    return client.post("/api/request", json={"kind": kind, "args": args})


class TestAppCreation:
    """Verify the app factory."""

    def test_create_app_returns_flask(self) -> None:
        """create_app should return a Flask application."""
        assert isinstance(create_app(), flask.Flask)

    def test_status(self) -> None:
        """GET /api/status reports occupancy."""
        engine = _engine()
        engine.create("/a", MODE)
        response = _client(engine).get("/api/status")
        assert response.status_code == HTTP_OK
        data = response.get_json()
        assert data["files"] == 1
        assert data["capacity"] == engine.table.capacity
        assert data["anomalies"] == 0


class TestFilesEndpoint:
    """Verify the non-observing file listing."""

    def test_files_show_observation(self) -> None:
        """Each file is reported with its current state."""
        engine = _engine()
        engine.create("/a", MODE)
        data = _client(engine).get("/api/files").get_json()
        [entry] = data["files"]
        assert entry["name"] == "a"
        assert entry["observation"] == "created"

    def test_files_do_not_observe(self) -> None:
        """Looking at the dashboard leaves files alone."""
        engine = _engine()
        engine.create("/a", MODE)
        client = _client(engine)
        client.get("/api/files")
        client.get("/api/files")
        assert engine.inspect()[0].observation.value == "created"


class TestRequestEndpoint:
    """Verify the /api/request POST endpoint."""

    def test_create_write_read(self) -> None:
        """Requests run through the engine and return results."""
        client = _client()
        assert _post(client, "create", path="/w", mode=MODE).status_code == HTTP_OK
        written = _post(client, "write", path="/w", offset=0, data="hi").get_json()
        assert written["result"] == len("hi")
        read = _post(client, "read", path="/w", offset=0, max_length=10).get_json()
        assert read["result"] == "hi"

    def test_stat_result(self) -> None:
        """Stat results are serialized as objects."""
        client = _client()
        _post(client, "create", path="/s", mode=MODE)
        result = _post(client, "stat", path="/s").get_json()["result"]
        assert result["name"] == "s"
        assert result["observation"] == "stat_queried"

    def test_not_found(self) -> None:
        """NOT_FOUND maps to HTTP 404 with the errno."""
        response = _post(_client(), "stat", path="/missing")
        assert response.status_code == HTTP_NOT_FOUND
        data = response.get_json()
        assert data["kind"] == "not_found"
        assert data["errno"] == errno.ENOENT

    def test_duplicate(self) -> None:
        """DUPLICATE_NAME maps to HTTP 409."""
        client = _client()
        _post(client, "create", path="/d", mode=MODE)
        assert _post(client, "create", path="/d", mode=MODE).status_code == HTTP_CONFLICT

    def test_missing_kind(self) -> None:
        """A body without 'kind' is a bad request."""
        response = _client().post("/api/request", json={"args": {}})
        assert response.status_code == HTTP_BAD_REQUEST

    def test_unknown_kind(self) -> None:
        """An unknown kind is a bad request."""
        assert _post(_client(), "explode").status_code == HTTP_BAD_REQUEST

    def test_no_json_body(self) -> None:
        """A non-JSON body is a bad request."""
        response = _client().post("/api/request", data="not json")
        assert response.status_code == HTTP_BAD_REQUEST

    @pytest.mark.parametrize(
        ("args", "message"),
        [
            ({"path": "/w", "offset": 0, "data": 5}, "must be a string"),
            ({"path": "/w", "offset": 0, "data": "\u20ac"}, "latin-1"),
            ({"path": "/w", "offset": "0", "data": "hi"}, "offset"),
        ],
    )
    def test_bad_write_arguments(self, args: dict[str, Any], message: str) -> None:
        """Badly typed or unencodable write arguments are bad requests."""
        engine = _engine()
        client = _client(engine)
        _post(client, "create", path="/w", mode=MODE)
        response = _post(client, "write", **args)
        assert response.status_code == HTTP_BAD_REQUEST
        assert message in response.get_json()["error"]
        assert engine.inspect()[0].size == 0

    def test_latin1_round_trip(self) -> None:
        """Latin-1 text is written and read back unchanged."""
        client = _client()
        _post(client, "create", path="/l", mode=MODE)
        assert _post(client, "write", path="/l", offset=0, data="caf\u00e9").status_code == HTTP_OK
        read = _post(client, "read", path="/l", offset=0, max_length=10).get_json()
        assert read["result"] == "caf\u00e9"


class TestLogEndpoint:
    """Verify the /api/log endpoint."""

    def test_warning_filter(self) -> None:
        """Only anomalies show at WARNING."""
        engine = _engine()
        engine.create("/a", MODE)
        engine.release("/a")
        engine.read("/a", 0, 1)
        data = _client(engine).get("/api/log?level=warning").get_json()
        [line] = data["entries"]
        assert line.startswith("[WARNING] observe:")

    def test_bad_level(self) -> None:
        """An unknown level is a bad request."""
        response = _client().get("/api/log?level=loud")
        assert response.status_code == HTTP_BAD_REQUEST

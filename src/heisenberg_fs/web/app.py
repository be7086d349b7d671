"""Flask application factory for the heisenberg-fs inspection UI.

The ``create_app`` function wraps an engine (a fresh one by default) and
returns a Flask app with four endpoints:

- ``GET /api/status`` — file count, capacity and anomaly total.
- ``GET /api/files`` — every file with its observation state.
- ``GET /api/log`` — formatted log entries, optionally filtered.
- ``POST /api/request`` — run one request through ``engine.handle``.

The two read-only views inspect the table without observing it, so
looking at the dashboard never changes a file's state.  Requests posted
to ``/api/request`` observe files exactly as a bridge would.
"""

from __future__ import annotations

from typing import Any

from flask import Flask, Response, jsonify, request

from heisenberg_fs.dispatch import EngineError, ErrorKind, RequestKind
from heisenberg_fs.engine import FilesystemEngine, RootAttributes
from heisenberg_fs.logging import LogLevel
from heisenberg_fs.record import FileAttributes

_HTTP_BAD_REQUEST = 400
_HTTP_NOT_FOUND = 404
_HTTP_CONFLICT = 409
_HTTP_INSUFFICIENT_STORAGE = 507

_STATUS_FOR_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: _HTTP_NOT_FOUND,
    ErrorKind.DUPLICATE_NAME: _HTTP_CONFLICT,
    ErrorKind.CAPACITY_EXCEEDED: _HTTP_INSUFFICIENT_STORAGE,
}


def _attributes_to_json(attributes: FileAttributes | RootAttributes) -> dict[str, Any]:
    """Convert a stat result to a JSON-safe dict."""
    if isinstance(attributes, RootAttributes):
        return {
            "mode": attributes.mode,
            "nlink": attributes.nlink,
            "uid": attributes.uid,
            "gid": attributes.gid,
        }
    return {
        "id": str(attributes.record_id),
        "name": attributes.name,
        "mode": attributes.mode,
        "uid": attributes.uid,
        "gid": attributes.gid,
        "size": attributes.size,
        "access_time": attributes.access_time,
        "modify_time": attributes.modify_time,
        "observation": attributes.observation.value,
    }


def _result_to_json(result: Any) -> Any:
    """Convert a request result to something ``jsonify`` accepts."""
    if isinstance(result, FileAttributes | RootAttributes):
        return _attributes_to_json(result)
    if isinstance(result, bytes):
        return result.decode("latin-1")
    if result is None or isinstance(result, int | str | list):
        return result
    return str(result)


def _decode_args(kind: RequestKind, args: dict[str, Any]) -> dict[str, Any]:
    """Turn JSON arguments into engine arguments.

    Write data arrives as text and is sent on as latin-1 bytes, the same
    encoding read results are returned in.

    Raises:
        ValueError: If write data is not a latin-1 string.

    """
    decoded = dict(args)
    if kind is RequestKind.WRITE and "data" in decoded:
        data = decoded["data"]
        if not isinstance(data, str):
            msg = f"'data' must be a string, not {type(data).__name__}"
            raise ValueError(msg)
        try:
            decoded["data"] = data.encode("latin-1")
        except UnicodeEncodeError as e:
            msg = "'data' must only hold latin-1 characters"
            raise ValueError(msg) from e
    return decoded


def create_app(engine: FilesystemEngine | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        engine: The engine to expose; a new one is created if omitted.

    Returns:
        A configured Flask application ready to serve.

    """
    engine = engine or FilesystemEngine()
    app = Flask(__name__)

    @app.route("/api/status")
    def status() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return table occupancy and the anomaly total."""
        return jsonify(
            {
                "files": engine.file_count,
                "capacity": engine.table.capacity,
                "anomalies": engine.anomaly_count,
            }
        )

    @app.route("/api/files")
    def files() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return every file's attributes without observing any of them."""
        return jsonify({"files": [_attributes_to_json(a) for a in engine.inspect()]})

    @app.route("/api/log")
    def log() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Return log entries, filtered by ``level`` and ``path`` query args."""
        level_name = request.args.get("level")
        min_level = None
        if level_name is not None:
            try:
                min_level = LogLevel[level_name.upper()]
            except KeyError:
                return jsonify({"error": f"Unknown level: {level_name}"}), _HTTP_BAD_REQUEST
        entries = engine.logger.filter(min_level=min_level, path=request.args.get("path"))
        return jsonify({"entries": [str(e) for e in entries]})

    @app.route("/api/request", methods=["POST"])
    def run_request() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Run one request through the engine.

        Expects JSON body: ``{"kind": "STAT", "args": {"path": "/f"}}``

        Returns:
            JSON with ``result``, or ``error`` / ``kind`` / ``errno``.

        """
        data = request.get_json(silent=True)
        if data is None or "kind" not in data:
            return jsonify({"error": "Missing 'kind' field"}), _HTTP_BAD_REQUEST
        try:
            kind = RequestKind[str(data["kind"]).upper()]
        except KeyError:
            return jsonify({"error": f"Unknown request: {data['kind']}"}), _HTTP_BAD_REQUEST
        args = data.get("args") or {}
        if not isinstance(args, dict):
            return jsonify({"error": "'args' must be an object"}), _HTTP_BAD_REQUEST

        try:
            decoded = _decode_args(kind, args)
        except ValueError as e:
            return jsonify({"error": str(e)}), _HTTP_BAD_REQUEST
        try:
            result = engine.handle(kind, **decoded)
        except EngineError as e:
            body = {"error": str(e), "kind": e.kind.value, "errno": e.errno}
            return jsonify(body), _STATUS_FOR_KIND.get(e.kind, _HTTP_BAD_REQUEST)
        return jsonify({"result": _result_to_json(result)})

    return app


def main() -> None:
    """Run the inspection UI development server.

    This is the ``heisenberg-fs-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)

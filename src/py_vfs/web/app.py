"""Flask application factory for the py-vfs web terminal.

The ``create_app`` function installs the system, logs a user in,
creates a shell, and returns a Flask app with three endpoints:

- ``GET /`` — render the terminal HTML page.
- ``POST /api/execute`` — execute a command and return JSON.
- ``GET /api/status`` — return the session state.

Configuration lives in ``app.config``:

- ``VFS_STATE_FILE`` — JSON file the store is loaded from and saved to
  after every mutating command (``None`` keeps everything in memory).
- ``VFS_USER`` — the user the session starts as (default ``root``).
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from flask import Flask, Response, jsonify, render_template, request

from py_vfs.context import SessionContext
from py_vfs.fs.persistence import json_saver
from py_vfs.install import create_session
from py_vfs.repl import build_prompt, format_banner, load_state
from py_vfs.shell import Shell

_HTTP_BAD_REQUEST = 400

DEFAULT_CONFIG: dict[str, Any] = {
    "VFS_STATE_FILE": None,
    "VFS_USER": "root",
}


@dataclass
class _WebSession:
    """The one shell session served by an app instance.

    Requests are served on threads; ``lock`` serialises commands so one
    command's transaction never interleaves with another's writes.
    """

    context: SessionContext
    shell: Shell
    halted: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def describe(self) -> dict[str, Any]:
        """Return the fields every JSON response carries."""
        return {
            "cwd": self.context.get_current_path(),
            "user": self.context.current_user.username,
            "prompt": build_prompt(self.context),
            "halted": self.halted,
        }


def create_app(config: Mapping[str, Any] | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Values merged over ``DEFAULT_CONFIG`` into ``app.config``.

    Returns:
        A configured Flask application ready to serve.

    """
    app = Flask(__name__)
    app.config.update(DEFAULT_CONFIG)
    if config:
        app.config.update(config)

    state_value = app.config["VFS_STATE_FILE"]
    state_path = Path(state_value) if state_value else None
    context = create_session(
        load_state(state_path),
        username=app.config["VFS_USER"],
        save_callback=json_saver(state_path) if state_path else None,
    )
    session = _WebSession(context=context, shell=Shell(context))

    @app.route("/")
    def index() -> str:  # pyright: ignore[reportUnusedFunction]
        """Render the terminal HTML page."""
        return render_template("index.html", banner=format_banner(), prompt=build_prompt(context))

    @app.route("/api/execute", methods=["POST"])
    def execute() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Execute a shell command and return JSON output.

        Expects JSON body: ``{"command": "..."}``

        Returns:
            JSON with ``output``, ``cwd``, ``user``, ``prompt`` and
            ``halted`` fields.

        """
        data: Any = request.get_json(silent=True)
        if not isinstance(data, dict) or "command" not in data:
            return jsonify({"error": "Missing 'command' field"}), _HTTP_BAD_REQUEST
        command: Any = data["command"]
        if not isinstance(command, str):
            return jsonify({"error": "'command' must be a string"}), _HTTP_BAD_REQUEST

        with session.lock:
            if session.halted:
                return jsonify({"output": "Session closed.", **session.describe()})

            result = session.shell.execute(command)
            if result == Shell.EXIT_SENTINEL:
                session.halted = True
                context.save()
                return jsonify({"output": "logout", **session.describe()})

            return jsonify({"output": result, **session.describe()})

    @app.route("/api/status")
    def status() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return session status for polling.

        Returns:
            JSON with ``running``, ``entries`` and the session fields.

        """
        return jsonify(
            {
                "running": not session.halted,
                "entries": len(context.store),
                **session.describe(),
            }
        )

    return app


def main() -> None:
    """Run the web terminal development server.

    This is the ``py-vfs-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)

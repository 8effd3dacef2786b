"""Flask application factory for the shell's HTTP API.

``create_app`` boots one shell and returns a Flask app with two
endpoints:

- ``POST /api/execute`` — run a command line and return its result.
- ``GET /api/status`` — return the working directory and command names.

Each request drives the async shell with ``asyncio.run``; the executor
rejects a second line while one is still running, which surfaces here
as HTTP 409.
"""

from __future__ import annotations

import asyncio

from flask import Flask, Response, jsonify, request

from swat_shell.boot import boot_shell
from swat_shell.config import ShellConfig
from swat_shell.executor import BusyError
from swat_shell.store import StorageError

_HTTP_BAD_REQUEST = 400
_HTTP_CONFLICT = 409
_HTTP_INSUFFICIENT_STORAGE = 507


def create_app(config: ShellConfig | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Shell configuration (defaults to ``ShellConfig.from_env()``).

    Returns:
        A configured Flask application ready to serve.

    """
    shell = asyncio.run(boot_shell(config or ShellConfig.from_env()))

    app = Flask(__name__)
    app.extensions["swat_shell"] = shell

    @app.route("/api/execute", methods=["POST"])
    def execute() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Run a command line and return its result as JSON.

        Expects JSON body: ``{"command": "..."}``

        Returns:
            JSON with ``stdout``, ``stderr``, ``exit_code`` and ``cwd``.

        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not isinstance(data.get("command"), str):
            return jsonify({"error": "Missing 'command' field"}), _HTTP_BAD_REQUEST

        try:
            result = asyncio.run(shell.run_line(data["command"]))
        except BusyError as e:
            return jsonify({"error": str(e)}), _HTTP_CONFLICT
        except StorageError as e:
            return jsonify({"error": str(e)}), _HTTP_INSUFFICIENT_STORAGE

        return jsonify(
            {
                "stdout": result.stdout,
                "stderr": result.stderr,
                "exit_code": result.exit_code,
                "cwd": shell.fs.cwd(),
            }
        )

    @app.route("/api/status")
    def status() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the working directory and available commands."""
        return jsonify({"cwd": shell.fs.cwd(), "commands": shell.registry.list()})

    return app


def main() -> None:
    """Run the development server.

    This is the ``swat-shell-web`` console entry point.
    """
    app = create_app()
    app.run(debug=False, port=5000)

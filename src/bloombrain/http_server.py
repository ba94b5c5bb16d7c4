"""Standalone JSON HTTP server exposing the BloomBrainServer tools."""

from __future__ import annotations

import argparse
import json
import logging
import threading
import time
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

from .config import Settings, configure_logging
from .errors import BloomBrainError, GenerationInProgress, InvalidTransition, MediaRejected
from .server import BloomBrainServer


logger = logging.getLogger(__name__)


class BloomBrainHTTPRequestHandler(BaseHTTPRequestHandler):
    """HTTP handler serving tool discovery and invocations."""

    server_version = "BloomBrain/0.1"

    def do_GET(self) -> None:  # noqa: N802  (BaseHTTPRequestHandler API)
        parsed = urlparse(self.path)
        if parsed.path == "/healthz":
            self._send_json(HTTPStatus.OK, {"status": "ok", "time": int(time.time())})
            return
        if parsed.path == "/tools":
            self._send_json(HTTPStatus.OK, self.server.engine.list_tools())  # type: ignore[attr-defined]
            return
        self._send_json(HTTPStatus.NOT_FOUND, {"error": "Unknown endpoint"})

    def do_POST(self) -> None:  # noqa: N802
        parsed = urlparse(self.path)
        if parsed.path == "/invoke":
            self._handle_invoke()
            return
        self._send_json(HTTPStatus.NOT_FOUND, {"error": "Unknown endpoint"})

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.debug("%s - %s", self.address_string(), format % args)

    # ------------------------------------------------------------------
    # Helpers

    def _send_json(self, status: HTTPStatus, payload: Any) -> None:
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _handle_invoke(self) -> None:
        content_length = int(self.headers.get("Content-Length", "0"))
        raw = self.rfile.read(content_length) if content_length else b"{}"
        try:
            payload = json.loads(raw or b"{}")
        except json.JSONDecodeError as exc:
            self._send_json(HTTPStatus.BAD_REQUEST, {"error": f"Invalid JSON: {exc}"})
            return
        if not isinstance(payload, dict):
            self._send_json(HTTPStatus.BAD_REQUEST, {"error": "Request body must be a JSON object"})
            return

        tool = payload.get("tool")
        arguments = payload.get("arguments") or {}
        if not tool:
            self._send_json(HTTPStatus.BAD_REQUEST, {"error": "Missing tool name"})
            return

        engine: BloomBrainServer = self.server.engine  # type: ignore[attr-defined]
        try:
            result = engine.call_tool(tool, arguments)
        except MediaRejected as exc:
            self._send_json(HTTPStatus.BAD_REQUEST, {"error": exc.message})
            return
        except GenerationInProgress as exc:
            self._send_json(HTTPStatus.CONFLICT, {"error": str(exc)})
            return
        except InvalidTransition as exc:
            self._send_json(HTTPStatus.CONFLICT, {"error": str(exc)})
            return
        except (TypeError, ValueError) as exc:
            self._send_json(HTTPStatus.BAD_REQUEST, {"error": f"Argument error: {exc}"})
            return
        except BloomBrainError as exc:
            logger.exception("Tool %s failed", tool)
            self._send_json(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": str(exc)})
            return
        except Exception as exc:
            logger.exception("Unexpected failure in tool %s", tool)
            self._send_json(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": str(exc)})
            return

        self._send_json(HTTPStatus.OK, {"tool": tool, "result": result})


class BloomBrainHTTPServer(ThreadingHTTPServer):
    """Threading server injecting the engine dependency."""

    def __init__(self, address, handler, engine: BloomBrainServer):
        super().__init__(address, handler)
        self.engine = engine


def run_http_server(
    host: str = "127.0.0.1",
    port: int = 8765,
    settings: Optional[Settings] = None,
    engine: Optional[BloomBrainServer] = None,
) -> BloomBrainHTTPServer:
    """Create the HTTP server and serve it from a daemon thread."""

    engine = engine or BloomBrainServer(settings=settings)
    http_server = BloomBrainHTTPServer((host, port), BloomBrainHTTPRequestHandler, engine)
    thread = threading.Thread(target=http_server.serve_forever, daemon=True)
    thread.start()
    return http_server


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Run the BloomBrain activity engine server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8765, help="Port number (default: 8765)")
    parser.add_argument("--database", help="Path to SQLite database override")
    parser.add_argument("--log-level", help="Logging level override")
    args = parser.parse_args(argv)

    settings = Settings.load()
    if args.database:
        settings.database_path = Path(args.database)
    configure_logging(args.log_level or settings.log_level)

    engine = BloomBrainServer(settings=settings)
    http_server = BloomBrainHTTPServer((args.host, args.port), BloomBrainHTTPRequestHandler, engine)

    logger.info("Serving BloomBrain on http://%s:%s", args.host, args.port)
    if not engine.client.has_credentials():
        logger.warning("OPENAI_API_KEY not set; missions come from the offline library")
    try:
        http_server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        engine.close()
        http_server.server_close()


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()

"""HTTP server for macaroond using stdlib http.server.

Routes:
    POST   /macaroon    — exchange a password for an access token
    PUT    /password    — set the initial password or change it
    POST   /key         — get the current root key (bearer token required)
    GET    /key/{id}    — look up a root key by id (bearer token required)

The server listens on TCP or on a unix socket and handles each connection
in its own thread.

Usage:
    python -m macaroond.server.app /var/lib/macaroond
    python -m macaroond.server.app -t unix --addr /tmp/macaroond.socket /var/lib/macaroond
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import re
import socketserver
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

from macaroond.config import DEFAULT_ADDRESS, DEFAULT_NETWORK
from macaroond.custody.custodian import MasterKeyCustodian
from macaroond.errors import MacaroondError
from macaroond.server.models import ErrorResponse
from macaroond.server.routes import RootKeyService

logger = logging.getLogger(__name__)

# URL pattern for /key/{id}
_KEY_ID_PATTERN = re.compile(r"^/key/([^/]+)$")


class RootKeyHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the root key daemon.

    The :class:`RootKeyService` is taken from ``self.server.service``. All
    request bodies and responses use JSON.
    """

    protocol_version = "HTTP/1.1"

    @property
    def service(self) -> RootKeyService:
        return self.server.service  # type: ignore[attr-defined]

    def log_message(self, format: str, *args: object) -> None:
        """Override to route access logs through the Python logging system."""
        logger.debug(format, *args)

    # ── GET ───────────────────────────────────────────────────────────────────

    def do_GET(self) -> None:
        """Handle GET /key/{id}."""
        path = self._path()
        match = _KEY_ID_PATTERN.match(path)
        if match:
            key_id = urllib.parse.unquote(match.group(1))
            self._dispatch(
                lambda: self.service.handle_find_root_key(self._authorization(), key_id)
            )
        else:
            self._not_found("GET", path)

    # ── POST ──────────────────────────────────────────────────────────────────

    def do_POST(self) -> None:
        """Handle POST /macaroon and POST /key."""
        path = self._path()
        body = self._read_json_body()
        if body is None:
            return

        if path == "/macaroon":
            self._dispatch(lambda: self.service.handle_access(body))
        elif path == "/key":
            self._dispatch(lambda: self.service.handle_new_root_key(self._authorization()))
        else:
            self._not_found("POST", path)

    # ── PUT ───────────────────────────────────────────────────────────────────

    def do_PUT(self) -> None:
        """Handle PUT /password."""
        path = self._path()
        body = self._read_json_body()
        if body is None:
            return

        if path == "/password":
            self._dispatch(lambda: self.service.handle_set_password(body))
        else:
            self._not_found("PUT", path)

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _path(self) -> str:
        return urllib.parse.urlparse(self.path).path.rstrip("/")

    def _authorization(self) -> str | None:
        return self.headers.get("Authorization")

    def _dispatch(self, handler) -> None:  # type: ignore[no-untyped-def]
        """Run *handler* and send its result, turning failures into 500s."""
        try:
            status, data = handler()
        except MacaroondError as exc:
            logger.error("request failed: %s", exc)
            status, data = 500, ErrorResponse(
                error="Internal error", code=exc.code, detail=str(exc)
            ).model_dump()
        except Exception:
            logger.exception("unhandled error serving %s %s", self.command, self.path)
            status, data = 500, ErrorResponse(
                error="Internal error", code="internal error"
            ).model_dump()
        self._send_json(status, data)

    def _not_found(self, method: str, path: str) -> None:
        self._send_json(
            404,
            ErrorResponse(
                error="Not found", code="not found", detail=f"No route for {method} {path}"
            ).model_dump(),
        )

    def _send_json(self, status: int, data: dict[str, object]) -> None:
        """Serialize *data* to JSON and send an HTTP response with *status*."""
        body = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _read_json_body(self) -> dict[str, object] | None:
        """Read and parse the JSON request body.

        Returns None (and sends a 400 error response) if parsing fails.
        """
        content_length = int(self.headers.get("Content-Length", 0))
        if content_length == 0:
            return {}

        raw = self.rfile.read(content_length)
        try:
            parsed = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            self._send_json(
                400, ErrorResponse(error="Invalid JSON", code="bad request", detail=str(exc)).model_dump()
            )
            return None
        if not isinstance(parsed, dict):
            self._send_json(
                400,
                ErrorResponse(
                    error="Invalid JSON", code="bad request", detail="request body must be an object"
                ).model_dump(),
            )
            return None
        return parsed


class RootKeyHTTPServer(ThreadingHTTPServer):
    """Threaded TCP HTTP server carrying a :class:`RootKeyService`."""

    daemon_threads = True

    def __init__(self, address: tuple[str, int], service: RootKeyService) -> None:
        self.service = service
        super().__init__(address, RootKeyHandler)


class UnixRootKeyHTTPServer(socketserver.ThreadingMixIn, socketserver.UnixStreamServer):
    """Threaded unix-socket HTTP server carrying a :class:`RootKeyService`."""

    daemon_threads = True

    def __init__(self, path: str, service: RootKeyService) -> None:
        self.service = service
        super().__init__(path, RootKeyHandler)


def parse_tcp_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` into its parts.

    Raises
    ------
    ValueError
        If *address* has no port or the port is not a number.
    """
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid tcp address {address!r} (want host:port)")
    return host.strip("[]"), int(port)



def create_server(
    directory: Path | str,
    network: str = DEFAULT_NETWORK,
    address: str = DEFAULT_ADDRESS,
    token_ttl_seconds: int | None = None,
) -> socketserver.BaseServer:
    """Create (but do not start) the macaroond HTTP server.

    Parameters
    ----------
    directory:
        Existing directory holding the sealed master key.
    network:
        ``"tcp"`` or ``"unix"``.
    address:
        ``host:port`` for tcp (port 0 picks a free port), a socket path
        for unix.
    token_ttl_seconds:
        Lifetime of minted access tokens; 24 hours when omitted.

    Returns
    -------
    socketserver.BaseServer
        A configured server instance ready to call ``serve_forever()`` on.
        Its ``service.location`` names the address actually bound.

    Raises
    ------
    FileNotFoundError
        If *directory* does not exist.
    InvalidStoredKeyError
        If the sealed master key file is corrupt.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"directory {directory} does not exist")

    custodian = MasterKeyCustodian(directory)
    if token_ttl_seconds is None:
        service = RootKeyService(custodian)
    else:
        service = RootKeyService(custodian, token_ttl_seconds=token_ttl_seconds)

    server: socketserver.BaseServer
    if network == "unix":
        try:
            server = UnixRootKeyHTTPServer(address, service)
        except OSError:
            # A stale socket left by a previous run blocks the bind.
            os.remove(address)
            server = UnixRootKeyHTTPServer(address, service)
        service.location = f"unix {address}"
    elif network == "tcp":
        host, port = parse_tcp_address(address)
        server = RootKeyHTTPServer((host, port), service)
        if port == 0:
            port = server.server_address[1]
        service.location = f"tcp {host}:{port}"
    else:
        raise ValueError(f"unsupported network {network!r} (want tcp or unix)")

    logger.info("successfully listened on %s", service.location.replace(" ", "!"))
    return server


def run_server(
    directory: Path | str,
    network: str = DEFAULT_NETWORK,
    address: str = DEFAULT_ADDRESS,
    token_ttl_seconds: int | None = None,
) -> None:
    """Create and run the macaroond HTTP server (blocking)."""
    server = create_server(
        directory, network=network, address=address, token_ttl_seconds=token_ttl_seconds
    )
    logger.info("Serving macaroond from %s; press Ctrl-C to stop", directory)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down macaroond server.")
    finally:
        server.server_close()
        if network == "unix":
            Path(address).unlink(missing_ok=True)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="macaroond root key daemon",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("directory", help="Directory holding the sealed master key")
    parser.add_argument(
        "-t", "--network", default=DEFAULT_NETWORK, choices=["tcp", "unix"], help="Network type"
    )
    parser.add_argument("--addr", default=DEFAULT_ADDRESS, help="Address or socket path")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser


if __name__ == "__main__":
    args = _build_arg_parser().parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level))
    run_server(args.directory, network=args.network, address=args.addr)

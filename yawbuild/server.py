"""
Local verification server.

Serves the assembled output directory as static files until the process is
terminated. Not part of the release artifact.
"""

import mimetypes
import socket
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .errors import FilesystemError, ServerBindError
from .logging import get_logger

log = get_logger('server')

# Browsers refuse streaming wasm compilation without the right content type
mimetypes.add_type("application/wasm", ".wasm")


def create_app(directory: Path) -> FastAPI:
    """Create an app serving directory at / (index.html for directory URLs)."""
    app = FastAPI(
        title="yaw release preview",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.mount("/", StaticFiles(directory=str(directory), html=True), name="bundle")
    return app


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind the listening socket up front so a busy port fails loudly.

    Raises:
        ServerBindError: If the address is in use or not bindable
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        raise ServerBindError(host, port, exc.strerror or str(exc)) from exc
    sock.set_inheritable(True)
    return sock


def serve(directory: Path, host: str = "0.0.0.0", port: int = 8000) -> None:
    """Serve directory over HTTP. Blocks until externally terminated.

    Raises:
        FilesystemError: If directory does not exist
        ServerBindError: If the port cannot be bound (not retried)
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FilesystemError(f"Nothing to serve, {directory} is not a directory", directory)

    app = create_app(directory)
    sock = bind_socket(host, port)
    bound_port = sock.getsockname()[1]

    print(f"\nServing {directory} on port {bound_port}...")
    print(f"Open: http://localhost:{bound_port}\n")
    log.info("Local server listening on %s:%d", host, bound_port)

    server = uvicorn.Server(uvicorn.Config(app, log_level="info"))
    try:
        server.run(sockets=[sock])
    finally:
        sock.close()

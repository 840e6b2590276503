from __future__ import annotations

import socket
import socketserver
import time
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional

from pydantic import ValidationError

from reloadctl.core.errors import ReconnectTimeoutError
from reloadctl.core.models import OperationDocument, OperationResponse
from reloadctl.runtime.connection import TransportError

CONNECT_RETRY_INTERVAL_SECONDS = 0.1

OperationHandler = Callable[[OperationDocument], Optional[OperationResponse]]


class SocketControllerClient:
    """
    ConnectionHandle speaking newline-delimited JSON over one persistent TCP socket.

    Each request is an OperationDocument on one line; each reply is an
    OperationResponse on one line.
    """

    def __init__(self, host: str, port: int, read_timeout_seconds: float = 30.0) -> None:
        self.host = host
        self.port = port
        self.read_timeout_seconds = read_timeout_seconds
        self._sock: Optional[socket.socket] = None
        self._reader: Optional[BinaryIO] = None

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def connect(self, timeout_seconds: float = 5.0) -> None:
        sock = socket.create_connection((self.host, self.port), timeout=timeout_seconds)
        sock.settimeout(self.read_timeout_seconds)
        self._sock = sock
        self._reader = sock.makefile("rb")

    def is_connected(self) -> bool:
        return self._sock is not None

    def execute(self, document: OperationDocument) -> OperationResponse:
        if self._sock is None or self._reader is None:
            raise TransportError(f"Not connected to {self.address}.")

        payload = document.model_dump_json() + "\n"
        try:
            self._sock.sendall(payload.encode("utf-8"))
            line = self._reader.readline()
        except socket.timeout as exc:
            # The peer is still there, it just did not answer in time.
            raise TransportError(f"Timed out waiting for a response from {self.address}.") from exc
        except OSError as exc:
            self._drop()
            raise TransportError(f"Connection to {self.address} lost: {exc}") from exc

        if not line:
            self._drop()
            raise TransportError(f"Connection to {self.address} closed by peer.")

        try:
            return OperationResponse.model_validate_json(line)
        except ValidationError as exc:
            raise TransportError(f"Invalid response from {self.address}: {exc}") from exc

    def ensure_connected(self, timeout_ms: int) -> None:
        """Connect if needed, retrying until `timeout_ms` of wall-clock time has passed."""
        if self.is_connected():
            return

        started = time.monotonic()
        deadline = started + timeout_ms / 1000.0
        last_error: Optional[OSError] = None

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                elapsed_ms = int((time.monotonic() - started) * 1000)
                raise ReconnectTimeoutError(
                    f"Failed to establish connection to {self.address} in {elapsed_ms}ms: {last_error}",
                    elapsed_ms=elapsed_ms,
                )

            try:
                self.connect(timeout_seconds=remaining)
                return
            except OSError as exc:
                last_error = exc

            time.sleep(min(CONNECT_RETRY_INTERVAL_SECONDS, max(deadline - time.monotonic(), 0.0)))

    def close(self) -> None:
        self._drop()

    def _drop(self) -> None:
        reader, sock = self._reader, self._sock
        self._reader = None
        self._sock = None
        if reader is not None:
            reader.close()
        if sock is not None:
            sock.close()


@dataclass
class _ManagementRPCContext:
    handle: OperationHandler


class _ManagementRequestHandler(socketserver.StreamRequestHandler):
    def handle(self) -> None:
        context = self.server.rpc_context
        while True:
            line = self.rfile.readline()
            if not line:
                return

            try:
                document = OperationDocument.model_validate_json(line)
                response = context.handle(document)
            except Exception as exc:
                response = OperationResponse(outcome="failed", failure_description=str(exc))

            if response is None:
                # Handler asked to sever the connection, as a restarting process does.
                return

            self.wfile.write((response.model_dump_json() + "\n").encode("utf-8"))


class _ThreadingTCPServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True


class ManagementRPCServer:
    """
    Serves management operations to SocketControllerClient connections.

    `handler` returns the response for a document, or None to drop the client
    connection without answering. Pass port 0 to bind an ephemeral port.
    """

    def __init__(self, host: str, port: int, handler: OperationHandler) -> None:
        self._server = _ThreadingTCPServer((host, port), _ManagementRequestHandler)
        self._server.rpc_context = _ManagementRPCContext(handle=handler)
        self.host, self.port = self._server.server_address[:2]

    def serve_forever(self) -> None:
        self._server.serve_forever(poll_interval=0.2)

    def shutdown(self) -> None:
        self._server.shutdown()
        self._server.server_close()

from __future__ import annotations

from typing import Protocol, runtime_checkable

from reloadctl.core.models import OperationDocument, OperationResponse


class TransportError(OSError):
    """I/O failure on the management connection."""


class ProcessStateError(RuntimeError):
    """A co-resident process refused a request because of its lifecycle state (e.g. stopping)."""


@runtime_checkable
class LocalProcessHandle(Protocol):
    """Client of a managed process running in the same process as the caller."""

    def execute(self, document: OperationDocument) -> OperationResponse:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class ConnectionHandle(Protocol):
    """
    Management connection to a separately running process.

    `execute` raises an OSError (usually TransportError) on transport failure and
    `ensure_connected` raises when no connection could be established in time.
    """

    def execute(self, document: OperationDocument) -> OperationResponse:
        ...

    def is_connected(self) -> bool:
        ...

    def ensure_connected(self, timeout_ms: int) -> None:
        ...

    def close(self) -> None:
        ...

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from reloadctl.core.errors import (
    DispatchHardFailure,
    InterruptedWaitError,
    ReadinessTimeoutError,
    ReconnectTimeoutError,
    ReloadCoordinationError,
    ReloadTimeoutError,
)
from reloadctl.core.models import RUNNING_STATE, STARTING_STATE, OperationDocument
from reloadctl.operations.builder import OperationBuilder
from reloadctl.runtime.connection import ConnectionHandle, LocalProcessHandle, ProcessStateError
from reloadctl.runtime.reload_contracts import (
    POLL_INTERVAL_SECONDS,
    RECONNECT_PAUSE_SECONDS,
    DispatchOutcome,
    OutcomeKind,
    ReloadEvent,
    ReloadPhase,
    convergence_budget_ms,
    transition_reload_phase,
)


class ReloadCoordinator(ABC):
    """
    Dispatches one restart operation and waits for the managed process to converge.

    Every invocation goes dispatch -> classify -> converge. Subclasses decide how a
    transport failure during dispatch is classified and how convergence is awaited.
    `sleep` and `clock` are injectable so the waits can be driven without real time.
    """

    convergence_event: ReloadEvent

    def __init__(
        self,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        on_phase_change: Optional[Callable[[ReloadPhase], None]] = None,
    ) -> None:
        self.sleep = sleep
        self.clock = clock
        self.on_phase_change = on_phase_change
        self.phase = ReloadPhase.DISPATCHING
        self.outcome: Optional[DispatchOutcome] = None

    def run(self, handle: Any, document: OperationDocument, connection_timeout_ms: int) -> DispatchOutcome:
        """Run one reload; returns the dispatch outcome once the process has converged."""
        self.phase = ReloadPhase.DISPATCHING
        self._notify()

        self.outcome = self.dispatch(handle, document)
        if self.outcome.kind == OutcomeKind.HARD_FAILURE:
            self._advance(ReloadEvent.FAIL)
            raise DispatchHardFailure(self.outcome.reason or "Restart request failed.") from self.outcome.cause

        self._advance(self.convergence_event)
        try:
            self.converge(handle, document, connection_timeout_ms)
        except ReloadTimeoutError:
            self._advance(ReloadEvent.TIME_OUT)
            raise
        except ReloadCoordinationError:
            self._advance(ReloadEvent.FAIL)
            raise

        self._advance(ReloadEvent.CONVERGE)
        return self.outcome

    def dispatch(self, handle: Any, document: OperationDocument) -> DispatchOutcome:
        try:
            response = handle.execute(document)
        except OSError as exc:
            return self.classify_transport_failure(handle, document, exc)

        if not response.is_success():
            return DispatchOutcome.hard_failure(response.describe_failure())
        return DispatchOutcome.success()

    @abstractmethod
    def classify_transport_failure(
        self,
        handle: Any,
        document: OperationDocument,
        exc: OSError,
    ) -> DispatchOutcome:
        """Decide whether a transport error during dispatch is fatal or an expected disconnect."""

    @abstractmethod
    def converge(self, handle: Any, document: OperationDocument, connection_timeout_ms: int) -> None:
        """Block until the restarted process is usable again, or raise."""

    def pause(self, seconds: float, interrupted_message: str) -> None:
        try:
            self.sleep(seconds)
        except KeyboardInterrupt as exc:
            raise InterruptedWaitError(interrupted_message) from exc

    def elapsed_ms(self, started: float) -> int:
        return int((self.clock() - started) * 1000)

    def _advance(self, event: ReloadEvent) -> None:
        self.phase = transition_reload_phase(self.phase, event)
        self._notify()

    def _notify(self) -> None:
        if self.on_phase_change is not None:
            self.on_phase_change(self.phase)


class RemoteReloadCoordinator(ReloadCoordinator):
    """
    Reloads a separately running process over a management connection.

    The restart drops the connection, so a transport error during dispatch is
    expected. It only counts as a real fault when the handle still claims to be
    connected afterwards.
    """

    convergence_event = ReloadEvent.AWAIT_RECONNECT

    def __init__(self, on_disconnect: Optional[Callable[[], None]] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.on_disconnect = on_disconnect

    def classify_transport_failure(
        self,
        handle: ConnectionHandle,
        document: OperationDocument,
        exc: OSError,
    ) -> DispatchOutcome:
        if handle.is_connected():
            handle.close()
            return DispatchOutcome.hard_failure(f"Failed to execute :{document.operation}: {exc}", cause=exc)
        return DispatchOutcome.transient_disconnect(exc)

    def converge(self, handle: ConnectionHandle, document: OperationDocument, connection_timeout_ms: int) -> None:
        self.pause(RECONNECT_PAUSE_SECONDS, "Interrupted while pausing before reconnecting.")

        started = self.clock()
        try:
            handle.ensure_connected(convergence_budget_ms(connection_timeout_ms))
        except KeyboardInterrupt as exc:
            self._disconnect(handle)
            raise InterruptedWaitError("Interrupted while reconnecting.") from exc
        except ReloadCoordinationError:
            self._disconnect(handle)
            raise
        except Exception as exc:
            # Any failure from the handle is a failed reconnect, not just socket errors.
            self._disconnect(handle)
            elapsed = self.elapsed_ms(started)
            raise ReconnectTimeoutError(
                f"Failed to establish connection in {elapsed}ms: {exc}",
                elapsed_ms=elapsed,
            ) from exc

    def _disconnect(self, handle: ConnectionHandle) -> None:
        if self.on_disconnect is not None:
            self.on_disconnect()
        else:
            handle.close()


class EmbeddedReloadCoordinator(ReloadCoordinator):
    """
    Reloads a co-resident process and polls its `server-state` until it is running.

    Reaching the deadline while the process reports `starting` still counts as
    success. The remote path returns as soon as a connection is re-established,
    without waiting for startup to finish, and this keeps both paths equivalent.
    """

    convergence_event = ReloadEvent.START_POLLING

    def classify_transport_failure(
        self,
        handle: LocalProcessHandle,
        document: OperationDocument,
        exc: OSError,
    ) -> DispatchOutcome:
        # A local handle has no network underneath it; any I/O error is real.
        handle.close()
        return DispatchOutcome.hard_failure(f"Failed to execute :{document.operation}: {exc}", cause=exc)

    def converge(self, handle: LocalProcessHandle, document: OperationDocument, connection_timeout_ms: int) -> None:
        started = self.clock()
        budget_seconds = convergence_budget_ms(connection_timeout_ms) / 1000.0
        state_request = OperationBuilder.read_server_state(document.address)

        while True:
            server_state = self.read_server_state(handle, state_request)
            if server_state == RUNNING_STATE:
                return

            if self.clock() - started > budget_seconds:
                if server_state == STARTING_STATE:
                    return
                elapsed = self.elapsed_ms(started)
                raise ReadinessTimeoutError(f"Failed to establish connection in {elapsed}ms", elapsed_ms=elapsed)

            self.pause(POLL_INTERVAL_SECONDS, "Interrupted while waiting for the process to start.")

    def read_server_state(self, handle: LocalProcessHandle, request: OperationDocument) -> Optional[str]:
        """Read the lifecycle state; None when the process cannot answer right now."""
        try:
            response = handle.execute(request)
        except (OSError, ProcessStateError):
            return None

        if not response.is_success() or response.result is None:
            return None
        return str(response.result)

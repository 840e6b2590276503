from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

# The listener of a freshly restarted process stalls new connections for several
# seconds if a connect arrives too early; a short pause avoids that.
RECONNECT_PAUSE_SECONDS = 0.5
POLL_INTERVAL_SECONDS = 0.05
DEADLINE_MARGIN_MS = 1000


def convergence_budget_ms(connection_timeout_ms: int) -> int:
    """Return the time allowed for reconnection/readiness after dispatch."""
    return connection_timeout_ms + DEADLINE_MARGIN_MS


class OutcomeKind(str, Enum):
    """Classification of the result of sending the restart operation."""

    SUCCESS = "success"
    TRANSIENT_DISCONNECT = "transient_disconnect"
    HARD_FAILURE = "hard_failure"


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of dispatching the restart operation."""

    kind: OutcomeKind
    reason: Optional[str] = None
    cause: Optional[BaseException] = None

    @classmethod
    def success(cls) -> "DispatchOutcome":
        return cls(kind=OutcomeKind.SUCCESS)

    @classmethod
    def transient_disconnect(cls, cause: BaseException) -> "DispatchOutcome":
        return cls(kind=OutcomeKind.TRANSIENT_DISCONNECT, cause=cause)

    @classmethod
    def hard_failure(cls, reason: str, cause: Optional[BaseException] = None) -> "DispatchOutcome":
        return cls(kind=OutcomeKind.HARD_FAILURE, reason=reason, cause=cause)


class ReloadPhase(str, Enum):
    """States of one reload invocation."""

    DISPATCHING = "dispatching"
    AWAITING_RECONNECT = "awaiting_reconnect"
    POLLING = "polling"
    CONVERGED = "converged"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


TERMINAL_PHASES = frozenset({ReloadPhase.CONVERGED, ReloadPhase.TIMED_OUT, ReloadPhase.FAILED})


class ReloadEvent(str, Enum):
    """Events that drive reload phase transitions."""

    AWAIT_RECONNECT = "await_reconnect"
    START_POLLING = "start_polling"
    CONVERGE = "converge"
    TIME_OUT = "time_out"
    FAIL = "fail"


def transition_reload_phase(current: ReloadPhase, event: ReloadEvent) -> ReloadPhase:
    """Compute the next reload phase for a given event.

    Dispatching is entered once and leads to either the reconnect wait (remote)
    or state polling (embedded). Both waits end in converged, timed out or failed.
    Terminal phases accept no further events; invalid transitions raise ValueError.
    """

    if current in TERMINAL_PHASES:
        raise ValueError(f"Reload already finished in phase {current.value}; got {event.value}")

    if event == ReloadEvent.FAIL:
        return ReloadPhase.FAILED

    if current == ReloadPhase.DISPATCHING:
        if event == ReloadEvent.AWAIT_RECONNECT:
            return ReloadPhase.AWAITING_RECONNECT
        if event == ReloadEvent.START_POLLING:
            return ReloadPhase.POLLING
        raise ValueError(f"Invalid reload transition: {current.value} -> {event.value}")

    if current in {ReloadPhase.AWAITING_RECONNECT, ReloadPhase.POLLING}:
        if event == ReloadEvent.CONVERGE:
            return ReloadPhase.CONVERGED
        if event == ReloadEvent.TIME_OUT:
            return ReloadPhase.TIMED_OUT
        raise ValueError(f"Invalid reload transition: {current.value} -> {event.value}")

    raise ValueError(f"Unknown reload phase: {current}")

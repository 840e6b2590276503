import pytest

from reloadctl.core.errors import (
    DispatchHardFailure,
    InterruptedWaitError,
    ReadinessTimeoutError,
)
from reloadctl.core.models import OperationDocument, OperationResponse
from reloadctl.runtime.connection import ProcessStateError, TransportError
from reloadctl.runtime.coordinators import EmbeddedReloadCoordinator
from reloadctl.runtime.reload_contracts import ReloadPhase


RESTART = OperationDocument(address=[], operation="restart", params={"admin-only": True})


class FakeLocalProcess:
    """
    Answers the restart with `restart_response` (or raises `restart_error`), then
    plays back `states` for server-state reads. Each entry is a state string or an
    exception to raise; the last entry repeats forever.
    """
    def __init__(self, states, restart_response=None, restart_error=None):
        self.states = list(states)
        self.restart_response = restart_response or OperationResponse(outcome="success")
        self.restart_error = restart_error
        self.requests: list[OperationDocument] = []
        self.closed = False

    def execute(self, document):
        self.requests.append(document)
        if document.operation == "restart":
            if self.restart_error is not None:
                raise self.restart_error
            return self.restart_response

        entry = self.states.pop(0) if len(self.states) > 1 else self.states[0]
        if isinstance(entry, BaseException):
            raise entry
        if isinstance(entry, OperationResponse):
            return entry
        return OperationResponse(outcome="success", result=entry)

    def close(self):
        self.closed = True

    @property
    def state_reads(self):
        return [request for request in self.requests if request.operation == "read-attribute"]


def _coordinator(clock):
    phases = []
    coordinator = EmbeddedReloadCoordinator(sleep=clock.sleep, clock=clock, on_phase_change=phases.append)
    return coordinator, phases


def test_running_on_first_poll_returns_without_further_polling(clock):
    process = FakeLocalProcess(["running"])
    coordinator, phases = _coordinator(clock)

    coordinator.run(process, RESTART, 5000)

    assert len(process.state_reads) == 1
    assert clock.sleeps == []
    assert phases == [ReloadPhase.DISPATCHING, ReloadPhase.POLLING, ReloadPhase.CONVERGED]


def test_polls_every_fifty_millis_until_running(clock):
    process = FakeLocalProcess(["stopping", "starting", "running"])
    coordinator, _ = _coordinator(clock)

    coordinator.run(process, RESTART, 5000)

    assert len(process.state_reads) == 3
    assert clock.sleeps == [0.05, 0.05]


def test_state_read_targets_server_state_attribute(clock):
    process = FakeLocalProcess(["running"])
    coordinator, _ = _coordinator(clock)

    coordinator.run(process, RESTART, 5000)

    (read,) = process.state_reads
    assert read.params == {"name": "server-state"}
    assert read.address == []


def test_domain_state_read_targets_restarted_host(clock):
    document = OperationDocument(address=[("host", "primary")], operation="restart", params={})
    process = FakeLocalProcess(["starting", "running"])
    coordinator, _ = _coordinator(clock)

    coordinator.run(process, document, 5000)

    assert [read.address for read in process.state_reads] == [[("host", "primary")], [("host", "primary")]]


def test_unreadable_state_is_retried_not_fatal(clock):
    process = FakeLocalProcess(
        [
            ProcessStateError("server is stopping"),
            TransportError("local channel closed"),
            OperationResponse(outcome="failed", failure_description="not yet"),
            "running",
        ]
    )
    coordinator, _ = _coordinator(clock)

    coordinator.run(process, RESTART, 5000)

    assert len(process.state_reads) == 4
    assert coordinator.phase == ReloadPhase.CONVERGED


def test_starting_at_deadline_counts_as_success(clock):
    process = FakeLocalProcess(["starting"])
    coordinator, _ = _coordinator(clock)

    coordinator.run(process, RESTART, 0)

    assert clock.now > 1.0
    assert coordinator.phase == ReloadPhase.CONVERGED


def test_other_state_at_deadline_times_out(clock):
    process = FakeLocalProcess(["stopping"])
    coordinator, phases = _coordinator(clock)

    with pytest.raises(ReadinessTimeoutError, match="Failed to establish connection in") as exc_info:
        coordinator.run(process, RESTART, 0)

    assert exc_info.value.elapsed_ms > 1000
    assert phases[-1] == ReloadPhase.TIMED_OUT


def test_unreadable_state_at_deadline_times_out(clock):
    process = FakeLocalProcess(["starting", ProcessStateError("stopping")])
    coordinator, _ = _coordinator(clock)

    with pytest.raises(ReadinessTimeoutError):
        coordinator.run(process, RESTART, 0)

    assert coordinator.phase == ReloadPhase.TIMED_OUT


def test_deadline_includes_connection_timeout_and_margin(clock):
    process = FakeLocalProcess(["stopping"])
    coordinator, _ = _coordinator(clock)

    with pytest.raises(ReadinessTimeoutError):
        coordinator.run(process, RESTART, 2000)

    assert 3.0 < clock.now < 3.2


def test_transport_error_on_restart_is_hard_failure(clock):
    process = FakeLocalProcess(["running"], restart_error=TransportError("local channel closed"))
    coordinator, phases = _coordinator(clock)

    with pytest.raises(DispatchHardFailure, match="Failed to execute :restart"):
        coordinator.run(process, RESTART, 5000)

    assert process.closed is True
    assert process.state_reads == []
    assert phases == [ReloadPhase.DISPATCHING, ReloadPhase.FAILED]


def test_failed_restart_response_is_hard_failure(clock):
    process = FakeLocalProcess(
        ["running"],
        restart_response=OperationResponse(outcome="failed", failure_description="reload not permitted"),
    )
    coordinator, _ = _coordinator(clock)

    with pytest.raises(DispatchHardFailure, match="reload not permitted"):
        coordinator.run(process, RESTART, 5000)

    assert process.closed is False
    assert process.state_reads == []


def test_interrupted_poll_sleep_is_fatal(clock):
    process = FakeLocalProcess(["starting"])

    def interrupted_sleep(seconds):
        raise KeyboardInterrupt()

    coordinator = EmbeddedReloadCoordinator(sleep=interrupted_sleep, clock=clock)

    with pytest.raises(InterruptedWaitError):
        coordinator.run(process, RESTART, 5000)

    assert len(process.state_reads) == 1
    assert coordinator.phase == ReloadPhase.FAILED

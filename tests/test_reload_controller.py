import pytest

from reloadctl.core.context import ReloadContext
from reloadctl.core.errors import OperationValidationError, ReconnectTimeoutError, ReloadCoordinationError
from reloadctl.core.models import ControllerSettings, OperationResponse, TopologyMode
from reloadctl.runtime.connection import TransportError
from reloadctl.runtime.controller import ReloadController
from reloadctl.runtime.reload_contracts import OutcomeKind, ReloadPhase


class DroppingConnection:
    """Severs on restart and optionally refuses to come back."""

    def __init__(self, comes_back=True):
        self.comes_back = comes_back
        self.connected = True
        self.executed = []
        self.closed = False

    def execute(self, document):
        self.executed.append(document)
        self.connected = False
        raise TransportError("closed by peer")

    def is_connected(self):
        return self.connected

    def ensure_connected(self, timeout_ms):
        if not self.comes_back:
            raise ConnectionRefusedError("refused")
        self.connected = True

    def close(self):
        self.closed = True
        self.connected = False


class RunningLocalProcess:
    def __init__(self):
        self.executed = []

    def execute(self, document):
        self.executed.append(document)
        if document.operation == "read-attribute":
            return OperationResponse(outcome="success", result="running")
        return OperationResponse(outcome="success")

    def close(self):
        pass


def test_reload_without_connection_fails(clock):
    controller = ReloadController(ReloadContext(), sleep=clock.sleep, clock=clock)

    with pytest.raises(ReloadCoordinationError, match="Connection is not available"):
        controller.reload({})


def test_reload_takes_remote_path_for_client(clock):
    connection = DroppingConnection()
    context = ReloadContext(client=connection)
    phases = []
    controller = ReloadController(context, on_phase_change=phases.append, sleep=clock.sleep, clock=clock)

    event = controller.reload({"admin-only": "true"})

    assert event.embedded is False
    assert event.outcome.kind == OutcomeKind.TRANSIENT_DISCONNECT
    assert event.phase == ReloadPhase.CONVERGED
    assert event.document.params == {"admin-only": True}
    assert event.elapsed_seconds == pytest.approx(0.5)
    assert ReloadPhase.AWAITING_RECONNECT in phases
    assert context.client is connection


def test_reload_takes_embedded_path_when_process_attached(clock):
    process = RunningLocalProcess()
    context = ReloadContext(client=DroppingConnection(), embedded_process=process)
    phases = []
    controller = ReloadController(context, on_phase_change=phases.append, sleep=clock.sleep, clock=clock)

    event = controller.reload({})

    assert event.embedded is True
    assert [doc.operation for doc in process.executed] == ["restart", "read-attribute"]
    assert ReloadPhase.POLLING in phases


def test_reload_failure_disconnects_context_session(clock):
    connection = DroppingConnection(comes_back=False)
    context = ReloadContext(client=connection)
    controller = ReloadController(context, sleep=clock.sleep, clock=clock)

    with pytest.raises(ReconnectTimeoutError):
        controller.reload({})

    assert context.client is None
    assert connection.closed is True


def test_reload_uses_context_mode_for_validation(clock):
    connection = DroppingConnection()
    context = ReloadContext(client=connection, controller=ControllerSettings(mode=TopologyMode.DOMAIN))
    controller = ReloadController(context, sleep=clock.sleep, clock=clock)

    with pytest.raises(OperationValidationError, match="--host"):
        controller.reload({"admin-only": "true"})

    assert connection.executed == []


def test_build_operation_for_domain_host(clock):
    context = ReloadContext(controller=ControllerSettings(mode=TopologyMode.DOMAIN))
    controller = ReloadController(context, sleep=clock.sleep, clock=clock)

    document = controller.build_operation({"host": "server-one", "restart-servers": "true"})

    assert document.address == [("host", "server-one")]
    assert document.params == {"restart-servers": True}

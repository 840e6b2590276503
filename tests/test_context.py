from reloadctl.core.context import ReloadContext
from reloadctl.core.models import TopologyMode


class ClosableClient:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


def test_context_defaults():
    context = ReloadContext()

    assert context.mode == TopologyMode.STANDALONE
    assert context.connection_timeout_ms == 5000
    assert context.controller.port == 9990
    assert context.is_embedded is False


def test_context_from_config_dict():
    context = ReloadContext(
        config_dict={
            "reloadctl": {"connection_timeout_ms": 1500},
            "controller": {"host": "mgmt.internal", "port": 10090, "mode": "domain"},
        }
    )

    assert context.mode == TopologyMode.DOMAIN
    assert context.connection_timeout_ms == 1500
    assert context.controller.host == "mgmt.internal"


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("RELOADCTL_CONNECTION_TIMEOUT_MS", "750")

    context = ReloadContext()

    assert context.connection_timeout_ms == 750


def test_disconnect_controller_closes_and_drops_client():
    client = ClosableClient()
    context = ReloadContext(client=client)

    context.disconnect_controller()

    assert client.closed is True
    assert context.client is None


def test_disconnect_controller_without_client_is_noop():
    context = ReloadContext()

    context.disconnect_controller()

    assert context.client is None


def test_embedded_process_marks_context_embedded():
    context = ReloadContext(embedded_process=ClosableClient())

    assert context.is_embedded is True

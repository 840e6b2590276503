import typer
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from reloadctl.cli.formatter import OutputFormatter
from reloadctl.config.loader import load_config
from reloadctl.core.context import ReloadContext
from reloadctl.core.errors import (
    ConfigurationError,
    OperationValidationError,
    ReloadCoordinationError,
)
from reloadctl.core.models import TopologyMode
from reloadctl.operations.builder import (
    ADMIN_ONLY,
    HOST,
    RESTART_SERVERS,
    USE_CURRENT_DOMAIN_CONFIG,
    USE_CURRENT_HOST_CONFIG,
    USE_CURRENT_SERVER_CONFIG,
    OperationBuilder,
)
from reloadctl.runtime import ReloadController
from reloadctl.runtime.rpc import SocketControllerClient

app = typer.Typer(name="reloadctl", help="Reload a managed server and wait for it to come back.", rich_markup_mode=None)

DEFAULT_CONFIG_PATH = Path("reloadctl.yaml")


def _parse_controller_address(value: str) -> Tuple[str, int]:
    host, separator, port = value.rpartition(":")
    if not separator or not host:
        raise typer.BadParameter(f"Expected HOST:PORT, got '{value}'.", param_hint="--controller")
    try:
        return host, int(port)
    except ValueError:
        raise typer.BadParameter(f"Invalid port in '{value}'.", param_hint="--controller")


def _build_context(
    config_path: Path,
    domain: Optional[bool],
    controller_address: Optional[str],
    connection_timeout: Optional[int],
    verbose: bool,
) -> ReloadContext:
    try:
        config_data = load_config(config_path)
    except ConfigurationError as e:
        OutputFormatter.log(e.message, severity="error")
        raise typer.Exit(code=1)

    context = ReloadContext(config_dict=config_data)

    controller_updates: Dict[str, Any] = {}
    if domain is not None:
        controller_updates["mode"] = TopologyMode.DOMAIN if domain else TopologyMode.STANDALONE
    if controller_address is not None:
        controller_updates["host"], controller_updates["port"] = _parse_controller_address(controller_address)
    if controller_updates:
        context.controller = context.controller.model_copy(update=controller_updates)

    settings_updates: Dict[str, Any] = {}
    if connection_timeout is not None:
        settings_updates["connection_timeout_ms"] = connection_timeout
    if verbose:
        settings_updates["verbose"] = True
    if settings_updates:
        context.settings = context.settings.model_copy(update=settings_updates)

    return context


def _connect(context: ReloadContext) -> SocketControllerClient:
    client = SocketControllerClient(context.controller.host, context.controller.port)
    try:
        client.ensure_connected(context.connection_timeout_ms)
    except ReloadCoordinationError as e:
        OutputFormatter.log(e.message, severity="error")
        raise typer.Exit(code=1)
    return client


@app.command()
def reload(
    host: Optional[str] = typer.Option(None, "--host", help="Host to reload (domain mode only)."),
    admin_only: Optional[str] = typer.Option(None, "--admin-only", help="true/false"),
    use_current_server_config: Optional[str] = typer.Option(
        None, "--use-current-server-config", help="true/false (standalone mode only)."
    ),
    restart_servers: Optional[str] = typer.Option(None, "--restart-servers", help="true/false (domain mode only)."),
    use_current_domain_config: Optional[str] = typer.Option(
        None, "--use-current-domain-config", help="true/false (domain mode only)."
    ),
    use_current_host_config: Optional[str] = typer.Option(
        None, "--use-current-host-config", help="true/false (domain mode only)."
    ),
    domain: Optional[bool] = typer.Option(None, "--domain/--standalone", help="Override the configured topology mode."),
    controller: Optional[str] = typer.Option(None, "--controller", help="Management endpoint as HOST:PORT."),
    connection_timeout: Optional[int] = typer.Option(
        None, "--connection-timeout", min=0, help="Connection timeout in milliseconds."
    ),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to reloadctl.yaml."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the restart operation without sending it."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every reload phase."),
):
    """
    Reload the managed process and wait until it is usable again.
    """
    context = _build_context(config, domain, controller, connection_timeout, verbose)

    raw_options = {
        HOST: host,
        ADMIN_ONLY: admin_only,
        USE_CURRENT_SERVER_CONFIG: use_current_server_config,
        RESTART_SERVERS: restart_servers,
        USE_CURRENT_DOMAIN_CONFIG: use_current_domain_config,
        USE_CURRENT_HOST_CONFIG: use_current_host_config,
    }
    options = {name: value for name, value in raw_options.items() if value is not None}

    try:
        document = OperationBuilder.build(context.mode, options)
    except OperationValidationError as e:
        OutputFormatter.log(e.message, severity="error")
        raise typer.Exit(code=2)

    if dry_run:
        OutputFormatter.print_data(document.to_payload())
        return

    context.client = _connect(context)
    on_phase_change = OutputFormatter.log_phase if context.settings.verbose else None
    reload_controller = ReloadController(context, on_phase_change=on_phase_change)

    try:
        event = reload_controller.reload(options)
    except ReloadCoordinationError as e:
        OutputFormatter.log(e.message, severity="error")
        raise typer.Exit(code=1)
    finally:
        context.disconnect_controller()

    OutputFormatter.log(
        f"Reloaded {context.controller.host}:{context.controller.port} in {event.elapsed_seconds:.2f}s.",
        severity="success",
    )


@app.command()
def status(
    host: Optional[str] = typer.Option(None, "--host", help="Host to query (domain mode only)."),
    domain: Optional[bool] = typer.Option(None, "--domain/--standalone", help="Override the configured topology mode."),
    controller: Optional[str] = typer.Option(None, "--controller", help="Management endpoint as HOST:PORT."),
    connection_timeout: Optional[int] = typer.Option(
        None, "--connection-timeout", min=0, help="Connection timeout in milliseconds."
    ),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to reloadctl.yaml."),
):
    """
    Print the managed process's server-state.
    """
    context = _build_context(config, domain, controller, connection_timeout, verbose=False)

    address = []
    if context.mode == TopologyMode.DOMAIN:
        if host is None:
            OutputFormatter.log("Missing required argument --host", severity="error")
            raise typer.Exit(code=2)
        address.append((HOST, host))

    context.client = _connect(context)
    try:
        response = context.client.execute(OperationBuilder.read_server_state(address))
    except OSError as e:
        OutputFormatter.log(f"Failed to read server-state: {e}", severity="error")
        raise typer.Exit(code=1)
    finally:
        context.disconnect_controller()

    if not response.is_success():
        OutputFormatter.log(response.describe_failure(), severity="error")
        raise typer.Exit(code=1)

    OutputFormatter.print_data(str(response.result))


if __name__ == "__main__":
    app()

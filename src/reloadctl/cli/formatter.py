import json
import typer
from typing import Any
from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from reloadctl.runtime.reload_contracts import ReloadPhase

# Create a stderr console for logging
error_console = Console(stderr=True)

PHASE_DESCRIPTIONS = {
    ReloadPhase.DISPATCHING: "Dispatching restart operation...",
    ReloadPhase.AWAITING_RECONNECT: "Restart in progress; waiting to reconnect...",
    ReloadPhase.POLLING: "Restart in progress; polling server-state...",
    ReloadPhase.CONVERGED: "Managed process is back.",
    ReloadPhase.TIMED_OUT: "Managed process did not come back in time.",
    ReloadPhase.FAILED: "Reload failed.",
}

class OutputFormatter:
    """
    Handles output formatting for the CLI.
    Keeps system logs (stderr) apart from data (stdout).
    """

    @staticmethod
    def log(message: str, severity: str = "info") -> None:
        """
        Print system messages to stderr with color coding.
        """
        style = "white"
        prefix = "[SYSTEM]"

        if severity == "debug":
            style = "dim"
        elif severity == "warning":
            style = "yellow"
        elif severity == "error":
            style = "red"
        elif severity == "critical":
            style = "bold red"
        elif severity == "success":
            style = "green"

        error_console.print(f"[{style}]{prefix} {escape(message)}[/{style}]", highlight=False)

    @staticmethod
    def log_phase(phase: ReloadPhase) -> None:
        OutputFormatter.log(PHASE_DESCRIPTIONS.get(phase, phase.value), severity="debug")

    @staticmethod
    def print_data(data: Any) -> None:
        """
        Print a result to stdout as JSON.
        """
        if isinstance(data, str):
            typer.echo(data)
            return

        def json_serializer(obj):
            if isinstance(obj, BaseModel):
                return obj.model_dump(mode='json')
            return str(obj)

        try:
            typer.echo(json.dumps(data, indent=2, default=json_serializer))
        except TypeError as e:
            OutputFormatter.log(f"JSON Serialization failed: {e}", severity="error")
            typer.echo(str(data))

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from reloadctl.core.context import ReloadContext
from reloadctl.core.errors import ReloadCoordinationError
from reloadctl.core.models import OperationDocument, OptionSet
from reloadctl.operations.builder import OperationBuilder
from reloadctl.runtime.coordinators import (
    EmbeddedReloadCoordinator,
    ReloadCoordinator,
    RemoteReloadCoordinator,
)
from reloadctl.runtime.reload_contracts import DispatchOutcome, ReloadPhase


@dataclass(frozen=True)
class ReloadLifecycleEvent:
    """Host-facing payload describing a finished reload."""

    document: OperationDocument
    outcome: DispatchOutcome
    phase: ReloadPhase
    elapsed_seconds: float
    embedded: bool


class ReloadController:
    """Picks the coordinator for the context's topology and runs one reload."""

    def __init__(
        self,
        context: ReloadContext,
        on_phase_change: Optional[Callable[[ReloadPhase], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.context = context
        self.on_phase_change = on_phase_change
        self.sleep = sleep
        self.clock = clock

    def build_operation(self, options: OptionSet) -> OperationDocument:
        """Build the restart operation for the context's topology mode."""
        return OperationBuilder.build(self.context.mode, options)

    def reload(self, options: OptionSet) -> ReloadLifecycleEvent:
        """Validate options, dispatch exactly one restart and wait for convergence."""
        if self.context.embedded_process is None and self.context.client is None:
            raise ReloadCoordinationError("Connection is not available.")

        document = self.build_operation(options)
        started = self.clock()

        if self.context.is_embedded:
            coordinator: ReloadCoordinator = EmbeddedReloadCoordinator(
                sleep=self.sleep,
                clock=self.clock,
                on_phase_change=self.on_phase_change,
            )
            handle = self.context.embedded_process
        else:
            coordinator = RemoteReloadCoordinator(
                on_disconnect=self.context.disconnect_controller,
                sleep=self.sleep,
                clock=self.clock,
                on_phase_change=self.on_phase_change,
            )
            handle = self.context.client

        outcome = coordinator.run(handle, document, self.context.connection_timeout_ms)

        return ReloadLifecycleEvent(
            document=document,
            outcome=outcome,
            phase=coordinator.phase,
            elapsed_seconds=self.clock() - started,
            embedded=self.context.is_embedded,
        )

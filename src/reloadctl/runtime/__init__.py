"""Reload coordination for remote and embedded managed processes."""

from reloadctl.runtime.connection import (
	ConnectionHandle,
	LocalProcessHandle,
	ProcessStateError,
	TransportError,
)
from reloadctl.runtime.controller import ReloadController, ReloadLifecycleEvent
from reloadctl.runtime.coordinators import (
	EmbeddedReloadCoordinator,
	ReloadCoordinator,
	RemoteReloadCoordinator,
)
from reloadctl.runtime.reload_contracts import (
	DispatchOutcome,
	OutcomeKind,
	ReloadEvent,
	ReloadPhase,
	transition_reload_phase,
)

__all__ = [
	"ConnectionHandle",
	"DispatchOutcome",
	"EmbeddedReloadCoordinator",
	"LocalProcessHandle",
	"OutcomeKind",
	"ProcessStateError",
	"ReloadController",
	"ReloadCoordinator",
	"ReloadEvent",
	"ReloadLifecycleEvent",
	"ReloadPhase",
	"RemoteReloadCoordinator",
	"TransportError",
	"transition_reload_phase",
]

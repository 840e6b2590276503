"""Reload a managed server process and wait for it to become usable again."""

from reloadctl.core.context import ReloadContext
from reloadctl.core.errors import (
	ConfigurationError,
	DispatchHardFailure,
	InterruptedWaitError,
	OperationValidationError,
	ReadinessTimeoutError,
	ReconnectTimeoutError,
	ReloadCoordinationError,
	ReloadTimeoutError,
)
from reloadctl.core.models import OperationDocument, OperationResponse, TopologyMode
from reloadctl.operations import OperationBuilder
from reloadctl.runtime import (
	EmbeddedReloadCoordinator,
	ReloadController,
	RemoteReloadCoordinator,
)

__all__ = [
	"ConfigurationError",
	"DispatchHardFailure",
	"EmbeddedReloadCoordinator",
	"InterruptedWaitError",
	"OperationBuilder",
	"OperationDocument",
	"OperationResponse",
	"OperationValidationError",
	"ReadinessTimeoutError",
	"ReconnectTimeoutError",
	"ReloadContext",
	"ReloadController",
	"ReloadCoordinationError",
	"ReloadTimeoutError",
	"RemoteReloadCoordinator",
	"TopologyMode",
]

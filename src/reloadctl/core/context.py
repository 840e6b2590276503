from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field
from reloadctl.core.models import ControllerSettings, ReloadSettings, TopologyMode


class ReloadContext(BaseModel):
    """
    The caller's runtime context for one reload invocation.

    Holds the configured settings plus the management client (remote topology)
    or the co-resident process handle (embedded topology).
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Tool Settings (Maps to 'reloadctl' section)
    settings: ReloadSettings = Field(default_factory=ReloadSettings)

    # Managed Process Endpoint (Maps to 'controller' section)
    controller: ControllerSettings = Field(default_factory=ControllerSettings)

    # ConnectionHandle for the remote topology
    client: Optional[Any] = None

    # LocalProcessHandle; when set, reloads take the embedded path
    embedded_process: Optional[Any] = None

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None, **data: Any):
        """
        Initialize the context, optionally with a configuration dictionary.
        """
        if config_dict:
            if 'settings' not in data:
                data['settings'] = ReloadSettings(**(config_dict.get('reloadctl') or {}))
            if 'controller' not in data:
                data['controller'] = ControllerSettings(**(config_dict.get('controller') or {}))

        super().__init__(**data)

    @property
    def mode(self) -> TopologyMode:
        return self.controller.mode

    @property
    def connection_timeout_ms(self) -> int:
        return self.settings.connection_timeout_ms

    @property
    def is_embedded(self) -> bool:
        return self.embedded_process is not None

    def disconnect_controller(self) -> None:
        """Drop the management session; a new client must be attached before the next command."""
        client = self.client
        self.client = None
        if client is not None:
            client.close()

from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TopologyMode(str, Enum):
    """Deployment topology of the managed process, fixed for one invocation."""

    STANDALONE = "standalone"
    DOMAIN = "domain"


# Option name -> literal as typed by the operator. None means "present without a value".
OptionSet = Mapping[str, Optional[Union[str, bool]]]

RUNNING_STATE = "running"
STARTING_STATE = "starting"

SERVER_STATE_ATTRIBUTE = "server-state"

ParamValue = Union[bool, str]


class OperationDocument(BaseModel):
    """
    A management operation addressed to a managed process.

    `address` is empty for a standalone process, or a single ("host", name)
    segment for one host in a domain.
    """
    model_config = ConfigDict(extra='forbid')

    address: List[Tuple[str, str]] = Field(default_factory=list)
    operation: str
    params: Dict[str, ParamValue] = Field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "address": [list(segment) for segment in self.address],
            "operation": self.operation,
            "params": dict(self.params),
        }


class OperationResponse(BaseModel):
    """
    Structured response returned by the managed process for one operation.
    """
    model_config = ConfigDict(extra='ignore')

    outcome: Literal["success", "failed"]
    result: Any = None
    failure_description: Optional[str] = None

    def is_success(self) -> bool:
        return self.outcome == "success"

    def describe_failure(self) -> str:
        if self.failure_description:
            return self.failure_description
        return "Operation failed without a failure description."


class ReloadSettings(BaseSettings):
    """
    Tool-level settings (the 'reloadctl' section in reloadctl.yaml).
    """
    model_config = SettingsConfigDict(env_prefix='RELOADCTL_', extra='ignore')

    connection_timeout_ms: int = Field(default=5000, ge=0)
    verbose: bool = False


class ControllerSettings(BaseModel):
    """
    Management endpoint of the managed process (the 'controller' section in reloadctl.yaml).
    """
    model_config = ConfigDict(extra='ignore')

    host: str = "127.0.0.1"
    port: int = Field(default=9990, ge=1, le=65535)
    mode: TopologyMode = TopologyMode.STANDALONE

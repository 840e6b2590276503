from typing import Optional


class ReloadCoordinationError(Exception):
    """
    Base error for everything that can go wrong while reloading a managed process.
    The message is always suitable for showing to the operator as-is.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class OperationValidationError(ReloadCoordinationError):
    """
    Raised locally, before anything is dispatched, when the mode/option
    combination or a boolean literal is invalid.
    """
    def __init__(self, message: str, argument: Optional[str] = None, value: Optional[str] = None):
        self.argument = argument
        self.value = value
        super().__init__(message)


class DispatchHardFailure(ReloadCoordinationError):
    """The managed process rejected the operation, or the transport failed while still connected."""


class ReloadTimeoutError(ReloadCoordinationError):
    """Base for failures where the managed process did not come back within budget."""

    def __init__(self, message: str, elapsed_ms: Optional[int] = None):
        self.elapsed_ms = elapsed_ms
        super().__init__(message)


class ReconnectTimeoutError(ReloadTimeoutError):
    pass


class ReadinessTimeoutError(ReloadTimeoutError):
    pass


class InterruptedWaitError(ReloadCoordinationError):
    pass


class ConfigurationError(ReloadCoordinationError):
    pass

from typing import Dict, List, Optional, Tuple
from reloadctl.core.errors import OperationValidationError
from reloadctl.core.models import (
    SERVER_STATE_ATTRIBUTE,
    OperationDocument,
    OptionSet,
    ParamValue,
    TopologyMode,
)

RESTART_OPERATION = "restart"
READ_ATTRIBUTE_OPERATION = "read-attribute"

ADMIN_ONLY = "admin-only"
USE_CURRENT_SERVER_CONFIG = "use-current-server-config"
HOST = "host"
RESTART_SERVERS = "restart-servers"
USE_CURRENT_DOMAIN_CONFIG = "use-current-domain-config"
USE_CURRENT_HOST_CONFIG = "use-current-host-config"

STANDALONE_ONLY_OPTIONS: Tuple[str, ...] = (USE_CURRENT_SERVER_CONFIG,)
# Order matters: the first offending option is the one reported.
DOMAIN_ONLY_OPTIONS: Tuple[str, ...] = (
    HOST,
    USE_CURRENT_DOMAIN_CONFIG,
    USE_CURRENT_HOST_CONFIG,
    RESTART_SERVERS,
)
RECOGNIZED_OPTIONS: Tuple[str, ...] = (ADMIN_ONLY,) + STANDALONE_ONLY_OPTIONS + DOMAIN_ONLY_OPTIONS


def full_name(option: str) -> str:
    return f"--{option}"


class OperationBuilder:
    """
    Builds the restart operation for a topology mode and validates the option set.
    Pure: identical (mode, options) always produce an identical document or error.
    """

    @classmethod
    def build(cls, mode: TopologyMode, options: OptionSet) -> OperationDocument:
        cls._reject_unrecognized(options)

        address: List[Tuple[str, str]] = []
        params: Dict[str, ParamValue] = {}

        if mode == TopologyMode.DOMAIN:
            for option in STANDALONE_ONLY_OPTIONS:
                if option in options:
                    raise OperationValidationError(
                        f"{full_name(option)} is not allowed in the domain mode.",
                        argument=option,
                    )

            host_name = options.get(HOST)
            if host_name is None or (isinstance(host_name, str) and not host_name.strip()):
                raise OperationValidationError(
                    f"Missing required argument {full_name(HOST)}",
                    argument=HOST,
                )
            address.append((HOST, str(host_name)))

            cls._copy_boolean(options, params, RESTART_SERVERS)
            cls._copy_boolean(options, params, USE_CURRENT_DOMAIN_CONFIG)
            cls._copy_boolean(options, params, USE_CURRENT_HOST_CONFIG)
        else:
            for option in DOMAIN_ONLY_OPTIONS:
                if option in options:
                    raise OperationValidationError(
                        f"{full_name(option)} is not allowed in the standalone mode.",
                        argument=option,
                    )

            cls._copy_boolean(options, params, USE_CURRENT_SERVER_CONFIG)

        cls._copy_boolean(options, params, ADMIN_ONLY)

        return OperationDocument(address=address, operation=RESTART_OPERATION, params=params)

    @classmethod
    def read_server_state(cls, address: Optional[List[Tuple[str, str]]] = None) -> OperationDocument:
        """Build the fixed read of the `server-state` lifecycle attribute."""
        return OperationDocument(
            address=list(address or []),
            operation=READ_ATTRIBUTE_OPERATION,
            params={"name": SERVER_STATE_ATTRIBUTE},
        )

    @classmethod
    def parse_boolean(cls, option: str, value: Optional[object]) -> bool:
        """
        Parse a boolean literal case-insensitively. Only 'true' and 'false' are accepted.
        """
        if isinstance(value, bool):
            return value
        if value is None:
            raise OperationValidationError(f"{full_name(option)} is missing value.", argument=option)

        literal = str(value)
        if literal.lower() == "true":
            return True
        if literal.lower() == "false":
            return False
        raise OperationValidationError(
            f"Invalid value for {full_name(option)}: '{literal}'",
            argument=option,
            value=literal,
        )

    @classmethod
    def _copy_boolean(cls, options: OptionSet, params: Dict[str, ParamValue], option: str) -> None:
        if option not in options:
            return
        params[option] = cls.parse_boolean(option, options[option])

    @classmethod
    def _reject_unrecognized(cls, options: OptionSet) -> None:
        for option in options:
            if option not in RECOGNIZED_OPTIONS:
                raise OperationValidationError(
                    f"Unrecognized argument {full_name(option)}",
                    argument=option,
                )

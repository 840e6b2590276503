"""Construction of management operation documents."""

from reloadctl.operations.builder import (
    READ_ATTRIBUTE_OPERATION,
    RESTART_OPERATION,
    OperationBuilder,
)

__all__ = [
    "OperationBuilder",
    "READ_ATTRIBUTE_OPERATION",
    "RESTART_OPERATION",
]

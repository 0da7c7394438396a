from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    OK = 0
    USAGE_ERROR = 1
    CONFIG_ERROR = 2
    PRECONDITION_VIOLATION = 3
    INPUT_ERROR = 4
    RUNTIME_ERROR = 5


class ReducerError(Exception):
    """Base error for the reduction pipeline."""


class UsageError(ReducerError):
    """Raised for malformed or missing command-line arguments."""


class ConfigError(ReducerError):
    """Raised for config file or environment issues."""


class GraphParseError(ReducerError):
    """Raised when the graph description cannot be read or parsed."""


class PreconditionError(ReducerError):
    """Raised when the input graph breaks an attribute contract of the pipeline."""


class MissingAttributeError(PreconditionError):
    """Raised when a visited node or edge lacks an attribute the pipeline reads."""

    def __init__(self, entity: object, key: str) -> None:
        super().__init__(f"{entity!r} has no '{key}' attribute")
        self.entity = entity
        self.key = key


class ExportError(ReducerError):
    """Raised when serializing a graph fails."""


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, UsageError):
        return int(ExitCode.USAGE_ERROR)
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, PreconditionError):
        return int(ExitCode.PRECONDITION_VIOLATION)
    if isinstance(exc, GraphParseError):
        return int(ExitCode.INPUT_ERROR)
    if isinstance(exc, (ExportError, ReducerError)):
        return int(ExitCode.RUNTIME_ERROR)
    return 1

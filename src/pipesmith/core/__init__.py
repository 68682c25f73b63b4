"""Core module: configuration, exceptions, and file I/O helpers."""

from pipesmith.core.exceptions import (
    ConfigError,
    ConfigValidationError,
    MergeConflict,
    ParseError,
    PathConflict,
    PipesmithError,
    WriteError,
)

__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "MergeConflict",
    "ParseError",
    "PathConflict",
    "PipesmithError",
    "WriteError",
]

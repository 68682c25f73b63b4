"""Exception hierarchy for pipesmith.

All errors raised by pipesmith derive from PipesmithError so callers (the CLI
in particular) can catch the whole family at one point. Every error is
terminal for the invocation that raised it: the merge is a pure function of
its inputs, so retrying without changing them reproduces the same failure.
"""

from pathlib import Path


class PipesmithError(Exception):
    """Base class for all pipesmith errors."""

    pass


class ConfigError(PipesmithError):
    """Configuration file missing, unreadable, or not a mapping."""

    pass


class ConfigValidationError(ConfigError):
    """Configuration content failed schema validation.

    Raised by the loader before any merge begins.
    """

    pass


class ParseError(PipesmithError):
    """Existing pipeline document is not well-formed.

    The merge is aborted and the file on disk is left untouched; the user
    must fix or remove it.
    """

    pass


class PathConflict(PipesmithError):
    """A dot-path traverses a node that is not a mapping.

    Attributes:
        path: Full path that was being addressed.
        conflict_at: Prefix of the path whose node is not a mapping.

    """

    def __init__(self, path: str, conflict_at: str, message: str | None = None) -> None:
        self.path = path
        self.conflict_at = conflict_at
        super().__init__(
            message or f"Cannot address '{path}': node at '{conflict_at}' is not a mapping"
        )


class MergeConflict(PathConflict):
    """A path operation could not be applied.

    Raised by the operation engine with the path of the failing operation.
    Processing stops at the first conflict and nothing is written.
    """

    pass


class WriteError(PipesmithError):
    """Writing the pipeline or marker file failed.

    The atomic write guarantees the previous file, if any, is untouched.
    """

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(message)

"""Path operation engine and job ownership rules.

The merger itself lives in pipesmith.merge.merger.
"""

from pipesmith.merge.operations import Operation, PathOperation, apply_operations
from pipesmith.merge.ownership import (
    CANONICAL_STAGE_JOBS,
    Classification,
    JobEntry,
    Ownership,
    classify,
    collect_jobs,
    is_owned,
)

__all__ = [
    "CANONICAL_STAGE_JOBS",
    "Classification",
    "JobEntry",
    "Operation",
    "Ownership",
    "PathOperation",
    "apply_operations",
    "classify",
    "collect_jobs",
    "is_owned",
]

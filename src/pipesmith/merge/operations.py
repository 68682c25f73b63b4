"""Path-addressed operations applied to a DocumentModel.

Each operation names a dot-path and one of four kinds:

    set        create or replace the value, keeping the key's position
    merge      union mapping keys (incoming wins), otherwise like set
    overwrite  replace the whole subtree and its comment
    preserve   leave an existing value alone; create it only if required

Operations run strictly in list order, so one may rely on structure created
by an earlier one. The first conflict aborts the whole list.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, assert_never

from pipesmith.core.exceptions import MergeConflict, PathConflict
from pipesmith.document.model import DocumentModel, split_path
from pipesmith.document.nodes import Mapping, to_node

__all__ = [
    "Operation",
    "PathOperation",
    "apply_operation",
    "apply_operations",
]

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """Kind of path operation."""

    SET = "set"
    MERGE = "merge"
    OVERWRITE = "overwrite"
    PRESERVE = "preserve"


@dataclass(frozen=True)
class PathOperation:
    """One operation addressed at a dot-path.

    Attributes:
        path: Dot-path of the target key.
        operation: What to do with the target.
        value: Node or plain data to install.
        required: For preserve, create the target with value when absent.
        comment: Leading comment for the target key.
        space_before: Emit a blank line before the comment.

    """

    path: str
    operation: Operation
    value: Any = None
    required: bool = True
    comment: str | None = None
    space_before: bool = False


def _merge(doc: DocumentModel, op: PathOperation) -> None:
    existing = doc.get(op.path)
    incoming = to_node(op.value)
    if not (isinstance(existing, Mapping) and isinstance(incoming, Mapping)):
        doc.set(op.path, incoming, op.comment, space_before=op.space_before)
        return

    base = tuple(split_path(op.path))
    for entry in incoming.entries:
        doc.set((*base, entry.key), entry.value)
    if op.comment is not None:
        doc.set_comment(op.path, op.comment, space_before=op.space_before)


def apply_operation(doc: DocumentModel, op: PathOperation) -> None:
    """Apply a single operation.

    Raises:
        PathConflict: If the path runs through a non-mapping node.

    """
    kind = op.operation
    if kind is Operation.SET:
        doc.set(op.path, op.value, op.comment, space_before=op.space_before)
    elif kind is Operation.MERGE:
        _merge(doc, op)
    elif kind is Operation.OVERWRITE:
        doc.set(op.path, op.value)
        doc.set_comment(op.path, op.comment, space_before=op.space_before)
    elif kind is Operation.PRESERVE:
        if doc.get(op.path) is not None:
            logger.debug("Preserving existing %s", op.path)
        elif op.required:
            doc.set(op.path, op.value, op.comment, space_before=op.space_before)
    else:
        assert_never(kind)


def apply_operations(doc: DocumentModel, ops: Iterable[PathOperation]) -> None:
    """Apply operations to doc in order.

    Args:
        doc: Document to mutate.
        ops: Operations, processed strictly in order.

    Raises:
        MergeConflict: If an operation's path runs through a node that is
            not a mapping. Processing stops at the failing operation; the
            caller must discard the document.

    """
    for op in ops:
        try:
            apply_operation(doc, op)
        except PathConflict as e:
            raise MergeConflict(
                op.path,
                e.conflict_at,
                f"{op.operation.value} '{op.path}' failed: "
                f"node at '{e.conflict_at}' is not a mapping",
            ) from e

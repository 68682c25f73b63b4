"""Ordered, comment-preserving document tree."""

from pipesmith.document.model import DocumentModel, split_path
from pipesmith.document.nodes import (
    Mapping,
    MappingEntry,
    Node,
    Scalar,
    Sequence,
    to_node,
    to_python,
)

__all__ = [
    "DocumentModel",
    "Mapping",
    "MappingEntry",
    "Node",
    "Scalar",
    "Sequence",
    "split_path",
    "to_node",
    "to_python",
]

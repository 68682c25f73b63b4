"""Node types for the ordered document tree.

A document is a strictly tree-shaped structure: every node is owned by
exactly one parent Mapping entry or Sequence. Mapping entries parsed from
existing text remember the verbatim text they came from, so regions that
are never touched can be written back byte-for-byte.

Public API:
    - Scalar, Sequence, Mapping, MappingEntry: the node variants
    - Node: union of the three node variants
    - to_node: build nodes from plain Python data
    - to_python: convert nodes back to plain dict/list/scalars
    - to_yaml_data: convert nodes to ruamel.yaml data for emission
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.scalarstring import LiteralScalarString, ScalarString

__all__ = [
    "Mapping",
    "MappingEntry",
    "Node",
    "Scalar",
    "Sequence",
    "to_node",
    "to_python",
    "to_yaml_data",
]


@dataclass
class Scalar:
    """Leaf value (string, number, boolean or null)."""

    value: Any


@dataclass
class Sequence:
    """Ordered list of child nodes.

    Attributes:
        items: Child nodes in order.
        flow: Emit in flow style ([a, b]) when re-rendered.

    """

    items: list[Node] = field(default_factory=list)
    flow: bool = False


@dataclass
class MappingEntry:
    """One key of a Mapping with its value and leading comment.

    A parsed entry carries up to three verbatim text fragments:

    - leading: comment and blank lines directly above the key
    - source: the key line through the end of the value
    - header: the key line alone, when the value is a block mapping whose
      children are tracked individually

    Any mutation at or below the entry clears ``source``; replacing the
    value also clears ``header``. Setting a comment clears ``leading``.

    Attributes:
        key: Mapping key.
        value: Child node.
        comment: Comment text rendered above the key (without '#').
        space_before: Emit a blank line before the comment.
        leading: Verbatim lines above the key, taken from parsed text.
        source: Verbatim text of the entry, taken from parsed text.
        header: Verbatim key line, taken from parsed text.

    """

    key: str
    value: Node
    comment: str | None = None
    space_before: bool = False
    leading: list[str] | None = None
    source: str | None = None
    header: str | None = None

    @property
    def is_pristine(self) -> bool:
        """True when the entry can still be written from its source text."""
        return self.source is not None

    def touch(self) -> None:
        """Mark the subtree as modified below this entry."""
        self.source = None

    def replace(self, value: Node) -> None:
        """Replace the value in place, keeping the key's position."""
        self.value = value
        self.source = None
        self.header = None

    def set_comment(self, comment: str | None, space_before: bool = False) -> None:
        """Replace the leading comment (None removes it)."""
        self.comment = comment
        self.space_before = space_before
        self.leading = None

    def comment_text(self) -> str | None:
        """Leading comment as plain text, whether parsed or assigned."""
        if self.leading is None:
            return self.comment
        lines = []
        for line in self.leading:
            stripped = line.strip()
            if not stripped.startswith("#"):
                continue
            text = stripped[1:]
            lines.append(text[1:] if text.startswith(" ") else text)
        return "\n".join(lines) if lines else None


@dataclass
class Mapping:
    """Ordered mapping of unique keys to child nodes.

    Attributes:
        entries: Entries in document order.
        indent: Column of the keys when parsed; None for new mappings.
        flow: Emit in flow style ({a: 1}) when re-rendered.

    """

    entries: list[MappingEntry] = field(default_factory=list)
    indent: int | None = None
    flow: bool = False

    def entry(self, key: str) -> MappingEntry | None:
        """Return the entry for key, or None."""
        for entry in self.entries:
            if entry.key == key:
                return entry
        return None

    def keys(self) -> list[str]:
        """Keys in document order."""
        return [entry.key for entry in self.entries]

    def __contains__(self, key: object) -> bool:
        return any(entry.key == key for entry in self.entries)

    def __len__(self) -> int:
        return len(self.entries)


Node: TypeAlias = Scalar | Sequence | Mapping


def _detach(node: Node) -> None:
    # Verbatim text is only valid at its original position
    if isinstance(node, Mapping):
        node.indent = None
        for entry in node.entries:
            if entry.leading is not None:
                entry.comment = entry.comment_text()
                entry.leading = None
            entry.source = None
            entry.header = None
            _detach(entry.value)
    elif isinstance(node, Sequence):
        for item in node.items:
            _detach(item)


def to_node(value: Any) -> Node:
    """Build a node tree from plain Python data.

    Existing nodes are deep-copied so the result is never shared with
    another parent; the copy drops verbatim text and is re-rendered.
    ruamel.yaml containers keep their flow style.

    Args:
        value: Node, dict, list/tuple, or scalar.

    Returns:
        A freshly owned node tree.

    """
    if isinstance(value, (Scalar, Sequence, Mapping)):
        node = copy.deepcopy(value)
        _detach(node)
        return node
    if isinstance(value, dict):
        flow = bool(value.fa.flow_style()) if isinstance(value, CommentedMap) else False
        return Mapping(
            entries=[MappingEntry(str(k), to_node(v)) for k, v in value.items()],
            flow=flow,
        )
    if isinstance(value, (list, tuple)):
        flow = bool(value.fa.flow_style()) if isinstance(value, CommentedSeq) else False
        return Sequence(items=[to_node(v) for v in value], flow=flow)
    return Scalar(value)


def to_python(node: Node) -> Any:
    """Convert a node tree to plain dicts, lists and scalars."""
    if isinstance(node, Mapping):
        return {entry.key: to_python(entry.value) for entry in node.entries}
    if isinstance(node, Sequence):
        return [to_python(item) for item in node.items]
    return node.value


def to_yaml_data(node: Node) -> Any:
    """Convert a node tree to ruamel.yaml round-trip data for emission.

    Multi-line strings become literal block scalars so scripts stay
    readable in the generated file.
    """
    if isinstance(node, Mapping):
        cm = CommentedMap()
        for entry in node.entries:
            cm[entry.key] = to_yaml_data(entry.value)
        if node.flow:
            cm.fa.set_flow_style()
        return cm
    if isinstance(node, Sequence):
        seq = CommentedSeq(to_yaml_data(item) for item in node.items)
        if node.flow:
            seq.fa.set_flow_style()
        return seq
    value = node.value
    if isinstance(value, str) and "\n" in value and not isinstance(value, ScalarString):
        return LiteralScalarString(value)
    return value

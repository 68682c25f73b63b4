"""Ordered, comment-preserving document model with dot-path addressing.

Existing text is parsed with ruamel.yaml in round-trip mode. Its line/column
information is used to slice the text into one region per mapping entry:

    <leading comment and blank lines>
    <key line>
    <value lines>

Comment and blank lines that sit between two sibling keys belong to the
following key, so a comment written above a job moves with that job when
entries are reordered. Block mappings are sliced recursively; everything
else (scalars, sequences, flow collections) is kept as one region.

On output an untouched entry is written from its region verbatim. Entries
that were modified are re-rendered: block mappings key by key (reusing the
original key line and the children's regions where possible), leaves via
ruamel.yaml with 2-space indentation.

Usage:
    doc = DocumentModel.parse(text)
    doc.set("jobs.lint", {"runs-on": "ubuntu-latest"}, comment="lint gate")
    doc.reorder_mapping("jobs", ["changes", "lint"])
    text = doc.serialize()
"""

from __future__ import annotations

import functools
import io
import json
import logging
import re
from collections.abc import Iterable
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import YAMLError

from pipesmith.core.exceptions import ParseError, PathConflict
from pipesmith.document.nodes import (
    Mapping,
    MappingEntry,
    Node,
    Scalar,
    to_node,
    to_python,
    to_yaml_data,
)

__all__ = [
    "INDENT_STEP",
    "DocumentModel",
    "PathLike",
    "split_path",
]

logger = logging.getLogger(__name__)

INDENT_STEP = 2

PathLike = str | tuple[str, ...] | list[str]

# Keys emitted without quotes when a mapping header is rendered
_PLAIN_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")
_RESERVED_KEYS = frozenset({"true", "false", "null", "~"})

# One physical line, newline included; the last line may lack it
_LINE = re.compile(r"[^\n]*\n|[^\n]+\Z")


def split_path(path: PathLike) -> list[str]:
    """Split a dot-path into segments.

    Args:
        path: Dot-separated string, or an explicit sequence of segments
            (for keys that themselves contain dots).

    Returns:
        List of path segments.

    Raises:
        ValueError: If the path is empty or has empty segments.

    """
    parts = path.split(".") if isinstance(path, str) else list(path)
    if not parts or parts == [""]:
        raise ValueError("Path cannot be empty")
    for part in parts:
        if not part:
            raise ValueError(f"Invalid path '{path}': contains empty segment")
    return parts


def _yaml() -> YAML:
    """Round-trip YAML instance configured for pipeline files."""
    yaml = YAML(typ="rt")
    yaml.preserve_quotes = True
    yaml.default_flow_style = False
    yaml.width = 4096
    yaml.indent(mapping=INDENT_STEP, sequence=INDENT_STEP * 2, offset=INDENT_STEP)
    return yaml


@functools.cache
def _emitter() -> YAML:
    return _yaml()


# =============================================================================
# Parsing
# =============================================================================


def _split_lines(text: str) -> list[str]:
    lines = _LINE.findall(text)
    if lines and not lines[-1].endswith("\n"):
        lines[-1] += "\n"
    return lines


def _is_detached(line: str, column: int) -> bool:
    """Blank line, or comment line not indented past the sibling keys."""
    stripped = line.strip()
    if not stripped:
        return True
    if not stripped.startswith("#"):
        return False
    return len(line) - len(line.lstrip()) <= column


def _peel(lines: list[str], lo: int, hi: int, column: int) -> int:
    """Return where the body ending at hi stops, excluding detached trailing lines."""
    end = hi
    while end > lo and _is_detached(lines[end - 1], column):
        end -= 1
    return end


def _positioned_keys(cm: CommentedMap) -> list[Any]:
    # Keys pulled in through a merge key (<<) carry no position of their own
    data = cm.lc.data or {}
    return [key for key in cm if key in data]


def _key_line(cm: CommentedMap, key: Any) -> int:
    return cm.lc.key(key)[0]


def _nested_block(value: Any, key_line: int, body_end: int) -> bool:
    """True when value is a block mapping laid out inside [key_line, body_end)."""
    if not isinstance(value, CommentedMap) or value.fa.flow_style():
        return False
    keys = _positioned_keys(value)
    if not keys:
        return False
    first = _key_line(value, keys[0])
    return key_line < first < body_end


def _build_mapping(
    cm: CommentedMap,
    lines: list[str],
    start: int,
    end: int,
    *,
    is_root: bool,
) -> tuple[Mapping, list[str]]:
    """Slice lines [start, end) into one region per key of cm.

    Returns:
        Tuple of (mapping, trailing). trailing holds the detached lines
        after the last entry and is only non-empty for the root.

    """
    keys = _positioned_keys(cm)
    column = cm.lc.key(keys[0])[1]
    mapping = Mapping(indent=column)
    trailing: list[str] = []

    lead_start = start
    for index, key in enumerate(keys):
        key_line = _key_line(cm, key)
        if index + 1 < len(keys):
            body_end = _peel(lines, key_line + 1, _key_line(cm, keys[index + 1]), column)
        elif is_root:
            body_end = _peel(lines, key_line + 1, end, column)
            trailing = lines[body_end:end]
        else:
            body_end = end

        value = cm[key]
        entry = MappingEntry(
            key=str(key),
            value=Scalar(None),
            leading=lines[lead_start:key_line],
            source="".join(lines[key_line:body_end]),
        )
        if _nested_block(value, key_line, body_end):
            entry.value, _ = _build_mapping(value, lines, key_line + 1, body_end, is_root=False)
            entry.header = lines[key_line]
        else:
            entry.value = to_node(value)
        mapping.entries.append(entry)
        lead_start = body_end

    return mapping, trailing


# =============================================================================
# Rendering
# =============================================================================


def _render_key(key: str) -> str:
    if _PLAIN_KEY.match(key) and key.lower() not in _RESERVED_KEYS:
        return key
    return json.dumps(key)


def _comment_lines(text: str, indent: int) -> list[str]:
    pad = " " * indent
    return [f"{pad}# {line}".rstrip() + "\n" for line in text.strip("\n").split("\n")]


def _indent_block(text: str, indent: int) -> str:
    if not indent:
        return text
    pad = " " * indent
    return "".join(
        pad + line if line.strip() else line for line in text.splitlines(keepends=True)
    )


def _render_leaf(key: str, node: Node, indent: int) -> str:
    cm = CommentedMap()
    cm[key] = to_yaml_data(node)
    buf = io.StringIO()
    _emitter().dump(cm, buf)
    return _indent_block(buf.getvalue(), indent)


def _emit_entry(entry: MappingEntry, indent: int, out: list[str]) -> None:
    if entry.leading is not None:
        out.extend(entry.leading)
    else:
        if entry.space_before:
            out.append("\n")
        if entry.comment:
            out.extend(_comment_lines(entry.comment, indent))

    if entry.source is not None:
        out.append(entry.source)
        return

    value = entry.value
    if isinstance(value, Mapping) and value.entries and not value.flow:
        out.append(
            entry.header
            if entry.header is not None
            else f"{' ' * indent}{_render_key(entry.key)}:\n"
        )
        child_indent = value.indent if value.indent is not None else indent + INDENT_STEP
        for child in value.entries:
            _emit_entry(child, child_indent, out)
    else:
        out.append(_render_leaf(entry.key, value, indent))


# =============================================================================
# DocumentModel
# =============================================================================


class DocumentModel:
    """Ordered mapping document addressed by dot-paths.

    A model is built fresh (empty) or parsed from existing text, mutated
    within one merge, serialized, and discarded. It is not thread-safe.

    Attributes:
        root: Top-level mapping.

    """

    def __init__(
        self,
        root: Mapping | None = None,
        trailing: list[str] | None = None,
        final_newline: bool = True,
    ) -> None:
        """Initialize a document.

        Args:
            root: Top-level mapping (empty when omitted).
            trailing: Verbatim lines after the last top-level entry.
            final_newline: Whether serialized output ends with a newline.

        """
        self.root = root if root is not None else Mapping()
        self._trailing = list(trailing or [])
        self._final_newline = final_newline

    @classmethod
    def parse(cls, text: str) -> DocumentModel:
        """Parse existing YAML text.

        Args:
            text: Document text (a single YAML document).

        Returns:
            DocumentModel whose untouched regions serialize verbatim.

        Raises:
            ParseError: If the text is not valid YAML, is empty, or its
                root is not a mapping.

        """
        try:
            data = _yaml().load(text)
        except YAMLError as e:
            raise ParseError(f"Invalid YAML: {e}") from e

        if data is None:
            raise ParseError("Document is empty or contains only comments.")
        if not isinstance(data, CommentedMap):
            raise ParseError(f"Document root must be a mapping, got {type(data).__name__}.")

        final_newline = not text or text.endswith("\n")
        if data.fa.flow_style() or not _positioned_keys(data):
            logger.debug("Root mapping is flow-style or empty, text will be re-rendered")
            return cls(to_node(data), final_newline=final_newline)

        lines = _split_lines(text)
        root, trailing = _build_mapping(data, lines, 0, len(lines), is_root=True)
        return cls(root, trailing, final_newline)

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def _descend(self, parts: list[str]) -> tuple[Mapping | None, list[MappingEntry]]:
        """Walk to the mapping that holds the last path segment.

        Returns:
            Tuple of (parent mapping or None if absent, entries traversed).

        """
        current = self.root
        chain: list[MappingEntry] = []
        for part in parts[:-1]:
            entry = current.entry(part)
            if entry is None or not isinstance(entry.value, Mapping):
                return None, chain
            chain.append(entry)
            current = entry.value
        return current, chain

    def _make_parents(self, parts: list[str]) -> tuple[Mapping, list[MappingEntry]]:
        """Walk to the parent of the last path segment, creating mappings.

        Missing keys and keys with a null value (``workflow_dispatch:``)
        become empty mappings.

        Returns:
            Tuple of (parent mapping, entries traversed).

        Raises:
            PathConflict: If an existing intermediate node is a non-null
                scalar or a sequence.

        """
        current = self.root
        chain: list[MappingEntry] = []
        for depth, part in enumerate(parts[:-1]):
            entry = current.entry(part)
            if entry is None:
                entry = MappingEntry(part, Mapping())
                current.entries.append(entry)
            elif isinstance(entry.value, Scalar) and entry.value.value is None:
                entry.replace(Mapping())
            elif not isinstance(entry.value, Mapping):
                raise PathConflict(".".join(parts), ".".join(parts[: depth + 1]))
            chain.append(entry)
            current = entry.value
        return current, chain

    def get_entry(self, path: PathLike) -> MappingEntry | None:
        """Return the mapping entry at path, or None if any segment is absent."""
        parts = split_path(path)
        parent, _ = self._descend(parts)
        if parent is None:
            return None
        return parent.entry(parts[-1])

    def get(self, path: PathLike) -> Node | None:
        """Return the node at path, or None if any segment is absent.

        Missing paths are not an error; a path running through a scalar or
        sequence is reported as absent too.
        """
        entry = self.get_entry(path)
        return entry.value if entry is not None else None

    def get_comment(self, path: PathLike) -> str | None:
        """Return the leading comment text of the entry at path."""
        entry = self.get_entry(path)
        return entry.comment_text() if entry is not None else None

    def mapping_at(self, path: PathLike | None = None) -> Mapping | None:
        """Return the mapping at path (the root when path is None)."""
        if path is None:
            return self.root
        node = self.get(path)
        return node if isinstance(node, Mapping) else None

    def keys(self, path: PathLike | None = None) -> list[str]:
        """Keys of the mapping at path, in order (empty if not a mapping)."""
        mapping = self.mapping_at(path)
        return mapping.keys() if mapping is not None else []

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def set(
        self,
        path: PathLike,
        value: Any,
        comment: str | None = None,
        *,
        space_before: bool = False,
    ) -> None:
        """Set the value at path, creating intermediate mappings.

        An existing key keeps its position and its leading comment unless
        a new comment is given. A new key is appended to its parent.
        Intermediate keys that are missing or null become mappings.

        Args:
            path: Dot-path of the key to set.
            value: Node or plain Python data to install.
            comment: Leading comment for the key.
            space_before: Emit a blank line before the comment.

        Raises:
            PathConflict: If an existing intermediate node is not a mapping.

        """
        parts = split_path(path)
        parent, chain = self._make_parents(parts)
        node = to_node(value)

        existing = parent.entry(parts[-1])
        if existing is None:
            parent.entries.append(
                MappingEntry(parts[-1], node, comment=comment, space_before=space_before)
            )
        else:
            existing.replace(node)
            if comment is not None:
                existing.set_comment(comment, space_before)

        for entry in chain:
            entry.touch()
            # Mappings that gain keys this way are laid out in block style
            if isinstance(entry.value, Mapping):
                entry.value.flow = False

    def set_comment(
        self, path: PathLike, comment: str | None, *, space_before: bool = False
    ) -> None:
        """Replace the leading comment of an existing entry.

        Args:
            path: Dot-path of the entry.
            comment: New comment text, or None to remove it.
            space_before: Emit a blank line before the comment.

        Raises:
            KeyError: If there is no entry at path.

        """
        parts = split_path(path)
        parent, chain = self._descend(parts)
        entry = parent.entry(parts[-1]) if parent is not None else None
        if entry is None:
            raise KeyError(f"No entry at '{'.'.join(parts)}'")
        entry.set_comment(comment, space_before)
        for ancestor in chain:
            ancestor.touch()

    def delete(self, path: PathLike) -> bool:
        """Remove the key at path from its parent mapping.

        Returns:
            True if an entry was removed, False if the path was absent.

        """
        parts = split_path(path)
        parent, chain = self._descend(parts)
        entry = parent.entry(parts[-1]) if parent is not None else None
        if parent is None or entry is None:
            return False
        parent.entries = [e for e in parent.entries if e is not entry]
        for ancestor in chain:
            ancestor.touch()
        return True

    def reorder_mapping(self, path: PathLike | None, desired: Iterable[str]) -> None:
        """Reorder the direct children of the mapping at path.

        Keys listed in desired come first, in that order. Keys present but
        not listed follow in their prior relative order. Listed keys that
        do not exist are ignored. Entries move together with their leading
        comments.

        Args:
            path: Dot-path of the mapping, or None for the root.
            desired: Desired key order.

        Raises:
            PathConflict: If the node at path exists but is not a mapping.

        """
        chain: list[MappingEntry] = []
        if path is None:
            mapping = self.root
        else:
            parts = split_path(path)
            parent, chain = self._descend(parts)
            entry = parent.entry(parts[-1]) if parent is not None else None
            if entry is None:
                return
            if not isinstance(entry.value, Mapping):
                joined = ".".join(parts)
                raise PathConflict(joined, joined)
            mapping = entry.value
            chain.append(entry)

        remaining = {e.key: e for e in mapping.entries}
        ordered: list[MappingEntry] = []
        for key in desired:
            found = remaining.pop(key, None)
            if found is not None:
                ordered.append(found)
        ordered.extend(e for e in mapping.entries if e.key in remaining)

        if any(a is not b for a, b in zip(ordered, mapping.entries, strict=True)):
            mapping.entries = ordered
            for ancestor in chain:
                ancestor.touch()

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def serialize(self) -> str:
        """Render the document as YAML text.

        Untouched regions are reproduced byte-for-byte; modified ones use
        2-space indentation.
        """
        out: list[str] = []
        indent = self.root.indent or 0
        for entry in self.root.entries:
            _emit_entry(entry, indent, out)
        out.extend(self._trailing)
        text = "".join(out)
        if not self._final_newline and text.endswith("\n"):
            text = text[:-1]
        return text

    def to_python(self, path: PathLike | None = None) -> Any:
        """Plain-data view of the document (or of the node at path)."""
        if path is None:
            return to_python(self.root)
        node = self.get(path)
        return to_python(node) if node is not None else None

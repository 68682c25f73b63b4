"""Tests for the path operation engine."""

import pytest

from pipesmith.core.exceptions import MergeConflict
from pipesmith.document import DocumentModel
from pipesmith.merge.operations import Operation, PathOperation, apply_operations

EXISTING = """\
settings:
  a: 1
  # keep b
  b: 2
flag: true
"""


@pytest.fixture
def doc() -> DocumentModel:
    return DocumentModel.parse(EXISTING)


class TestOperationKinds:
    def test_closed_set_of_kinds(self) -> None:
        assert {op.value for op in Operation} == {"set", "merge", "overwrite", "preserve"}


class TestSet:
    def test_creates_missing(self, doc: DocumentModel) -> None:
        apply_operations(doc, [PathOperation("extra.key", Operation.SET, "v")])
        assert doc.to_python("extra") == {"key": "v"}

    def test_overwrites_in_place(self, doc: DocumentModel) -> None:
        apply_operations(doc, [PathOperation("settings.a", Operation.SET, 10)])
        assert doc.keys("settings") == ["a", "b"]
        assert doc.to_python("settings.a") == 10


class TestMerge:
    def test_unions_mapping_keys(self, doc: DocumentModel) -> None:
        apply_operations(doc, [PathOperation("settings", Operation.MERGE, {"b": 3, "c": 4})])
        assert doc.to_python("settings") == {"a": 1, "b": 3, "c": 4}
        assert doc.keys("settings") == ["a", "b", "c"]

    def test_keeps_existing_comments(self, doc: DocumentModel) -> None:
        apply_operations(doc, [PathOperation("settings", Operation.MERGE, {"c": 4})])
        assert doc.get_comment("settings.b") == "keep b"

    def test_non_mapping_behaves_as_set(self, doc: DocumentModel) -> None:
        apply_operations(doc, [PathOperation("flag", Operation.MERGE, {"x": 1})])
        assert doc.to_python("flag") == {"x": 1}

    def test_creates_missing(self, doc: DocumentModel) -> None:
        apply_operations(doc, [PathOperation("new", Operation.MERGE, {"x": 1})])
        assert doc.to_python("new") == {"x": 1}


class TestOverwrite:
    def test_replaces_subtree_and_comment(self, doc: DocumentModel) -> None:
        apply_operations(
            doc,
            [PathOperation("settings.b", Operation.OVERWRITE, {"z": 1}, comment="generated")],
        )
        assert doc.to_python("settings.b") == {"z": 1}
        assert doc.get_comment("settings.b") == "generated"
        assert "  # generated\n  b:\n    z: 1\n" in doc.serialize()

    def test_without_comment_drops_old_comment(self, doc: DocumentModel) -> None:
        apply_operations(doc, [PathOperation("settings.b", Operation.OVERWRITE, 5)])
        assert doc.get_comment("settings.b") is None
        assert "keep b" not in doc.serialize()


class TestPreserve:
    def test_existing_is_untouched(self, doc: DocumentModel) -> None:
        apply_operations(doc, [PathOperation("settings", Operation.PRESERVE, {"other": 1})])
        assert doc.serialize() == EXISTING

    def test_absent_required_is_created(self, doc: DocumentModel) -> None:
        apply_operations(
            doc,
            [PathOperation("name", Operation.PRESERVE, "Pipeline", comment="title")],
        )
        assert doc.to_python("name") == "Pipeline"
        assert doc.serialize().endswith("# title\nname: Pipeline\n")

    def test_absent_optional_is_skipped(self, doc: DocumentModel) -> None:
        apply_operations(doc, [PathOperation("name", Operation.PRESERVE, "x", required=False)])
        assert doc.get("name") is None


class TestOrderingAndConflicts:
    def test_later_ops_see_earlier_structure(self) -> None:
        doc = DocumentModel()
        apply_operations(
            doc,
            [
                PathOperation("a", Operation.SET, {}),
                PathOperation("a.b", Operation.SET, 1),
                PathOperation("a", Operation.PRESERVE, {"ignored": True}),
            ],
        )
        assert doc.to_python() == {"a": {"b": 1}}

    def test_conflict_names_failing_path_and_stops(self, doc: DocumentModel) -> None:
        ops = [
            PathOperation("first", Operation.SET, 1),
            PathOperation("flag.child", Operation.SET, 2),
            PathOperation("never", Operation.SET, 3),
        ]
        with pytest.raises(MergeConflict) as exc_info:
            apply_operations(doc, ops)
        assert exc_info.value.path == "flag.child"
        assert exc_info.value.conflict_at == "flag"
        assert "flag.child" in str(exc_info.value)
        assert doc.get("never") is None

    def test_preserve_required_through_scalar_conflicts(self, doc: DocumentModel) -> None:
        with pytest.raises(MergeConflict):
            apply_operations(doc, [PathOperation("flag.x", Operation.PRESERVE, 1)])

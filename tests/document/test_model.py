"""Tests for DocumentModel: parsing, dot-path access, mutation, serialization."""

import pytest

from pipesmith.core.exceptions import ParseError, PathConflict
from pipesmith.document import DocumentModel, Mapping, Scalar, Sequence, split_path

SAMPLE = """\
# Pipeline header comment
name: "Build"   # trailing

on:
  push:
    branches: [main, develop]

jobs:
  # first job
  build:
    runs-on: ubuntu-latest
    steps:
      - run: echo 'hi'

  # lint gate
  custom-lint:
    runs-on: ubuntu-latest
    steps:
      - run: |
          make lint

# footer
"""

BUILD_JOB = """\
  # first job
  build:
    runs-on: ubuntu-latest
    steps:
      - run: echo 'hi'
"""


@pytest.fixture
def doc() -> DocumentModel:
    return DocumentModel.parse(SAMPLE)


# =============================================================================
# Test: Round trip
# =============================================================================


class TestRoundTrip:
    """Untouched documents serialize byte-for-byte."""

    def test_parse_then_serialize_is_identical(self, doc: DocumentModel) -> None:
        assert doc.serialize() == SAMPLE

    def test_missing_final_newline_is_kept(self) -> None:
        text = "a: 1\nb: 2"
        assert DocumentModel.parse(text).serialize() == text

    def test_document_start_marker_is_kept(self) -> None:
        text = "---\n# top\na: 1\n"
        assert DocumentModel.parse(text).serialize() == text

    def test_empty_model_serializes_to_empty_text(self) -> None:
        assert DocumentModel().serialize() == ""


# =============================================================================
# Test: Parse errors
# =============================================================================


class TestParseErrors:
    """Malformed input raises ParseError."""

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "# only a comment\n",
            "- a\n- b\n",
            "just a string\n",
            "a: [1, 2\n",
            "a: 1\na: 2\n",
        ],
    )
    def test_invalid_documents_raise(self, text: str) -> None:
        with pytest.raises(ParseError):
            DocumentModel.parse(text)


# =============================================================================
# Test: Reading
# =============================================================================


class TestGet:
    """get() descends dot-paths and reports absence as None."""

    def test_get_nested_value(self, doc: DocumentModel) -> None:
        node = doc.get("on.push.branches")
        assert isinstance(node, Sequence)
        assert doc.to_python("on.push.branches") == ["main", "develop"]

    def test_get_scalar(self, doc: DocumentModel) -> None:
        node = doc.get("name")
        assert isinstance(node, Scalar)
        assert node.value == "Build"

    def test_missing_segment_returns_none(self, doc: DocumentModel) -> None:
        assert doc.get("jobs.missing") is None
        assert doc.get("nothing.here.at.all") is None

    def test_path_through_scalar_returns_none(self, doc: DocumentModel) -> None:
        assert doc.get("name.sub") is None

    def test_keys_in_document_order(self, doc: DocumentModel) -> None:
        assert doc.keys() == ["name", "on", "jobs"]
        assert doc.keys("jobs") == ["build", "custom-lint"]

    def test_get_comment_from_parsed_text(self, doc: DocumentModel) -> None:
        assert doc.get_comment("jobs.build") == "first job"
        assert doc.get_comment("jobs.custom-lint") == "lint gate"
        assert doc.get_comment("on") is None

    def test_to_python_whole_document(self, doc: DocumentModel) -> None:
        data = doc.to_python()
        assert data["jobs"]["custom-lint"]["steps"] == [{"run": "make lint\n"}]


# =============================================================================
# Test: set
# =============================================================================


class TestSet:
    """set() replaces in place, appends new keys, creates intermediates."""

    def test_replace_leaf_only_rewrites_that_entry(self, doc: DocumentModel) -> None:
        doc.set("on.push.branches", ["main"])
        expected = SAMPLE.replace(
            "    branches: [main, develop]\n",
            "    branches:\n      - main\n",
        )
        assert doc.serialize() == expected

    def test_replace_keeps_position(self, doc: DocumentModel) -> None:
        doc.set("name", "Other")
        assert doc.keys() == ["name", "on", "jobs"]
        assert doc.serialize() == SAMPLE.replace('name: "Build"   # trailing\n', "name: Other\n")

    def test_new_key_is_appended_with_comment(self, doc: DocumentModel) -> None:
        doc.set("jobs.deploy", {"runs-on": "x"}, comment="deploy it")
        expected = SAMPLE.replace(
            "          make lint\n",
            "          make lint\n  # deploy it\n  deploy:\n    runs-on: x\n",
        )
        assert doc.keys("jobs") == ["build", "custom-lint", "deploy"]
        assert doc.serialize() == expected

    def test_creates_missing_intermediate_mappings(self) -> None:
        doc = DocumentModel()
        doc.set("a.b", [1, 2])
        doc.set("a.c", "x", comment="note")
        assert doc.serialize() == "a:\n  b:\n    - 1\n    - 2\n  # note\n  c: x\n"

    def test_segment_tuple_allows_dotted_keys(self) -> None:
        doc = DocumentModel()
        doc.set(("a", "b.c"), 1)
        assert doc.keys("a") == ["b.c"]
        assert doc.get(("a", "b.c")) == Scalar(1)
        assert doc.serialize() == "a:\n  b.c: 1\n"

    def test_conflict_on_scalar_intermediate(self, doc: DocumentModel) -> None:
        with pytest.raises(PathConflict) as exc_info:
            doc.set("name.sub", 1)
        assert exc_info.value.path == "name.sub"
        assert exc_info.value.conflict_at == "name"
        assert doc.serialize() == SAMPLE

    def test_null_intermediate_becomes_mapping(self) -> None:
        doc = DocumentModel.parse("on:\n  workflow_dispatch:\n  push:\n    branches: [develop]\n")
        doc.set("on.workflow_dispatch.inputs.version", {"type": "string"})
        assert doc.serialize() == (
            "on:\n"
            "  workflow_dispatch:\n"
            "    inputs:\n"
            "      version:\n"
            "        type: string\n"
            "  push:\n"
            "    branches: [develop]\n"
        )

    def test_conflict_on_sequence_intermediate(self) -> None:
        doc = DocumentModel.parse("on: [push]\n")
        with pytest.raises(PathConflict) as exc_info:
            doc.set("on.push.branches", ["main"])
        assert exc_info.value.conflict_at == "on"

    def test_existing_comment_kept_without_new_comment(self, doc: DocumentModel) -> None:
        doc.set("jobs.custom-lint", {"runs-on": "self-hosted"})
        assert doc.get_comment("jobs.custom-lint") == "lint gate"
        assert "\n  # lint gate\n  custom-lint:\n    runs-on: self-hosted\n" in doc.serialize()

    def test_set_copies_nodes(self, doc: DocumentModel) -> None:
        original = doc.get("on")
        doc.set("copy", original)
        copied = doc.get("copy")
        assert copied is not original
        assert isinstance(copied, Mapping)
        doc.set("copy.push", "x")
        assert doc.to_python("on.push") == {"branches": ["main", "develop"]}

    def test_multiline_string_is_literal_block(self) -> None:
        doc = DocumentModel()
        doc.set("script", "line1\nline2\n")
        assert doc.serialize().startswith("script: |")


# =============================================================================
# Test: delete
# =============================================================================


class TestDelete:
    """delete() removes an entry and its leading comment."""

    def test_delete_removes_entry_and_comment(self, doc: DocumentModel) -> None:
        assert doc.delete("jobs.build") is True
        assert doc.serialize() == SAMPLE.replace(BUILD_JOB, "")

    def test_delete_missing_is_noop(self, doc: DocumentModel) -> None:
        assert doc.delete("jobs.nope") is False
        assert doc.delete("name.sub") is False
        assert doc.serialize() == SAMPLE


# =============================================================================
# Test: reorder_mapping
# =============================================================================


class TestReorder:
    """reorder_mapping() moves entries together with their comments."""

    def test_reorder_moves_comments_with_entries(self, doc: DocumentModel) -> None:
        doc.reorder_mapping("jobs", ["custom-lint", "build"])
        expected = SAMPLE.replace(
            BUILD_JOB + "\n  # lint gate\n",
            "\n  # lint gate\n",
        ).replace("          make lint\n", "          make lint\n" + BUILD_JOB)
        assert doc.keys("jobs") == ["custom-lint", "build"]
        assert doc.serialize() == expected

    def test_unlisted_keys_follow_in_prior_order(self) -> None:
        doc = DocumentModel()
        for key in ("x", "y", "z"):
            doc.set(key, 1)
        doc.reorder_mapping(None, ["z", "missing", "z"])
        assert doc.keys() == ["z", "x", "y"]

    def test_same_order_leaves_text_untouched(self, doc: DocumentModel) -> None:
        doc.reorder_mapping("jobs", ["build", "custom-lint"])
        assert doc.serialize() == SAMPLE

    def test_reorder_missing_mapping_is_noop(self, doc: DocumentModel) -> None:
        doc.reorder_mapping("nothing", ["a"])
        assert doc.serialize() == SAMPLE

    def test_reorder_scalar_raises(self, doc: DocumentModel) -> None:
        with pytest.raises(PathConflict):
            doc.reorder_mapping("name", ["a"])


# =============================================================================
# Test: set_comment
# =============================================================================


class TestSetComment:
    def test_replace_parsed_comment(self, doc: DocumentModel) -> None:
        doc.set_comment("jobs.custom-lint", "style checks", space_before=True)
        assert doc.get_comment("jobs.custom-lint") == "style checks"
        assert "\n\n  # style checks\n  custom-lint:\n" in doc.serialize()

    def test_missing_entry_raises(self, doc: DocumentModel) -> None:
        with pytest.raises(KeyError):
            doc.set_comment("jobs.nope", "x")


class TestSplitPath:
    def test_split(self) -> None:
        assert split_path("a.b.c") == ["a", "b", "c"]
        assert split_path(("a", "b.c")) == ["a", "b.c"]

    @pytest.mark.parametrize("path", ["", "a..b", ".a", "a."])
    def test_invalid(self, path: str) -> None:
        with pytest.raises(ValueError):
            split_path(path)

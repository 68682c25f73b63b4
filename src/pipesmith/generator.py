"""Generate or regenerate the pipeline file of a project.

Ties the pieces together: idempotency gate, read of the existing file,
structural merge, atomic write, marker update. Any error leaves the existing
pipeline file exactly as it was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from pipesmith.core.config.constants import DEFAULT_PIPELINE_PATH, MARKER_FILE_NAME
from pipesmith.core.config.models import PipelineConfig
from pipesmith.core.exceptions import ParseError, WriteError
from pipesmith.core.io import atomic_write, read_text_if_exists
from pipesmith.idempotency import (
    FileMarkerStore,
    IdempotencyGate,
    MarkerStore,
    compute_config_hash,
)
from pipesmith.merge.merger import MergeResult, MergeStatus, PipelineMerger
from pipesmith.templates.jobs import TEMPLATE_VERSION

__all__ = [
    "GenerationOutcome",
    "generate_pipeline",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationOutcome:
    """What generate_pipeline() did.

    Attributes:
        path: Pipeline file path.
        config_hash: Hash of configuration and template version.
        result: Merge result, or None when skipped.
        written: Whether the pipeline file was written.
        skipped: Whether the idempotency gate skipped the merge.

    """

    path: Path
    config_hash: str
    result: MergeResult | None
    written: bool
    skipped: bool


def _read_existing(path: Path) -> str | None:
    try:
        return read_text_if_exists(path)
    except UnicodeDecodeError as e:
        raise ParseError(f"Pipeline file {path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise ParseError(f"Cannot read pipeline file {path}: {e}") from e


def generate_pipeline(
    project_root: Path,
    config: PipelineConfig,
    *,
    output_path: Path | None = None,
    force: bool = False,
    dry_run: bool = False,
    marker_store: MarkerStore | None = None,
) -> GenerationOutcome:
    """Generate the pipeline for a project.

    Args:
        project_root: Project directory.
        config: Validated configuration.
        output_path: Pipeline file (default .github/workflows/pipeline.yml
            under project_root). Relative paths resolve against project_root.
        force: Regenerate even if the idempotency marker matches.
        dry_run: Merge but write neither the pipeline nor the marker.
        marker_store: Marker storage (default .pipesmith-cache file).

    Returns:
        GenerationOutcome describing what happened.

    Raises:
        ParseError: If the existing pipeline cannot be read or parsed.
        MergeConflict: If the existing pipeline has an incompatible shape.
        WriteError: If the pipeline or marker cannot be written.

    """
    path = output_path if output_path is not None else DEFAULT_PIPELINE_PATH
    if not path.is_absolute():
        path = project_root / path
    store = marker_store if marker_store is not None else FileMarkerStore(
        project_root / MARKER_FILE_NAME
    )
    gate = IdempotencyGate(store, enabled=config.rebuild.enabled)

    config_hash = compute_config_hash(config, TEMPLATE_VERSION)
    if not gate.should_regenerate(
        config_hash,
        pipeline_exists=path.exists(),
        force=force or config.rebuild.force_regenerate,
    ):
        logger.info("Configuration unchanged since last run, skipping %s", path)
        return GenerationOutcome(path, config_hash, None, written=False, skipped=True)

    existing = _read_existing(path)
    result = PipelineMerger(config).merge(existing)

    if result.status is MergeStatus.UNCHANGED:
        logger.info("Pipeline %s is up to date", path)
        return GenerationOutcome(path, config_hash, result, written=False, skipped=False)

    if dry_run:
        logger.info("Dry run: %s would be %s", path, result.status.value)
        return GenerationOutcome(path, config_hash, result, written=False, skipped=False)

    try:
        atomic_write(path, result.yaml_text)
    except OSError as e:
        raise WriteError(path, f"Cannot write pipeline {path}: {e}") from e
    gate.record(config_hash, result.status)
    logger.info("Wrote %s (%s)", path, result.status.value)
    return GenerationOutcome(path, config_hash, result, written=True, skipped=False)

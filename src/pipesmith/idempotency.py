"""Skip regeneration when configuration and templates have not changed.

The gate compares a SHA-256 hash of (configuration, template version) with
the marker stored by the previous successful run. The marker is a single
hash string kept in a file at the project root.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Protocol

from pipesmith.core.config.models import PipelineConfig
from pipesmith.core.exceptions import WriteError
from pipesmith.core.io import atomic_write, read_text_if_exists
from pipesmith.merge.merger import MergeStatus

__all__ = [
    "FileMarkerStore",
    "IdempotencyGate",
    "MarkerStore",
    "compute_config_hash",
    "should_regenerate",
]

logger = logging.getLogger(__name__)


def compute_config_hash(config: PipelineConfig, template_version: str) -> str:
    """Hash configuration and template version.

    Domain order is kept (it drives job order), so reordering domains
    produces a different hash.

    Args:
        config: Validated configuration.
        template_version: Version of the job templates.

    Returns:
        Hex SHA-256 digest.

    """
    payload = {
        "config": config.model_dump(mode="json", by_alias=True),
        "templateVersion": template_version,
    }
    encoded = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def should_regenerate(
    config_hash: str,
    stored_marker: str | None,
    *,
    force: bool = False,
    pipeline_exists: bool = True,
) -> bool:
    """Decide whether the merge has to run.

    Returns:
        True if forced, if there is no pipeline file yet, or if the hash
        differs from the stored marker.

    """
    if force:
        return True
    if not pipeline_exists:
        return True
    return config_hash != stored_marker


class MarkerStore(Protocol):
    """Storage for the single idempotency marker value."""

    def read(self) -> str | None: ...

    def write(self, value: str) -> None: ...


class FileMarkerStore:
    """Marker kept as a one-line text file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def read(self) -> str | None:
        """Return the stored hash, or None if missing or unreadable."""
        try:
            content = read_text_if_exists(self.path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Ignoring unreadable marker %s: %s", self.path, e)
            return None
        if content is None:
            return None
        return content.strip() or None

    def write(self, value: str) -> None:
        """Store the hash.

        Raises:
            WriteError: If the file cannot be written.

        """
        try:
            atomic_write(self.path, value + "\n")
        except OSError as e:
            raise WriteError(self.path, f"Cannot write marker {self.path}: {e}") from e


class IdempotencyGate:
    """Decides whether to regenerate and records successful runs."""

    def __init__(self, store: MarkerStore, enabled: bool = True) -> None:
        """Initialize the gate.

        Args:
            store: Where the marker is kept.
            enabled: When False every run regenerates.

        """
        self.store = store
        self.enabled = enabled

    def should_regenerate(
        self, config_hash: str, *, pipeline_exists: bool, force: bool = False
    ) -> bool:
        """Check the stored marker against config_hash."""
        if not self.enabled:
            logger.debug("Idempotency check disabled, regenerating")
            return True
        decision = should_regenerate(
            config_hash,
            self.store.read(),
            force=force,
            pipeline_exists=pipeline_exists,
        )
        logger.debug("Regenerate: %s (hash %s)", decision, config_hash[:12])
        return decision

    def record(self, config_hash: str, status: MergeStatus) -> None:
        """Update the marker after a merge that produced new output."""
        if status is MergeStatus.UNCHANGED:
            logger.debug("Pipeline unchanged, marker left as-is")
            return
        self.store.write(config_hash)

"""Shared constants for configuration modules."""

from pathlib import Path

# Candidate configuration file names, searched in order at the project root
CONFIG_FILE_NAMES: tuple[str, ...] = (
    ".pipesmithrc.yaml",
    ".pipesmithrc.yml",
    ".pipesmithrc.json",
)
MAX_CONFIG_SIZE: int = 1_048_576  # 1MB - protection against YAML bombs

# Generated pipeline location, relative to the project root
DEFAULT_PIPELINE_PATH: Path = Path(".github") / "workflows" / "pipeline.yml"

# Single-value idempotency marker, relative to the project root
MARKER_FILE_NAME: str = ".pipesmith-cache"

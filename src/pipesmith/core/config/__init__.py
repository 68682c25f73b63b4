"""Pydantic configuration models and file loading for pipesmith.

Usage:
    from pipesmith.core.config import load_project_config

    config = load_project_config(Path("."))
    print(config.branch_flow)  # ["develop", "main"]
"""

from pipesmith.core.config.constants import (
    CONFIG_FILE_NAMES,
    DEFAULT_PIPELINE_PATH,
    MARKER_FILE_NAME,
    MAX_CONFIG_SIZE,
)
from pipesmith.core.config.loaders import (
    find_config,
    load_config,
    load_config_data,
    load_project_config,
)
from pipesmith.core.config.models import DomainConfig, PipelineConfig, RebuildConfig

__all__ = [
    "CONFIG_FILE_NAMES",
    "DEFAULT_PIPELINE_PATH",
    "MARKER_FILE_NAME",
    "MAX_CONFIG_SIZE",
    "DomainConfig",
    "PipelineConfig",
    "RebuildConfig",
    "find_config",
    "load_config",
    "load_config_data",
    "load_project_config",
]

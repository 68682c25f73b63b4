"""Configuration file discovery and loading."""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from pipesmith.core.config.constants import CONFIG_FILE_NAMES, MAX_CONFIG_SIZE
from pipesmith.core.config.models import PipelineConfig
from pipesmith.core.exceptions import ConfigError, ConfigValidationError

logger = logging.getLogger(__name__)


def find_config(project_root: Path) -> Path | None:
    """Locate the configuration file for a project.

    Args:
        project_root: Directory to search.

    Returns:
        Path of the first candidate that exists, or None.

    """
    for name in CONFIG_FILE_NAMES:
        candidate = project_root / name
        if candidate.is_file():
            logger.debug("Found configuration at %s", candidate)
            return candidate
    return None


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load and parse a YAML (or JSON) file with safety checks.

    Args:
        path: Path to the configuration file.

    Returns:
        Parsed content as dictionary.

    Raises:
        ConfigError: If file cannot be read or decoded, is too large, is empty,
            is a directory, or YAML is invalid.

    """
    try:
        # Read with size limit instead of stat-then-read
        with path.open("r", encoding="utf-8") as f:
            content = f.read(MAX_CONFIG_SIZE + 1)

        if len(content) > MAX_CONFIG_SIZE:
            raise ConfigError(
                f"Config file {path} exceeds 1MB limit "
                f"(read {len(content):,} bytes before stopping)."
            )

        parsed = yaml.safe_load(content)

        if parsed is None:
            raise ConfigError(
                f"Config file {path} is empty or contains only whitespace. "
                f"At minimum, 'branchFlow' must be present."
            )

        if not isinstance(parsed, dict):
            raise ConfigError(
                f"Config file {path} must contain a YAML mapping, got {type(parsed).__name__}."
            )

        return parsed
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid UTF-8: {e}") from e
    except IsADirectoryError as e:
        raise ConfigError(f"{path} is a directory, not a config file.") from e
    except PermissionError as e:
        raise ConfigError(f"Permission denied reading {path}: {e}") from e
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e


def load_config_data(data: dict[str, Any], source: str = "<dict>") -> PipelineConfig:
    """Validate raw configuration data.

    Args:
        data: Parsed configuration mapping.
        source: Where the data came from, for error messages.

    Returns:
        Validated, frozen PipelineConfig.

    Raises:
        ConfigValidationError: If the data does not match the schema.

    """
    try:
        return PipelineConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid configuration in {source}:\n{e}") from e


def load_config(path: Path) -> PipelineConfig:
    """Load and validate a configuration file.

    Args:
        path: Path to a .pipesmithrc.(yaml|yml|json) file.

    Returns:
        Validated, frozen PipelineConfig.

    Raises:
        ConfigError: If the file cannot be read or parsed.
        ConfigValidationError: If the content does not match the schema.

    """
    data = _load_yaml_file(path)
    config = load_config_data(data, source=str(path))
    logger.debug(
        "Loaded configuration from %s: %d branches, %d domains",
        path,
        len(config.branch_flow),
        len(config.domains),
    )
    return config


def load_project_config(project_root: Path, config_path: Path | None = None) -> PipelineConfig:
    """Load configuration for a project, searching the default names.

    Args:
        project_root: Project directory.
        config_path: Explicit configuration file, overriding discovery.

    Returns:
        Validated PipelineConfig.

    Raises:
        ConfigError: If no configuration file is found or it is invalid.

    """
    path = config_path if config_path is not None else find_config(project_root)
    if path is None:
        raise ConfigError(
            f"No configuration file found in {project_root}. "
            f"Expected one of: {', '.join(CONFIG_FILE_NAMES)}"
        )
    return load_config(path)

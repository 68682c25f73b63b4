"""Pytest configuration and fixtures for pipesmith tests."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from pipesmith.core.config import PipelineConfig, load_config_data

BASE_CONFIG: dict[str, Any] = {
    "branchFlow": ["develop", "main"],
    "domains": {"api": {"paths": ["src/api/**"]}},
}


@pytest.fixture
def make_config() -> Callable[..., PipelineConfig]:
    """Factory building a PipelineConfig from the api/develop->main setup."""

    def _make(**overrides: Any) -> PipelineConfig:
        return load_config_data({**BASE_CONFIG, **overrides})

    return _make


@pytest.fixture
def config(make_config: Callable[..., PipelineConfig]) -> PipelineConfig:
    """Minimal configuration: one testable domain, two branches."""
    return make_config()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Project directory with a YAML configuration file."""
    (tmp_path / ".pipesmithrc.yaml").write_text(
        "branchFlow: [develop, main]\n"
        "domains:\n"
        "  api:\n"
        "    paths: ['src/api/**']\n"
    )
    return tmp_path

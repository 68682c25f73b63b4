"""Pydantic configuration models for pipeline generation.

The merge core receives a PipelineConfig only after it has been fully
validated; every model is frozen so the value cannot change underneath a
merge.
"""

import re
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Domain names become job-name suffixes (test-<domain>, deploy-<domain>)
DOMAIN_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_-]*$")


class DomainConfig(BaseModel):
    """A named slice of the repository that gets its own test/deploy jobs.

    Attributes:
        paths: Glob patterns matching files that belong to the domain.
        description: Human-readable purpose, used in generated comments.
        testable: Generate a test-<domain> job.
        deployable: Generate a deploy-<domain> job.

    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    paths: list[str] = Field(
        min_length=1,
        description="Glob patterns matching files in this domain",
    )
    description: str = Field(
        default="",
        description="Human-readable description of the domain",
    )
    testable: bool = Field(
        default=True,
        description="Whether a test job is generated for this domain",
    )
    deployable: bool = Field(
        default=False,
        description="Whether a deploy job is generated for this domain",
    )

    @field_validator("paths")
    @classmethod
    def _paths_not_blank(cls, value: list[str]) -> list[str]:
        if any(not p.strip() for p in value):
            raise ValueError("path patterns must not be blank")
        return value


class RebuildConfig(BaseModel):
    """Idempotency behaviour.

    Attributes:
        enabled: Skip regeneration when config and templates are unchanged.
        force_regenerate: Always regenerate, as if --force were given.

    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    enabled: bool = True
    force_regenerate: bool = Field(default=False, alias="forceRegenerate")


class PipelineConfig(BaseModel):
    """Root configuration for pipeline generation.

    Attributes:
        branch_flow: Promotion order of branches, initial branch first.
        domains: Domain definitions in the order their jobs are emitted.
        versioning: Generate a version job between domain jobs and tag.
        runs_on: Runner label used by every generated job.
        rebuild: Idempotency behaviour.

    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    branch_flow: list[str] = Field(
        alias="branchFlow",
        min_length=2,
        description="Ordered list of branches from initial to final",
    )
    domains: dict[str, DomainConfig] = Field(
        default_factory=dict,
        description="Domain definitions keyed by name",
    )
    versioning: bool = Field(
        default=False,
        description="Generate a version calculation job",
    )
    runs_on: str = Field(
        default="ubuntu-latest",
        alias="runsOn",
        description="Runner label for generated jobs",
    )
    rebuild: RebuildConfig = Field(default_factory=RebuildConfig)

    @field_validator("branch_flow")
    @classmethod
    def _branch_names_valid(cls, value: list[str]) -> list[str]:
        if any(not name.strip() for name in value):
            raise ValueError("branch names must not be blank")
        if len(set(value)) != len(value):
            raise ValueError(f"branch names must be distinct, got {value}")
        return value

    @field_validator("domains")
    @classmethod
    def _domain_names_valid(cls, value: dict[str, DomainConfig]) -> dict[str, DomainConfig]:
        for name in value:
            if not DOMAIN_NAME_PATTERN.match(name):
                raise ValueError(
                    f"domain name '{name}' must match {DOMAIN_NAME_PATTERN.pattern}"
                )
        return value

    @model_validator(mode="after")
    def _runs_on_not_blank(self) -> Self:
        if not self.runs_on.strip():
            raise ValueError("runsOn must not be blank")
        return self

    @property
    def initial_branch(self) -> str:
        """First branch of the flow (feature branches merge here)."""
        return self.branch_flow[0]

    @property
    def final_branch(self) -> str:
        """Last branch of the flow (production)."""
        return self.branch_flow[-1]

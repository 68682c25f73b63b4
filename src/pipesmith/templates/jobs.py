"""Rendering of the generator-owned parts of the pipeline.

PipelineTemplates turns a PipelineConfig into plain Python data: the header
operations (name, run-name, triggers) and one body per owned job, in
canonical stage order. Bodies are rebuilt from configuration on every run
and always replace whatever the existing document holds for that job.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from ruamel.yaml.scalarstring import DoubleQuotedScalarString

from pipesmith.core.config.models import DomainConfig, PipelineConfig
from pipesmith.merge.operations import Operation, PathOperation

__all__ = [
    "TEMPLATE_VERSION",
    "PipelineTemplates",
    "RenderedJob",
]

logger = logging.getLogger(__name__)

# Bump whenever rendered output changes so idempotency markers go stale
TEMPLATE_VERSION = "1.0.0"

CHECKOUT_ACTION = "actions/checkout@v4"
COMMIT_REF = "${{ inputs.commitSha || github.sha }}"

_RULE = "=" * 77

_WORKFLOW_INPUTS = (
    ("version", "The version to deploy"),
    ("baseRef", "The base reference for comparison"),
    ("run_number", "The original run number from the initial branch"),
    ("commitSha", "The exact commit SHA to checkout and test"),
)


def _banner(title: str, *body: str) -> str:
    return "\n".join((_RULE, title, _RULE, *body))


def _quote(name: str) -> str:
    return f"'{name}'"


@dataclass(frozen=True)
class RenderedJob:
    """An owned job rendered from configuration.

    Attributes:
        name: Job key under jobs.
        body: Job definition as plain data.
        comment: Banner comment placed above the job, if any.
        space_before: Emit a blank line before the banner.

    """

    name: str
    body: dict[str, Any]
    comment: str | None = None
    space_before: bool = False


class PipelineTemplates:
    """Render the owned parts of a pipeline for one configuration."""

    def __init__(self, config: PipelineConfig) -> None:
        self.config = config

    # -------------------------------------------------------------------------
    # Naming
    # -------------------------------------------------------------------------

    def _test_jobs(self) -> list[str]:
        return [f"test-{name}" for name, d in self.config.domains.items() if d.testable]

    def _deploy_jobs(self) -> list[str]:
        return [f"deploy-{name}" for name, d in self.config.domains.items() if d.deployable]

    def owned_job_names(self) -> list[str]:
        """Owned job names implied by the configuration, in canonical order."""
        names = ["changes"]
        for name, domain in self.config.domains.items():
            if domain.testable:
                names.append(f"test-{name}")
            if domain.deployable:
                names.append(f"deploy-{name}")
        if self.config.versioning:
            names.append("version")
        names.extend(["tag", "promote", "release"])
        return names

    @property
    def _version_expr(self) -> str:
        if self.config.versioning:
            return "needs.version.outputs.version"
        return "inputs.version"

    def _checkout(self, **extra: Any) -> dict[str, Any]:
        return {"uses": CHECKOUT_ACTION, "with": {"ref": COMMIT_REF, **extra}}

    # -------------------------------------------------------------------------
    # Header
    # -------------------------------------------------------------------------

    def header_operations(self) -> list[PathOperation]:
        """Operations for the workflow name, run name and triggers.

        name and run-name are only created when missing so users can rename
        the workflow. Trigger inputs and branch lists are always reset.
        """
        flow = self.config.branch_flow
        branch_list = ",".join(flow)
        run_name = (
            "${{ github.event_name == 'pull_request' && "
            f"!contains('{branch_list}', github.head_ref) && "
            "github.event.pull_request.title || github.ref_name }} "
            "#${{ inputs.run_number || github.run_number }}"
            "${{ inputs.version && format(' - {0}', inputs.version) || '' }}"
        )

        ops = [
            PathOperation("name", Operation.PRESERVE, DoubleQuotedScalarString("Pipeline")),
            PathOperation(
                "run-name",
                Operation.PRESERVE,
                DoubleQuotedScalarString(run_name),
                space_before=True,
            ),
            PathOperation("on", Operation.PRESERVE, {}, space_before=True),
        ]
        for trigger in ("workflow_dispatch", "workflow_call"):
            for key, description in _WORKFLOW_INPUTS:
                ops.append(
                    PathOperation(
                        f"on.{trigger}.inputs.{key}",
                        Operation.SET,
                        {"description": description, "required": False, "type": "string"},
                    )
                )
        ops.extend(
            [
                PathOperation("on.push.branches", Operation.SET, list(flow)),
                PathOperation(
                    "on.pull_request.types",
                    Operation.SET,
                    ["opened", "synchronize", "reopened"],
                ),
                PathOperation("on.pull_request.branches", Operation.SET, [flow[0]]),
                PathOperation("jobs", Operation.PRESERVE, {}, space_before=True),
            ]
        )
        return ops

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    def owned_jobs(self) -> list[RenderedJob]:
        """Render every owned job in canonical stage order."""
        jobs = [self._changes()]
        first_domain_job = True
        for name, domain in self.config.domains.items():
            rendered = []
            if domain.testable:
                rendered.append(self._test(name, domain))
            if domain.deployable:
                rendered.append(self._deploy(name, domain))
            for job in rendered:
                if first_domain_job:
                    job = RenderedJob(
                        job.name,
                        job.body,
                        _banner(
                            "DOMAIN JOBS (managed by pipesmith - do not modify)",
                            "Test and deploy jobs for each configured domain.",
                        ),
                        space_before=True,
                    )
                    first_domain_job = False
                jobs.append(job)
        if self.config.versioning:
            jobs.append(self._version())
        jobs.extend([self._tag(), self._promote(), self._release()])
        logger.debug("Rendered %d owned jobs", len(jobs))
        return jobs

    def _changes(self) -> RenderedJob:
        filters = "".join(
            f"{name}:\n" + "".join(f"  - {json.dumps(p)}\n" for p in domain.paths)
            for name, domain in self.config.domains.items()
        )
        detect: dict[str, Any] = {
            "uses": "./.github/actions/detect-changes",
            "id": "detect",
            "with": {
                "baseRef": f"${{{{ inputs.baseRef || '{self.config.final_branch}' }}}}",
            },
        }
        if filters:
            detect["with"]["filters"] = filters
        body: dict[str, Any] = {
            "runs-on": self.config.runs_on,
            "steps": [self._checkout(**{"fetch-depth": 0}), detect],
        }
        if self.config.domains:
            body["outputs"] = {
                name: f"${{{{ steps.detect.outputs.{name} }}}}" for name in self.config.domains
            }
        return RenderedJob(
            "changes",
            body,
            _banner(
                "CHANGES DETECTION (managed by pipesmith - do not modify)",
                "Detects which domains changed using path filters.",
            ),
        )

    def _test(self, name: str, domain: DomainConfig) -> RenderedJob:
        label = domain.description or name
        return RenderedJob(
            f"test-{name}",
            {
                "needs": "changes",
                "if": f"${{{{ needs.changes.outputs.{name} == 'true' }}}}",
                "runs-on": self.config.runs_on,
                "steps": [
                    self._checkout(),
                    {
                        "name": f"Run {name} tests",
                        "run": (
                            f'echo "Running tests for {label}"\n'
                            f'echo "Replace this step with the {name} test command"\n'
                        ),
                    },
                ],
            },
        )

    def _deploy(self, name: str, domain: DomainConfig) -> RenderedJob:
        needs = ["changes"]
        conditions = ["always()", f"needs.changes.outputs.{name} == 'true'"]
        if domain.testable:
            needs.append(f"test-{name}")
            conditions.append(f"needs.test-{name}.result == 'success'")
        if self.config.versioning:
            needs.append("version")
            conditions.append("needs.version.result == 'success'")
        return RenderedJob(
            f"deploy-{name}",
            {
                "needs": needs,
                "if": f"${{{{ {' && '.join(conditions)} }}}}",
                "runs-on": self.config.runs_on,
                "steps": [
                    self._checkout(),
                    {
                        "name": f"Deploy {name}",
                        "run": (
                            f'echo "Deploying {name} ${{{{ {self._version_expr} }}}}"\n'
                            f'echo "Replace this step with the {name} deploy command"\n'
                        ),
                    },
                ],
            },
        )

    def _version(self) -> RenderedJob:
        tests = self._test_jobs()
        conditions = ["always()", "github.event_name != 'pull_request'"]
        conditions.extend(f"needs.{job}.result != 'failure'" for job in tests)
        return RenderedJob(
            "version",
            {
                "needs": ["changes", *tests],
                "if": f"${{{{ {' && '.join(conditions)} }}}}",
                "runs-on": self.config.runs_on,
                "steps": [
                    self._checkout(**{"fetch-depth": 0}),
                    {
                        "uses": "./.github/actions/calculate-version",
                        "id": "version",
                        "with": {
                            "baseRef": (
                                f"${{{{ inputs.baseRef || '{self.config.final_branch}' }}}}"
                            ),
                            "commitSha": COMMIT_REF,
                        },
                    },
                ],
                "outputs": {"version": "${{ steps.version.outputs.version }}"},
            },
            _banner(
                "VERSIONING (managed by pipesmith - do not modify)",
                "Calculates the next semantic version from conventional commits.",
            ),
            space_before=True,
        )

    def _stage_needs(self, *extra: str) -> list[str]:
        needs = ["version"] if self.config.versioning else []
        return [*needs, *extra]

    def _tag(self) -> RenderedJob:
        deploys = self._deploy_jobs()
        conditions = [
            "always()",
            "github.event_name != 'pull_request'",
            f"github.ref_name == {_quote(self.config.initial_branch)}",
            f"{self._version_expr} != ''",
        ]
        if self.config.versioning:
            conditions.append("needs.version.result == 'success'")
        if deploys:
            conditions.append(
                "(" + " && ".join(f"needs.{job}.result != 'failure'" for job in deploys) + ")"
            )
        return RenderedJob(
            "tag",
            {
                "if": f"${{{{ {' && '.join(conditions)} }}}}",
                "needs": self._stage_needs("changes", *deploys),
                "runs-on": self.config.runs_on,
                "steps": [
                    self._checkout(),
                    {
                        "uses": "./.github/actions/create-tag",
                        "with": {
                            "version": f"${{{{ {self._version_expr} }}}}",
                            "commitSha": COMMIT_REF,
                        },
                    },
                ],
            },
            _banner(
                "TAG & PROMOTE (managed by pipesmith - do not modify)",
                "Creates git tags and promotes code through the branch flow.",
            ),
            space_before=True,
        )

    def _next_branch_expr(self) -> str:
        """Expression mapping the current branch to the next one in the flow."""
        flow = self.config.branch_flow
        if len(flow) == 2:
            return _quote(flow[1])
        pairs = [
            f"github.ref_name == {_quote(current)} && {_quote(following)}"
            for current, following in zip(flow, flow[1:])
        ]
        return " || ".join(pairs) + " || ''"

    def _promote(self) -> RenderedJob:
        promotable = " || ".join(
            f"github.ref_name == {_quote(b)}" for b in self.config.branch_flow[:-1]
        )
        conditions = [
            "always()",
            "(github.event_name == 'push' || github.event_name == 'workflow_dispatch')",
            f"{self._version_expr} != ''",
            "(needs.tag.result == 'success' || needs.tag.result == 'skipped')",
            f"({promotable})",
        ]
        return RenderedJob(
            "promote",
            {
                "if": f"${{{{ {' && '.join(conditions)} }}}}",
                "needs": self._stage_needs("tag"),
                "runs-on": self.config.runs_on,
                "steps": [
                    self._checkout(),
                    {
                        "uses": "./.github/actions/promote-branch",
                        "with": {
                            "version": f"${{{{ {self._version_expr} }}}}",
                            "currentBranch": "${{ github.ref_name }}",
                            "nextBranch": f"${{{{ {self._next_branch_expr()} }}}}",
                            "runNumber": "${{ github.run_number }}",
                        },
                    },
                ],
            },
        )

    def _release(self) -> RenderedJob:
        conditions = [
            "always()",
            f"github.ref_name == {_quote(self.config.final_branch)}",
            f"{self._version_expr} != ''",
            "needs.tag.result == 'success'",
        ]
        return RenderedJob(
            "release",
            {
                "if": f"${{{{ {' && '.join(conditions)} }}}}",
                "needs": self._stage_needs("tag"),
                "runs-on": self.config.runs_on,
                "steps": [
                    self._checkout(),
                    {
                        "uses": "./.github/actions/create-release",
                        "with": {
                            "version": f"${{{{ {self._version_expr} }}}}",
                            "commitSha": COMMIT_REF,
                        },
                    },
                ],
            },
        )

"""Structural merge of generated jobs into an existing pipeline.

Algorithm for one configuration and optional existing text:

1. No existing text: render the header and every owned job into an empty
   document, in canonical stage order. Status is NEW.
2. Existing text: parse it and classify its jobs by name.
   a. overwrite every owned job the configuration implies
   b. delete owned jobs the configuration no longer implies
   c. preserve every user job untouched
   d. reorder jobs: owned in canonical order, then user jobs in their
      original relative order
3. Serialize. Output identical to the input is UNCHANGED, otherwise MERGED.

Any error aborts the merge before output is produced, so callers never see
a partially merged document.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from pipesmith.core.config.models import PipelineConfig
from pipesmith.document.model import DocumentModel
from pipesmith.document.nodes import Mapping
from pipesmith.merge.operations import Operation, PathOperation, apply_operations
from pipesmith.merge.ownership import JobEntry, Ownership, collect_jobs
from pipesmith.templates.jobs import PipelineTemplates

__all__ = [
    "MergeResult",
    "MergeStatus",
    "PipelineMerger",
    "recorded_domains",
]

logger = logging.getLogger(__name__)

JOBS_KEY = "jobs"


class MergeStatus(str, Enum):
    """Outcome of a merge."""

    NEW = "new"
    MERGED = "merged"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class MergeResult:
    """Result of PipelineMerger.merge().

    Attributes:
        status: What the merge did relative to the existing text.
        yaml_text: Serialized pipeline document.
        final_job_order: Job names in output order.

    """

    status: MergeStatus
    yaml_text: str
    final_job_order: tuple[str, ...]


def _job_path(name: str) -> str:
    return f"{JOBS_KEY}.{name}"


def recorded_domains(doc: DocumentModel) -> list[str]:
    """Domains the existing document was generated for.

    The generated changes job has one output per domain, so its output
    names tell which test-<domain>/deploy-<domain> jobs the previous run
    owned, even for domains that have since been removed.
    """
    outputs = doc.get((JOBS_KEY, "changes", "outputs"))
    return outputs.keys() if isinstance(outputs, Mapping) else []


class PipelineMerger:
    """Merge the generator-owned jobs of one configuration into a pipeline."""

    def __init__(self, config: PipelineConfig, templates: PipelineTemplates | None = None) -> None:
        """Initialize the merger.

        Args:
            config: Validated configuration.
            templates: Template renderer (defaults to one built from config).

        """
        self.config = config
        self.templates = templates or PipelineTemplates(config)

    def _owned_operations(self) -> list[PathOperation]:
        return [
            PathOperation(
                _job_path(job.name),
                Operation.OVERWRITE,
                job.body,
                comment=job.comment,
                space_before=job.space_before,
            )
            for job in self.templates.owned_jobs()
        ]

    def merge(self, existing_text: str | None = None) -> MergeResult:
        """Produce the pipeline for the configuration.

        Args:
            existing_text: Current pipeline text, or None if there is none.

        Returns:
            MergeResult with status, text and final job order.

        Raises:
            ParseError: If existing_text is not a valid YAML mapping.
            MergeConflict: If an operation addresses a path through a
                non-mapping node (for example a scalar jobs key).

        """
        if existing_text is None:
            return self._fresh()
        return self._merge_existing(existing_text)

    def _fresh(self) -> MergeResult:
        doc = DocumentModel()
        apply_operations(doc, self.templates.header_operations())
        apply_operations(doc, self._owned_operations())
        order = tuple(doc.keys(JOBS_KEY))
        logger.info("Generated new pipeline with %d jobs", len(order))
        return MergeResult(MergeStatus.NEW, doc.serialize(), order)

    def classify_existing(self, doc: DocumentModel) -> list[JobEntry]:
        """Classify the jobs of an existing document.

        Jobs of domains the document was generated for but that are no
        longer configured count as owned, so a merge removes them.

        Args:
            doc: Parsed pipeline document.

        Returns:
            JobEntry per job, in document order.

        """
        domains = list(self.config.domains)
        domains.extend(d for d in recorded_domains(doc) if d not in self.config.domains)
        return collect_jobs(doc.get(JOBS_KEY), domains)

    def _merge_existing(self, existing_text: str) -> MergeResult:
        doc = DocumentModel.parse(existing_text)
        jobs = self.classify_existing(doc)
        desired = self.templates.owned_job_names()
        desired_set = set(desired)

        apply_operations(doc, self.templates.header_operations())
        apply_operations(doc, self._owned_operations())
        for name in desired:
            logger.debug("Overwrote owned job %s", name)

        stale = [j for j in jobs if j.ownership is Ownership.OWNED and j.name not in desired_set]
        for job in stale:
            doc.delete(_job_path(job.name))
            logger.info("Removed stale job %s", job.name)

        user_jobs = sorted(
            (j for j in jobs if j.ownership is Ownership.USER),
            key=lambda j: j.original_index,
        )
        apply_operations(doc, [self._preserve(job) for job in user_jobs])
        for job in user_jobs:
            logger.debug("Preserved user job %s", job.name)

        doc.reorder_mapping(JOBS_KEY, [*desired, *(j.name for j in user_jobs)])

        text = doc.serialize()
        status = MergeStatus.UNCHANGED if text == existing_text else MergeStatus.MERGED
        order = tuple(doc.keys(JOBS_KEY))
        logger.info(
            "Merged pipeline: %s (%d owned, %d user, %d removed)",
            status.value,
            len(desired),
            len(user_jobs),
            len(stale),
        )
        return MergeResult(status, text, order)

    @staticmethod
    def _preserve(job: JobEntry) -> PathOperation:
        return PathOperation(_job_path(job.name), Operation.PRESERVE, job.body)

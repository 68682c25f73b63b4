"""Ownership classification of pipeline jobs.

A job is owned by the generator when its name is one of the canonical stage
names or has the form <prefix>-<domain> for a configured domain. Everything
else belongs to the user. Only names are inspected, never job bodies, so a
user job that happens to be named like an owned one (test-api with domain
api configured) is classified as owned and gets overwritten.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from pipesmith.document.nodes import Mapping, Node

__all__ = [
    "CANONICAL_STAGE_JOBS",
    "DOMAIN_JOB_PREFIXES",
    "Classification",
    "JobEntry",
    "Ownership",
    "classify",
    "collect_jobs",
    "is_owned",
]

CANONICAL_STAGE_JOBS = ("changes", "version", "tag", "promote", "release")
DOMAIN_JOB_PREFIXES = ("test", "deploy")


class Ownership(str, Enum):
    """Who is the source of truth for a job."""

    OWNED = "owned"
    USER = "user"


@dataclass(frozen=True)
class JobEntry:
    """A job of an existing document, as seen before the merge.

    Attributes:
        name: Job key.
        body: Job definition.
        ownership: Classification of the name.
        original_index: Position in the jobs mapping before the merge.

    """

    name: str
    body: Node
    ownership: Ownership
    original_index: int


@dataclass(frozen=True)
class Classification:
    """Result of classify()."""

    owned: frozenset[str]
    user: frozenset[str]


def is_owned(name: str, domains: Iterable[str]) -> bool:
    """True when name is a canonical stage or <prefix>-<domain> job."""
    if name in CANONICAL_STAGE_JOBS:
        return True
    prefix, sep, domain = name.partition("-")
    return bool(sep) and prefix in DOMAIN_JOB_PREFIXES and domain in set(domains)


def classify(job_names: Iterable[str], domains: Iterable[str]) -> Classification:
    """Split job names into owned and user sets.

    Args:
        job_names: Names of the jobs to classify.
        domains: Currently configured domain names.

    Returns:
        Classification with disjoint owned and user sets.

    """
    domain_set = frozenset(domains)
    owned: set[str] = set()
    user: set[str] = set()
    for name in job_names:
        (owned if is_owned(name, domain_set) else user).add(name)
    return Classification(owned=frozenset(owned), user=frozenset(user))


def collect_jobs(jobs: Node | None, domains: Iterable[str]) -> list[JobEntry]:
    """Enumerate the jobs mapping of a document.

    Args:
        jobs: Node found at the jobs key (anything but a mapping yields
            no jobs).
        domains: Currently configured domain names.

    Returns:
        JobEntry per job, in document order.

    """
    if not isinstance(jobs, Mapping):
        return []
    classification = classify(jobs.keys(), domains)
    return [
        JobEntry(
            name=entry.key,
            body=entry.value,
            ownership=(
                Ownership.OWNED if entry.key in classification.owned else Ownership.USER
            ),
            original_index=index,
        )
        for index, entry in enumerate(jobs.entries)
    ]

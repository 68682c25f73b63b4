"""Templates for the generator-owned parts of the pipeline."""

from pipesmith.templates.jobs import TEMPLATE_VERSION, PipelineTemplates, RenderedJob

__all__ = [
    "TEMPLATE_VERSION",
    "PipelineTemplates",
    "RenderedJob",
]

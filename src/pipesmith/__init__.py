"""pipesmith - regenerate CI pipeline definitions without losing hand-written jobs."""

__version__ = "0.1.0"

"""Typer CLI entry point for pipesmith.

This module only parses arguments and delegates to the generator and
merge modules - no business logic here.
"""

import logging
from pathlib import Path

import typer

from pipesmith.cli_utils import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    _error,
    _info,
    _setup_logging,
    _success,
    _validate_project_path,
    _warning,
    console,
)
from pipesmith.core.config import DEFAULT_PIPELINE_PATH, PipelineConfig, load_project_config
from pipesmith.core.exceptions import ConfigError, ParseError, PipesmithError
from pipesmith.core.io import read_text_if_exists
from pipesmith.document.model import DocumentModel
from pipesmith.generator import generate_pipeline
from pipesmith.merge.merger import MergeStatus, PipelineMerger
from pipesmith.merge.ownership import Ownership
from pipesmith.templates.jobs import PipelineTemplates

logger = logging.getLogger(__name__)


app = typer.Typer(
    name="pipesmith",
    help="Generate and safely regenerate CI pipelines from a domain/branch configuration",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Generate and safely regenerate CI pipelines."""
    if ctx.invoked_subcommand is None:
        raise typer.Exit()


def _load(project_path: Path, config: str | None) -> PipelineConfig:
    config_path = Path(config) if config else None
    if config_path is not None and not config_path.is_absolute():
        config_path = Path.cwd() / config_path
    return load_project_config(project_path, config_path)


def _resolve_output(project_path: Path, output: str | None) -> Path:
    path = Path(output) if output else DEFAULT_PIPELINE_PATH
    return path if path.is_absolute() else project_path / path


@app.command()
def generate(
    project: str = typer.Option(
        ".",
        "--project",
        "-p",
        help="Path to the project directory",
    ),
    config: str | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file (defaults to .pipesmithrc.* in the project)",
    ),
    output: str | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Pipeline file to write (defaults to .github/workflows/pipeline.yml)",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Regenerate even if configuration is unchanged since the last run",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Show what would be done without writing files",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug output (show detailed logging)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output (only show errors and final result)",
    ),
) -> None:
    """Generate or regenerate the pipeline.

    Jobs managed by pipesmith are rewritten from configuration; any other
    job in the existing file is kept exactly as written.

    Examples:
        pipesmith generate                  # Current directory
        pipesmith generate -p ./my-project  # Specific project
        pipesmith generate --dry-run        # Preview without writing

    """
    _setup_logging(verbose, quiet)
    project_path = _validate_project_path(project)

    try:
        loaded = _load(project_path, config)
        outcome = generate_pipeline(
            project_path,
            loaded,
            output_path=_resolve_output(project_path, output),
            force=force,
            dry_run=dry_run,
        )
    except ConfigError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None
    except PipesmithError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None

    if outcome.skipped or outcome.result is None:
        _info(f"Configuration unchanged, skipped {outcome.path} (use --force to regenerate)")
        return

    result = outcome.result
    if dry_run and result.status is not MergeStatus.UNCHANGED:
        console.print("[yellow]Dry run - no changes made.[/yellow]")
    _success(f"Pipeline {result.status.value}: {outcome.path}")
    if not quiet:
        console.print(f"  Jobs: {', '.join(result.final_job_order)}")


@app.command()
def validate(
    project: str = typer.Option(
        ".",
        "--project",
        "-p",
        help="Path to the project directory",
    ),
    config: str | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file (defaults to .pipesmithrc.* in the project)",
    ),
) -> None:
    """Validate the configuration and show the jobs it generates."""
    project_path = _validate_project_path(project)
    try:
        loaded = _load(project_path, config)
    except ConfigError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None

    _success("Configuration is valid")
    console.print(f"[bold]Branch flow:[/bold] {' -> '.join(loaded.branch_flow)}")
    console.print(f"[bold]Domains:[/bold] {', '.join(loaded.domains) or '(none)'}")
    console.print(
        f"[bold]Owned jobs:[/bold] {', '.join(PipelineTemplates(loaded).owned_job_names())}"
    )


@app.command()
def jobs(
    project: str = typer.Option(
        ".",
        "--project",
        "-p",
        help="Path to the project directory",
    ),
    config: str | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file (defaults to .pipesmithrc.* in the project)",
    ),
    output: str | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Pipeline file to inspect (defaults to .github/workflows/pipeline.yml)",
    ),
) -> None:
    """List the jobs of the existing pipeline as owned or user jobs."""
    project_path = _validate_project_path(project)
    try:
        loaded = _load(project_path, config)
    except ConfigError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None

    path = _resolve_output(project_path, output)
    try:
        text = read_text_if_exists(path)
        if text is None:
            _warning(f"No pipeline file at {path}")
            return
        doc = DocumentModel.parse(text)
    except (OSError, UnicodeDecodeError) as e:
        _error(f"Cannot read {path}: {e}")
        raise typer.Exit(code=EXIT_ERROR) from None
    except ParseError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None

    for job in PipelineMerger(loaded).classify_existing(doc):
        style = "cyan" if job.ownership is Ownership.OWNED else "green"
        console.print(f"  [{style}]{job.ownership.value:<5}[/{style}] {job.name}")


if __name__ == "__main__":
    app()

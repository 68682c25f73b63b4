"""Shared CLI helpers: console, exit codes, logging setup, message output."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2

console = Console()


def _setup_logging(verbose: bool, quiet: bool) -> None:
    """Configure root logging with a Rich handler.

    Args:
        verbose: Show DEBUG messages (wins over quiet).
        quiet: Only show warnings and errors.

    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def _error(message: str) -> None:
    console.print(f"[red]Error:[/red] {message}")


def _success(message: str) -> None:
    console.print(f"[green]{message}[/green]")


def _warning(message: str) -> None:
    console.print(f"[yellow]Warning:[/yellow] {message}")


def _info(message: str) -> None:
    console.print(f"[dim]{message}[/dim]")


def _validate_project_path(project: str) -> Path:
    """Resolve and check the --project directory.

    Raises:
        typer.Exit: With EXIT_ERROR if the path is missing or not a directory.

    """
    project_path = Path(project).resolve()
    if not project_path.exists():
        _error(f"Project directory does not exist: {project_path}")
        raise typer.Exit(code=EXIT_ERROR)
    if not project_path.is_dir():
        _error(f"Path is not a directory: {project_path}")
        raise typer.Exit(code=EXIT_ERROR)
    return project_path

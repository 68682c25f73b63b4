"""Tests for the pipesmith CLI."""

import logging
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from pipesmith.cli import app
from pipesmith.cli_utils import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    EXIT_SUCCESS,
    _error,
    _setup_logging,
    _success,
    _warning,
    console,
)
from pipesmith.core.config import DEFAULT_PIPELINE_PATH

runner = CliRunner()


# =============================================================================
# Test: Helpers
# =============================================================================


class TestExitCodes:
    def test_values(self) -> None:
        assert (EXIT_SUCCESS, EXIT_ERROR, EXIT_CONFIG_ERROR) == (0, 1, 2)


class TestOutputHelpers:
    def test_error_is_red(self) -> None:
        with patch.object(console, "print") as mock_print:
            _error("bad thing")
        message = mock_print.call_args[0][0]
        assert "[red]" in message
        assert "bad thing" in message

    def test_success_is_green(self) -> None:
        with patch.object(console, "print") as mock_print:
            _success("done")
        assert "[green]" in mock_print.call_args[0][0]

    def test_warning_is_yellow(self) -> None:
        with patch.object(console, "print") as mock_print:
            _warning("careful")
        assert "[yellow]" in mock_print.call_args[0][0]


class TestLoggingSetup:
    def test_verbose_sets_debug(self) -> None:
        _setup_logging(verbose=True, quiet=False)
        assert logging.getLogger().level == logging.DEBUG

    def test_quiet_sets_warning(self) -> None:
        _setup_logging(verbose=False, quiet=True)
        assert logging.getLogger().level == logging.WARNING

    def test_default_is_info(self) -> None:
        _setup_logging(verbose=False, quiet=False)
        assert logging.getLogger().level == logging.INFO

    def test_verbose_wins_over_quiet(self) -> None:
        _setup_logging(verbose=True, quiet=True)
        assert logging.getLogger().level == logging.DEBUG


# =============================================================================
# Test: generate
# =============================================================================


class TestGenerateCommand:
    def test_generates_pipeline(self, project: Path) -> None:
        result = runner.invoke(app, ["generate", "-p", str(project)])
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert "new" in result.output
        assert (project / DEFAULT_PIPELINE_PATH).exists()

    def test_second_run_is_skipped(self, project: Path) -> None:
        runner.invoke(app, ["generate", "-p", str(project)])
        result = runner.invoke(app, ["generate", "-p", str(project)])
        assert result.exit_code == EXIT_SUCCESS
        assert "skipped" in result.output

    def test_force_reports_unchanged(self, project: Path) -> None:
        runner.invoke(app, ["generate", "-p", str(project)])
        result = runner.invoke(app, ["generate", "-p", str(project), "--force"])
        assert result.exit_code == EXIT_SUCCESS
        assert "unchanged" in result.output

    def test_dry_run(self, project: Path) -> None:
        result = runner.invoke(app, ["generate", "-p", str(project), "--dry-run"])
        assert result.exit_code == EXIT_SUCCESS
        assert "Dry run" in result.output
        assert not (project / DEFAULT_PIPELINE_PATH).exists()

    def test_custom_output(self, project: Path) -> None:
        result = runner.invoke(app, ["generate", "-p", str(project), "-o", "ci/pipe.yml"])
        assert result.exit_code == EXIT_SUCCESS
        assert (project / "ci" / "pipe.yml").exists()

    def test_missing_config_exits_with_config_error(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["generate", "-p", str(tmp_path)])
        assert result.exit_code == EXIT_CONFIG_ERROR

    def test_invalid_config_exits_with_config_error(self, tmp_path: Path) -> None:
        (tmp_path / ".pipesmithrc.yaml").write_text("branchFlow: [main]\n")
        result = runner.invoke(app, ["generate", "-p", str(tmp_path)])
        assert result.exit_code == EXIT_CONFIG_ERROR

    def test_undecodable_config_exits_with_config_error(self, tmp_path: Path) -> None:
        (tmp_path / ".pipesmithrc.yaml").write_bytes(b"branchFlow: [\xff, main]\n")
        result = runner.invoke(app, ["generate", "-p", str(tmp_path)])
        assert result.exit_code == EXIT_CONFIG_ERROR

    def test_broken_pipeline_exits_with_error(self, project: Path) -> None:
        path = project / DEFAULT_PIPELINE_PATH
        path.parent.mkdir(parents=True)
        path.write_text("jobs: [broken\n")
        result = runner.invoke(app, ["generate", "-p", str(project)])
        assert result.exit_code == EXIT_ERROR
        assert path.read_text() == "jobs: [broken\n"

    def test_missing_project_dir(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["generate", "-p", str(tmp_path / "nope")])
        assert result.exit_code == EXIT_ERROR


# =============================================================================
# Test: validate / jobs
# =============================================================================


class TestValidateCommand:
    def test_valid(self, project: Path) -> None:
        result = runner.invoke(app, ["validate", "-p", str(project)])
        assert result.exit_code == EXIT_SUCCESS
        assert "test-api" in result.output

    def test_explicit_config_path(self, project: Path, tmp_path_factory) -> None:
        other = tmp_path_factory.mktemp("cfg") / "custom.yaml"
        other.write_text("branchFlow: [a, b]\n")
        result = runner.invoke(app, ["validate", "-p", str(project), "-c", str(other)])
        assert result.exit_code == EXIT_SUCCESS
        assert "a -> b" in result.output

    def test_invalid(self, tmp_path: Path) -> None:
        (tmp_path / ".pipesmithrc.yaml").write_text("domains: 3\n")
        result = runner.invoke(app, ["validate", "-p", str(tmp_path)])
        assert result.exit_code == EXIT_CONFIG_ERROR


class TestJobsCommand:
    def test_lists_ownership(self, project: Path) -> None:
        path = project / DEFAULT_PIPELINE_PATH
        path.parent.mkdir(parents=True)
        path.write_text("jobs:\n  changes:\n    x: 1\n  custom-lint:\n    x: 2\n")
        result = runner.invoke(app, ["jobs", "-p", str(project)])
        assert result.exit_code == EXIT_SUCCESS
        assert "owned" in result.output
        assert "custom-lint" in result.output

    def test_removed_domain_jobs_listed_as_owned(self, project: Path) -> None:
        config_file = project / ".pipesmithrc.yaml"
        config_file.write_text(
            "branchFlow: [develop, main]\n"
            "domains:\n"
            "  api: {paths: ['src/api/**']}\n"
            "  web: {paths: ['src/web/**']}\n"
        )
        runner.invoke(app, ["generate", "-p", str(project)])
        config_file.write_text("branchFlow: [develop, main]\ndomains:\n  api: {paths: ['src/api/**']}\n")

        result = runner.invoke(app, ["jobs", "-p", str(project)])

        assert result.exit_code == EXIT_SUCCESS
        assert "owned test-web" in result.output
        assert "user  test-web" not in result.output

    def test_no_pipeline(self, project: Path) -> None:
        result = runner.invoke(app, ["jobs", "-p", str(project)])
        assert result.exit_code == EXIT_SUCCESS
        assert "No pipeline file" in result.output

"""Command-line surface: flag parsing, exit codes and final reporting."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from ai_git import __version__
from ai_git.cli.app import app
from ai_git.errors import UserCancelled
from ai_git.workflow.workflow import CLIOptions, WorkflowOutput

runner = CliRunner()


@pytest.fixture
def workflow():
    with patch("ai_git.cli.app.build_actors", return_value=MagicMock()), patch(
        "ai_git.cli.app.configure_logging"
    ), patch("ai_git.cli.app.run_workflow", new_callable=AsyncMock) as mocked:
        mocked.return_value = WorkflowOutput()
        yield mocked


def options_of(mocked: AsyncMock) -> CLIOptions:
    workflow_input = mocked.call_args.args[0]
    return workflow_input.options


def test_version_flag():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"ai-git {__version__}" in result.stdout


def test_no_flags_runs_interactive_workflow(workflow):
    result = runner.invoke(app, [])

    assert result.exit_code == 0
    options = options_of(workflow)
    assert options == CLIOptions()
    assert options.is_interactive_mode
    assert workflow.call_args.args[0].version == __version__


def test_flags_map_onto_options(workflow):
    result = runner.invoke(
        app,
        ["-a", "-c", "-p", "-P", "codex", "-M", "gpt-5", "-H", "ticket ABC-1", "-x", "dist/", "-x", "*.log", "--dry-run"],
    )

    assert result.exit_code == 0
    assert options_of(workflow) == CLIOptions(
        provider="codex",
        model="gpt-5",
        stage_all=True,
        commit=True,
        push=True,
        hint="ticket ABC-1",
        exclude=("dist/", "*.log"),
        dry_run=True,
    )


def test_setup_init_and_auto_approve_flags(workflow):
    runner.invoke(app, ["--setup"])
    assert options_of(workflow).setup is True

    runner.invoke(app, ["--init"])
    assert options_of(workflow).init is True

    runner.invoke(app, ["--dangerously-auto-approve"])
    options = options_of(workflow)
    assert options.dangerously_auto_approve is True
    assert not options.is_interactive_mode


def test_error_and_suggestion_are_printed_with_exit_code(workflow):
    workflow.return_value = WorkflowOutput(exit_code=1, error="Commit failed: hook rejected", suggestion="Fix the hook.")

    result = runner.invoke(app, ["-c"])

    assert result.exit_code == 1
    assert "Error: Commit failed: hook rejected" in result.stdout
    assert "Fix the hook." in result.stdout


def test_notice_is_printed_on_success(workflow):
    workflow.return_value = WorkflowOutput(notice="No remote configured; skipping push.")

    result = runner.invoke(app, ["-p"])

    assert result.exit_code == 0
    assert "No remote configured; skipping push." in result.stdout


def test_interrupted_exit_code_is_passed_through(workflow):
    workflow.return_value = WorkflowOutput(exit_code=130)

    assert runner.invoke(app, []).exit_code == 130


def test_escaped_cancellation_exits_one(workflow):
    workflow.side_effect = UserCancelled()

    result = runner.invoke(app, [])

    assert result.exit_code == 1
    assert "Cancelled." in result.stdout


def test_keyboard_interrupt_outside_countdown_exits_one(workflow):
    workflow.side_effect = KeyboardInterrupt

    result = runner.invoke(app, ["-c"])

    assert result.exit_code == 1
    assert "Cancelled." in result.stdout


def test_unknown_flag_is_a_usage_error(workflow):
    result = runner.invoke(app, ["--frobnicate"])

    assert result.exit_code == 2
    workflow.assert_not_called()

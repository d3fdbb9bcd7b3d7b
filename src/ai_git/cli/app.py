"""ai-git command-line entry point."""

from __future__ import annotations

import asyncio
from typing import List, Optional

import typer
from rich.console import Console

from ai_git import __version__
from ai_git.errors import UserCancelled
from ai_git.logging_setup import configure_logging
from ai_git.workflow.wiring import build_actors
from ai_git.workflow.workflow import EXIT_ERROR, CLIOptions, WorkflowInput, WorkflowOutput, run_workflow

console = Console()

app = typer.Typer(
    name="ai-git",
    help="Generate Conventional Commits messages for staged changes with an AI model.",
    add_completion=False,
    no_args_is_help=False,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"ai-git {__version__}")
        raise typer.Exit()


def report(output: WorkflowOutput) -> None:
    """Print the final error, suggestion or notice of a workflow run."""
    if output.error:
        console.print(f"[red]Error:[/red] {output.error}", highlight=False)
        if output.suggestion:
            console.print(f"[dim]{output.suggestion}[/dim]", highlight=False)
    if output.notice:
        console.print(f"[yellow]{output.notice}[/yellow]")


@app.command()
def run(
    provider: Optional[str] = typer.Option(None, "--provider", "-P", help="Provider id to use for this run"),
    model: Optional[str] = typer.Option(None, "--model", "-M", help="Model id to use for this run"),
    stage_all: bool = typer.Option(False, "--stage-all", "-a", help="Stage all changes without asking"),
    commit: bool = typer.Option(False, "--commit", "-c", help="Commit without the review menu"),
    push: bool = typer.Option(False, "--push", "-p", help="Push after committing"),
    hint: Optional[str] = typer.Option(None, "--hint", "-H", help="Extra context for the model"),
    exclude: Optional[List[str]] = typer.Option(
        None, "--exclude", "-x", help="Path, directory/ or glob to leave unstaged with --stage-all (repeatable)"
    ),
    dangerously_auto_approve: bool = typer.Option(
        False,
        "--dangerously-auto-approve",
        help="Stage, commit and push without any review (implies -a -c -p)",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the prompts instead of calling the model"),
    setup: bool = typer.Option(False, "--setup", help="Run the provider setup wizard"),
    init: bool = typer.Option(False, "--init", help="Create a project config for this repository"),
    debug: bool = typer.Option(False, "--debug", help="Show state-machine transitions and tracebacks"),
    version: bool = typer.Option(
        False, "--version", "-v", callback=_version_callback, is_eager=True, help="Show the version and exit"
    ),
):
    """Stage, generate, review, commit and push in one step."""
    configure_logging(debug=debug)
    options = CLIOptions(
        provider=provider,
        model=model,
        stage_all=stage_all,
        commit=commit,
        push=push,
        dangerously_auto_approve=dangerously_auto_approve,
        hint=hint,
        exclude=tuple(exclude or ()),
        dry_run=dry_run,
        setup=setup,
        init=init,
    )
    actors = build_actors(console)

    try:
        output = asyncio.run(run_workflow(WorkflowInput(options=options, version=__version__), actors))
    except (UserCancelled, KeyboardInterrupt):
        # the auto-approve countdown reports its own interrupt as exit 130
        console.print("\n[yellow]Cancelled.[/yellow]")
        raise typer.Exit(EXIT_ERROR)

    report(output)
    raise typer.Exit(output.exit_code)


def main():
    app()


if __name__ == "__main__":
    main()

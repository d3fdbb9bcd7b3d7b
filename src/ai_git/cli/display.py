"""Rich rendering of workflow output and the model-call spinner."""

from __future__ import annotations

import asyncio
import logging

from rich.console import Console, Group
from rich.panel import Panel
from rich.rule import Rule
from rich.status import Status
from rich.table import Table
from rich.text import Text

from ai_git.config import ResolvedConfig
from ai_git.core.git import CommitResult
from ai_git.core.validation import Severity, ValidationResult
from ai_git.providers import ModelAdapter
from ai_git.update_check import UpdateCheckResult

logger = logging.getLogger(__name__)

_SEVERITY_STYLE = {
    Severity.CRITICAL: "red",
    Severity.IMPORTANT: "yellow",
    Severity.MINOR: "dim",
}

_FILE_STATUS_STYLE = {
    "A": ("green", "+"),
    "D": ("red", "-"),
    "R": ("yellow", "→"),
}


class RichDisplay:
    """Display actor writing to a rich Console."""

    def __init__(self, console: Console):
        self.console = console

    def info(self, message: str) -> None:
        self.console.print(f"[cyan]{message}[/cyan]")

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def warn(self, message: str) -> None:
        self.console.print(f"[yellow]{message}[/yellow]")

    def error(self, message: str, suggestion: str | None = None) -> None:
        self.console.print(f"[red]Error:[/red] {message}", highlight=False)
        if suggestion:
            self.console.print(f"[dim]{suggestion}[/dim]", highlight=False)

    def show_welcome(self, version: str, config: ResolvedConfig | None) -> None:
        lines = [f"[bold cyan]ai-git[/bold cyan] [dim]v{version}[/dim]"]
        if config is not None:
            lines.append(f"[dim]Provider:[/dim] {config.provider.name} [dim]({config.provider.mode})[/dim]")
            lines.append(f"[dim]Model:[/dim] {config.model_name}")
        self.console.print(Panel("\n".join(lines), border_style="cyan", expand=False))

    def show_update(self, result: UpdateCheckResult) -> None:
        if not result.update_available:
            return
        self.console.print(
            f"[yellow]Update available:[/yellow] {result.current_version} → "
            f"[bold]{result.latest_version}[/bold]  [dim]Run: pip install -U ai-git[/dim]"
        )

    def show_message(self, message: str, validation: ValidationResult | None) -> None:
        body: list = [Text(message)]
        if validation is not None and validation.errors:
            notes = Table.grid(padding=(0, 1))
            notes.add_column()
            notes.add_column()
            for issue in validation.errors:
                style = _SEVERITY_STYLE[issue.severity]
                notes.add_row(Text(f"[{issue.severity}]", style=style), Text(issue.message, style=style))
            body.extend([Text(""), notes])
        border = "green" if validation is None or validation.valid else "yellow"
        self.console.print(Panel(Group(*body), title="Commit message", border_style=border, padding=(1, 2)))

    def show_commit_result(self, result: CommitResult) -> None:
        header = Text.assemble(
            ("Committed ", "bold green"),
            (result.hash, "bold"),
            (" on ", ""),
            (result.branch, "cyan"),
        )
        if result.is_root:
            header.append(" (root commit)", style="dim")
        stats = Text.assemble(
            (f"{result.files_changed} file(s) changed, ", ""),
            (f"{result.insertions} insertion(s)(+)", "green"),
            (", ", ""),
            (f"{result.deletions} deletion(s)(-)", "red"),
        )
        rows: list = [header, Text(result.subject), stats]
        for changed in result.files:
            style, marker = _FILE_STATUS_STYLE.get(changed.status, ("", " "))
            rows.append(Text(f"  {marker} {changed.path}", style=style))
        self.console.print(Panel(Group(*rows), border_style="green", expand=False))

    def show_dry_run(self, system_prompt: str, user_prompt: str) -> None:
        self.console.print(Rule("[bold]System prompt[/bold]"))
        self.console.print(system_prompt, markup=False, highlight=False)
        self.console.print(Rule("[bold]User prompt[/bold]"))
        self.console.print(user_prompt, markup=False, highlight=False)
        self.console.print(Rule())
        self.console.print("[dim]Dry run: no model was called and nothing was committed.[/dim]")


class SpinnerModelInvoker:
    """Runs a model call under a spinner, flagging calls slower than the threshold."""

    def __init__(self, console: Console):
        self.console = console

    async def _warn_when_slow(self, status: Status, model_name: str, delay: float) -> None:
        await asyncio.sleep(delay)
        status.update(f"[yellow]{model_name} is taking longer than usual...[/yellow]")
        logger.debug("Model call exceeded %.1fs", delay)

    async def invoke(
        self,
        adapter: ModelAdapter,
        *,
        model: str,
        model_name: str,
        system_prompt: str,
        user_prompt: str,
        slow_threshold_ms: int,
    ) -> str:
        with self.console.status(f"Generating commit message with {model_name}...") as status:
            timer = None
            if slow_threshold_ms > 0:
                timer = asyncio.create_task(self._warn_when_slow(status, model_name, slow_threshold_ms / 1000))
            try:
                return await adapter.invoke(model, system_prompt, user_prompt)
            finally:
                if timer is not None:
                    timer.cancel()


__all__ = ["RichDisplay", "SpinnerModelInvoker"]

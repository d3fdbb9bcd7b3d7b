"""Terminal implementation of the PromptSurface actor contract."""

from __future__ import annotations

from typing import Callable, Sequence

import click
import typer
from rich.console import Console

from ai_git.cli import ui
from ai_git.errors import UserCancelled
from ai_git.workflow.actors import Choice


class RichPromptSurface:
    """Prompts built on readchar/rich widgets and typer's line prompts.

    Every way of dismissing a prompt (Esc, Ctrl+C, end of input) surfaces as
    :class:`UserCancelled`.
    """

    def __init__(self, console: Console):
        self.console = console

    def select(self, message: str, choices: Sequence[Choice], default: str | None = None) -> str:
        return ui.select_with_arrows(choices, message, default=default, console=self.console)

    def multiselect(self, message: str, choices: Sequence[Choice]) -> list[str]:
        return ui.multi_select_with_arrows(choices, message, console=self.console)

    def confirm(self, message: str, default: bool = True) -> bool:
        try:
            return typer.confirm(message, default=default)
        except click.exceptions.Abort as exc:
            raise UserCancelled() from exc

    def text(
        self,
        message: str,
        *,
        default: str | None = None,
        validate: Callable[[str], str | None] | None = None,
    ) -> str:
        while True:
            try:
                value = typer.prompt(
                    message,
                    default=default,
                    show_default=bool(default),
                )
            except click.exceptions.Abort as exc:
                raise UserCancelled() from exc
            value = str(value)
            problem = validate(value) if validate else None
            if problem is None:
                return value
            self.console.print(f"[red]{problem}[/red]")

    def edit(self, text: str, editor: str | None = None) -> str | None:
        return click.edit(text, editor=editor, extension=".txt", require_save=True)

    def countdown(self, message: str, seconds: int) -> None:
        ui.countdown(message, seconds, console=self.console)


__all__ = ["RichPromptSurface"]

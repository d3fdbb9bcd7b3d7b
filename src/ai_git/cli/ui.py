"""Reusable UI helpers for ai-git terminal interactions."""

from __future__ import annotations

import os
import sys
import time
from typing import List, Optional, Sequence

import readchar
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from ai_git.errors import UserCancelled
from ai_git.workflow.actors import Choice


def get_key() -> str:
    """Get a single keypress in a cross-platform way using readchar."""
    key = readchar.readkey()

    if key == readchar.key.UP or key == readchar.key.CTRL_P:
        return "up"
    if key == readchar.key.DOWN or key == readchar.key.CTRL_N:
        return "down"

    if key == readchar.key.ENTER:
        return "enter"

    if key == readchar.key.ESC or key == "\x1b":
        return "escape"

    if key == readchar.key.CTRL_C:
        raise KeyboardInterrupt

    return key


def _resolve_console(console: Optional[Console]) -> Console:
    return console or Console()


def _label(choice: Choice) -> str:
    if choice.hint:
        return f"[cyan]{choice.label}[/cyan] [dim]({choice.hint})[/dim]"
    return f"[cyan]{choice.label}[/cyan]"


def select_with_arrows(
    choices: Sequence[Choice],
    prompt_text: str = "Select an option",
    default: str | None = None,
    console: Console | None = None,
) -> str:
    """
    Interactive selection using arrow keys with Rich Live display.
    """
    console = _resolve_console(console)
    values = [choice.value for choice in choices]
    if not values:
        raise ValueError("select_with_arrows needs at least one choice")
    selected_index = values.index(default) if default in values else 0

    def create_selection_panel():
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan", justify="left", width=3)
        table.add_column(style="white", justify="left")

        for i, choice in enumerate(choices):
            table.add_row("▶" if i == selected_index else " ", _label(choice))

        table.add_row("", "")
        table.add_row("", "[dim]Use ↑/↓ to navigate, Enter to select, Esc to cancel[/dim]")

        return Panel(
            table,
            title=f"[bold]{prompt_text}[/bold]",
            border_style="cyan",
            padding=(1, 2),
        )

    console.print()

    with Live(create_selection_panel(), console=console, transient=True, auto_refresh=False) as live:
        while True:
            try:
                key = get_key()
            except KeyboardInterrupt:
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise UserCancelled()
            if key == "up":
                selected_index = (selected_index - 1) % len(values)
            elif key == "down":
                selected_index = (selected_index + 1) % len(values)
            elif key == "enter":
                break
            elif key == "escape":
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise UserCancelled()

            live.update(create_selection_panel(), refresh=True)

    chosen = choices[selected_index]
    console.print(f"[dim]{prompt_text}[/dim] {chosen.label}")
    return chosen.value


def multi_select_with_arrows(
    choices: Sequence[Choice],
    prompt_text: str = "Select options",
    default_values: Optional[List[str]] = None,
    console: Console | None = None,
) -> List[str]:
    """Select zero or more options using arrow keys + space to toggle."""

    console = _resolve_console(console)
    values = [choice.value for choice in choices]
    selected_indices: set[int] = {values.index(v) for v in default_values or [] if v in values}
    cursor_index = 0

    def build_panel():
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan", justify="left", width=3)
        table.add_column(style="white", justify="left")

        for i, choice in enumerate(choices):
            indicator = "[cyan]☑" if i in selected_indices else "[bright_black]☐"
            pointer = "▶" if i == cursor_index else " "
            table.add_row(pointer, f"{indicator} {_label(choice)}")

        table.add_row("", "")
        table.add_row(
            "",
            "[dim]Use ↑/↓ to move, Space to toggle, a to toggle all, Enter to confirm, Esc to cancel[/dim]",
        )

        return Panel(table, title=f"[bold]{prompt_text}[/bold]", border_style="cyan", padding=(1, 2))

    if not values:
        return []

    console.print()

    with Live(build_panel(), console=console, transient=True, auto_refresh=False) as live:
        while True:
            try:
                key = get_key()
            except KeyboardInterrupt:
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise UserCancelled()
            if key == "up":
                cursor_index = (cursor_index - 1) % len(values)
            elif key == "down":
                cursor_index = (cursor_index + 1) % len(values)
            elif key in (" ", readchar.key.SPACE):
                selected_indices ^= {cursor_index}
            elif key == "a":
                selected_indices = set() if len(selected_indices) == len(values) else set(range(len(values)))
            elif key == "enter":
                return [values[i] for i in range(len(values)) if i in selected_indices]
            elif key == "escape":
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise UserCancelled()

            live.update(build_panel(), refresh=True)


def _countdown_panel(message: str, remaining: int) -> Panel:
    return Panel(
        f"{message}\n\n[bold]Starting in {remaining}s[/bold] [dim](any key to start now, Ctrl+C to abort)[/dim]",
        border_style="yellow",
        padding=(1, 2),
    )


def _countdown_tty(message: str, seconds: int, console: Console) -> None:
    import select
    import termios
    import tty

    fd = sys.stdin.fileno()
    saved = termios.tcgetattr(fd)
    try:
        # cbreak keeps ISIG, so Ctrl+C still raises KeyboardInterrupt
        tty.setcbreak(fd)
        with Live(_countdown_panel(message, seconds), console=console, transient=True, auto_refresh=False) as live:
            for remaining in range(seconds, 0, -1):
                live.update(_countdown_panel(message, remaining), refresh=True)
                ready, _, _ = select.select([sys.stdin], [], [], 1.0)
                if ready:
                    sys.stdin.read(1)
                    return
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


def countdown(message: str, seconds: int, console: Console | None = None) -> None:
    """Wait ``seconds`` before an unattended run; Ctrl+C raises UserCancelled."""
    console = _resolve_console(console)
    try:
        if os.name == "posix" and sys.stdin.isatty():
            _countdown_tty(message, seconds, console)
        else:
            console.print(f"[yellow]{message}[/yellow]")
            for remaining in range(seconds, 0, -1):
                console.print(f"[dim]Starting in {remaining}s (Ctrl+C to abort)[/dim]")
                time.sleep(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted.[/yellow]")
        raise UserCancelled("Countdown interrupted.")


__all__ = [
    "get_key",
    "select_with_arrows",
    "multi_select_with_arrows",
    "countdown",
]

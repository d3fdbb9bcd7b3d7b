"""Assemble the production actors for one CLI process."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ai_git.cli.display import RichDisplay, SpinnerModelInvoker
from ai_git.cli.prompts import RichPromptSurface
from ai_git.config import FileConfigStore
from ai_git.core.git import SubprocessGitClient
from ai_git.core.preflight import require_git_repository
from ai_git.providers import get_adapter
from ai_git.update_check import check_for_update
from ai_git.workflow.actors import Actors


def build_actors(console: Console, cwd: Path | None = None) -> Actors:
    root = cwd or Path.cwd()
    return Actors(
        git=SubprocessGitClient(cwd=root),
        prompts=RichPromptSurface(console),
        display=RichDisplay(console),
        config_store=FileConfigStore(cwd=root),
        invoker=SpinnerModelInvoker(console),
        adapter_for=get_adapter,
        check_repository=lambda: require_git_repository(root),
        check_update=check_for_update,
    )


__all__ = ["build_actors"]

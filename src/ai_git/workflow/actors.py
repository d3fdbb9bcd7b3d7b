"""Actor contracts and the dependency container threaded through workflows.

Every side effect a workflow performs goes through one of these
collaborators. Production implementations are assembled once by
``ai_git.workflow.wiring.build_actors``; tests pass fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Protocol, Sequence

from ai_git.config import ConfigResolution, ConfigTarget, ResolvedConfig, UserConfig
from ai_git.core.git import CommitResult, GitClient
from ai_git.core.validation import ValidationResult
from ai_git.providers import ModelAdapter
from ai_git.update_check import UpdateCheckResult

if TYPE_CHECKING:
    from ai_git.workflow.generation import GenerationInput, GenerationOutput
    from ai_git.workflow.init import InitOutput
    from ai_git.workflow.push import PushInput, PushOutput
    from ai_git.workflow.setup_wizard import SetupWizardInput, SetupWizardOutput
    from ai_git.workflow.staging import StagingInput, StagingOutput


@dataclass(frozen=True)
class Choice:
    """One option of a select or multi-select prompt."""

    value: str
    label: str
    hint: str | None = None


class PromptSurface(Protocol):
    """Interactive prompts; every cancellation raises ``UserCancelled``."""

    def select(self, message: str, choices: Sequence[Choice], default: str | None = None) -> str: ...

    def multiselect(self, message: str, choices: Sequence[Choice]) -> list[str]: ...

    def confirm(self, message: str, default: bool = True) -> bool: ...

    def text(
        self,
        message: str,
        *,
        default: str | None = None,
        validate: Callable[[str], str | None] | None = None,
    ) -> str: ...

    def edit(self, text: str, editor: str | None = None) -> str | None: ...

    def countdown(self, message: str, seconds: int) -> None: ...


class Display(Protocol):
    """Non-interactive terminal output."""

    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...

    def error(self, message: str, suggestion: str | None = None) -> None: ...

    def show_welcome(self, version: str, config: ResolvedConfig | None) -> None: ...

    def show_update(self, result: UpdateCheckResult) -> None: ...

    def show_message(self, message: str, validation: ValidationResult | None) -> None: ...

    def show_commit_result(self, result: CommitResult) -> None: ...

    def show_dry_run(self, system_prompt: str, user_prompt: str) -> None: ...


class ModelInvoker(Protocol):
    """Runs a model call with progress feedback."""

    async def invoke(
        self,
        adapter: ModelAdapter,
        *,
        model: str,
        model_name: str,
        system_prompt: str,
        user_prompt: str,
        slow_threshold_ms: int,
    ) -> str: ...


class ConfigStore(Protocol):
    def load_user(self) -> UserConfig | None: ...

    def load_project(self) -> UserConfig | None: ...

    def save(self, target: ConfigTarget, config: UserConfig) -> Path: ...

    def resolve(self, provider: str | None = None, model: str | None = None) -> ConfigResolution: ...


@dataclass
class Actors:
    """Every collaborator a workflow may call, built once per process."""

    git: GitClient
    prompts: PromptSurface
    display: Display
    config_store: ConfigStore
    invoker: ModelInvoker
    adapter_for: Callable[[str], ModelAdapter | None]
    check_repository: Callable[[], Any]
    check_update: Callable[[str], Awaitable[UpdateCheckResult]]


@dataclass
class NestedWorkflows:
    """Child orchestrators as opaque actors of the top-level workflow."""

    staging: Callable[["StagingInput"], Awaitable["StagingOutput"]]
    generation: Callable[["GenerationInput"], Awaitable["GenerationOutput"]]
    push: Callable[["PushInput"], Awaitable["PushOutput"]]
    setup: Callable[["SetupWizardInput"], Awaitable["SetupWizardOutput"]]
    init: Callable[[], Awaitable["InitOutput"]]

    @classmethod
    def from_actors(cls, actors: Actors) -> "NestedWorkflows":
        from ai_git.workflow.generation import run_generation
        from ai_git.workflow.init import run_init
        from ai_git.workflow.push import run_push
        from ai_git.workflow.setup_wizard import run_setup_wizard
        from ai_git.workflow.staging import run_staging

        return cls(
            staging=lambda data: run_staging(data, actors),
            generation=lambda data: run_generation(data, actors),
            push=lambda data: run_push(data, actors),
            setup=lambda data: run_setup_wizard(data, actors),
            init=lambda: run_init(actors),
        )


__all__ = [
    "Choice",
    "PromptSurface",
    "Display",
    "ModelInvoker",
    "ConfigStore",
    "Actors",
    "NestedWorkflows",
]

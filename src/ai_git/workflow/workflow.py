"""Top-level ai-git workflow.

Sequences flag processing, optional init, configuration, first-run setup,
the auto-approve countdown, git and provider checks, then the staging,
generation and push workflows. Child workflows are opaque actors: only
their output records are read here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from ai_git.config import ConfigResolution, ConfigTarget, ResolvedConfig
from ai_git.errors import AiGitError, ConfigError, ProviderFailure
from ai_git.providers import Mode
from ai_git.workflow.actors import Actors, NestedWorkflows
from ai_git.workflow.generation import GenerationInput, GenerationOptions, GenerationOutput
from ai_git.workflow.init import InitOutput
from ai_git.workflow.machine import Cancelled, Done, Event, Failed, Machine, run_machine, unhandled
from ai_git.workflow.push import PushInput, PushOutput
from ai_git.workflow.setup_wizard import SetupWizardInput, SetupWizardOutput
from ai_git.workflow.staging import StagingInput, StagingOutput

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130
COUNTDOWN_SECONDS = 5
CLEAN_TREE_MESSAGE = "Nothing to commit, working tree clean."


class WorkflowStep(StrEnum):
    INIT = "init"
    LOAD_CONFIG = "load_config"
    WELCOME = "welcome"
    SETUP = "setup"
    ASK_CONTINUE = "ask_continue"
    RELOAD_CONFIG = "reload_config"
    COUNTDOWN = "countdown"
    CHECK_GIT = "check_git"
    CHECK_AVAILABILITY = "check_availability"
    STAGING = "staging"
    WARN_CLEAN_TREE = "warn_clean_tree"
    GENERATION = "generation"
    PUSH = "push"
    EXIT = "exit"


@dataclass(frozen=True)
class CLIOptions:
    provider: str | None = None
    model: str | None = None
    stage_all: bool = False
    commit: bool = False
    push: bool = False
    dangerously_auto_approve: bool = False
    hint: str | None = None
    exclude: tuple[str, ...] = ()
    dry_run: bool = False
    setup: bool = False
    init: bool = False

    @property
    def is_interactive_mode(self) -> bool:
        return not (self.commit or self.stage_all or self.push or self.dangerously_auto_approve)


@dataclass(frozen=True)
class WorkflowInput:
    options: CLIOptions = field(default_factory=CLIOptions)
    version: str = "0.0.0"


@dataclass(frozen=True)
class WorkflowContext:
    step: WorkflowStep
    options: CLIOptions
    version: str
    config: ResolvedConfig | None = None
    needs_setup: bool = False
    staged_files: tuple[str, ...] = ()
    committed: bool = False
    pushed: bool = False
    exit_code: int = EXIT_OK
    error: str | None = None
    suggestion: str | None = None
    notice: str | None = None


@dataclass(frozen=True)
class WorkflowOutput:
    exit_code: int = EXIT_OK
    error: str | None = None
    suggestion: str | None = None
    notice: str | None = None


def expand_flags(options: CLIOptions) -> CLIOptions:
    """``--dangerously-auto-approve`` implies stage-all, commit and push."""
    if options.dangerously_auto_approve:
        return replace(options, stage_all=True, commit=True, push=True)
    return options


def apply_config_defaults(options: CLIOptions, config: ResolvedConfig) -> CLIOptions:
    return replace(
        options,
        stage_all=options.stage_all or config.stage_all,
        commit=options.commit or config.commit,
        push=options.push or config.push,
    )


def _require_config(ctx: WorkflowContext) -> ResolvedConfig:
    if ctx.config is None:
        raise ConfigError("Configuration has not been resolved.", suggestion="Run `ai-git --setup`.")
    return ctx.config


def _exit(ctx: WorkflowContext, code: int, **changes: Any) -> WorkflowContext:
    return replace(ctx, step=WorkflowStep.EXIT, exit_code=code, **changes)


def _fail(ctx: WorkflowContext, error: BaseException) -> WorkflowContext:
    suggestion = error.suggestion if isinstance(error, AiGitError) else None
    return _exit(ctx, EXIT_ERROR, error=str(error), suggestion=suggestion)


def _after_config(ctx: WorkflowContext) -> WorkflowContext:
    if ctx.options.dangerously_auto_approve:
        return replace(ctx, step=WorkflowStep.COUNTDOWN)
    return replace(ctx, step=WorkflowStep.CHECK_GIT)


def _with_resolution(ctx: WorkflowContext, resolution: ConfigResolution) -> WorkflowContext:
    if resolution.needs_setup or resolution.config is None:
        return replace(ctx, needs_setup=True)
    return replace(
        ctx,
        config=resolution.config,
        needs_setup=False,
        options=apply_config_defaults(ctx.options, resolution.config),
    )


def initial_context(data: WorkflowInput) -> WorkflowContext:
    options = expand_flags(data.options)
    step = WorkflowStep.INIT if options.init else WorkflowStep.LOAD_CONFIG
    return WorkflowContext(step=step, options=options, version=data.version)


def transition(ctx: WorkflowContext, event: Event) -> WorkflowContext:
    """Pure top-level transition function."""
    step = ctx.step

    if step is WorkflowStep.INIT:
        if isinstance(event, Done):
            result: InitOutput = event.output
            if result.continue_run:
                return replace(ctx, step=WorkflowStep.LOAD_CONFIG)
            return _exit(ctx, result.exit_code)
        if isinstance(event, Failed):
            return _fail(ctx, event.error)
        return _exit(ctx, EXIT_ERROR, notice="Cancelled.")

    if step is WorkflowStep.LOAD_CONFIG:
        if isinstance(event, Done):
            return replace(_with_resolution(ctx, event.output), step=WorkflowStep.WELCOME)
        if isinstance(event, Failed):
            if ctx.options.setup:
                # --setup repairs a broken config
                logger.warning("Ignoring unusable configuration: %s", event.error)
                return replace(ctx, step=WorkflowStep.WELCOME, needs_setup=True)
            return _fail(ctx, event.error)

    if step is WorkflowStep.WELCOME:
        if isinstance(event, Failed):
            logger.debug("Welcome screen failed: %s", event.error)
        if ctx.options.setup or ctx.needs_setup:
            return replace(ctx, step=WorkflowStep.SETUP)
        return _after_config(ctx)

    if step is WorkflowStep.SETUP:
        if isinstance(event, Done):
            setup: SetupWizardOutput = event.output
            if not setup.completed:
                return _exit(ctx, EXIT_ERROR, error=setup.error, notice=None if setup.error else "Setup cancelled.")
            if ctx.options.setup:
                return _exit(ctx, EXIT_OK)
            return replace(ctx, step=WorkflowStep.ASK_CONTINUE)
        if isinstance(event, Failed):
            return _fail(ctx, event.error)
        return _exit(ctx, EXIT_ERROR, notice="Setup cancelled.")

    if step is WorkflowStep.ASK_CONTINUE:
        if isinstance(event, Done) and event.output:
            return replace(ctx, step=WorkflowStep.RELOAD_CONFIG)
        return _exit(ctx, EXIT_OK)

    if step is WorkflowStep.RELOAD_CONFIG:
        if isinstance(event, Done):
            reloaded = _with_resolution(ctx, event.output)
            if reloaded.needs_setup:
                return _exit(
                    reloaded,
                    EXIT_ERROR,
                    error="Configuration is incomplete.",
                    suggestion="Run `ai-git --setup`.",
                )
            return _after_config(reloaded)
        if isinstance(event, Failed):
            return _fail(ctx, event.error)

    if step is WorkflowStep.COUNTDOWN:
        if isinstance(event, Done):
            return replace(ctx, step=WorkflowStep.CHECK_GIT)
        if isinstance(event, Cancelled):
            return _exit(ctx, EXIT_INTERRUPTED, notice="Aborted.")
        return _fail(ctx, event.error)

    if step is WorkflowStep.CHECK_GIT:
        if isinstance(event, Done):
            next_step = WorkflowStep.STAGING if ctx.options.dry_run else WorkflowStep.CHECK_AVAILABILITY
            return replace(ctx, step=next_step)
        if isinstance(event, Failed):
            return _fail(ctx, event.error)

    if step is WorkflowStep.CHECK_AVAILABILITY:
        if isinstance(event, Done):
            return replace(ctx, step=WorkflowStep.STAGING)
        if isinstance(event, Failed):
            return _fail(ctx, event.error)

    if step is WorkflowStep.STAGING:
        if isinstance(event, Done):
            staging: StagingOutput = event.output
            if staging.aborted:
                return _exit(ctx, EXIT_ERROR, notice="Cancelled.")
            if not staging.staged_files:
                return replace(ctx, step=WorkflowStep.WARN_CLEAN_TREE)
            return replace(ctx, step=WorkflowStep.GENERATION, staged_files=tuple(staging.staged_files))
        if isinstance(event, Failed):
            return _fail(ctx, event.error)
        return _exit(ctx, EXIT_ERROR, notice="Cancelled.")

    if step is WorkflowStep.WARN_CLEAN_TREE:
        return _exit(ctx, EXIT_OK)

    if step is WorkflowStep.GENERATION:
        if isinstance(event, Done):
            generation: GenerationOutput = event.output
            if generation.aborted:
                return _exit(ctx, EXIT_ERROR, error=generation.error, notice=None if generation.error else "Cancelled.")
            if not generation.committed:
                return _exit(ctx, EXIT_OK)
            return replace(ctx, step=WorkflowStep.PUSH, committed=True)
        if isinstance(event, Failed):
            return _fail(ctx, event.error)
        return _exit(ctx, EXIT_ERROR, notice="Cancelled.")

    if step is WorkflowStep.PUSH:
        if isinstance(event, Done):
            push: PushOutput = event.output
            if push.exit_code != EXIT_OK:
                return _exit(ctx, push.exit_code, pushed=push.pushed, error=push.error_message)
            return _exit(ctx, EXIT_OK, pushed=push.pushed, notice=push.error_message)
        if isinstance(event, Failed):
            return _fail(ctx, event.error)
        return _exit(ctx, EXIT_ERROR, notice="Cancelled.")

    unhandled(event, step)


class WorkflowMachine(Machine[WorkflowContext, WorkflowOutput]):
    name = "workflow"
    final_steps = frozenset({WorkflowStep.EXIT})

    def __init__(self, data: WorkflowInput, actors: Actors, nested: NestedWorkflows | None = None):
        self.data = data
        self.actors = actors
        self.nested = nested or NestedWorkflows.from_actors(actors)

    def initial_state(self) -> WorkflowContext:
        return initial_context(self.data)

    def transition(self, state: WorkflowContext, event: Event) -> WorkflowContext:
        return transition(state, event)

    def _adapter(self, config: ResolvedConfig):
        adapter = self.actors.adapter_for(config.provider.id)
        if adapter is None:
            raise ConfigError(f"No adapter found for provider '{config.provider.id}'.")
        return adapter

    async def _check_availability(self, config: ResolvedConfig) -> bool:
        provider = config.provider
        if await self._adapter(config).check_available():
            return True
        if provider.mode is Mode.CLI:
            raise ProviderFailure(
                provider.id,
                f"'{provider.binary}' CLI is not installed.",
                suggestion=f"Install the {provider.name} CLI, or run `ai-git --setup` to switch provider.",
            )
        raise ProviderFailure(
            provider.id,
            "provider is not available.",
            suggestion=f"Set {provider.api_key_env} or run `ai-git --setup` to switch provider.",
        )

    async def invoke(self, state: WorkflowContext) -> Any:
        actors = self.actors
        options = state.options
        step = state.step

        if step is WorkflowStep.INIT:
            return await self.nested.init()
        if step in (WorkflowStep.LOAD_CONFIG, WorkflowStep.RELOAD_CONFIG):
            return actors.config_store.resolve(provider=options.provider, model=options.model)
        if step is WorkflowStep.WELCOME:
            update = await actors.check_update(state.version)
            actors.display.show_welcome(state.version, state.config)
            actors.display.show_update(update)
            return None
        if step is WorkflowStep.SETUP:
            if state.needs_setup and not options.setup:
                actors.display.warn("No configuration found. Let's set up ai-git.")
            return await self.nested.setup(SetupWizardInput(target=ConfigTarget.GLOBAL, defaults=None))
        if step is WorkflowStep.ASK_CONTINUE:
            return actors.prompts.confirm("Run ai-git now?", default=True)
        if step is WorkflowStep.COUNTDOWN:
            actors.prompts.countdown(
                "Auto-approve: staging, committing and pushing without review.",
                COUNTDOWN_SECONDS,
            )
            return None
        if step is WorkflowStep.CHECK_GIT:
            actors.check_repository()
            return None
        if step is WorkflowStep.CHECK_AVAILABILITY:
            return await self._check_availability(_require_config(state))
        if step is WorkflowStep.STAGING:
            return await self.nested.staging(
                StagingInput(
                    stage_all=options.stage_all,
                    auto_approve=options.dangerously_auto_approve,
                    exclude=options.exclude,
                )
            )
        if step is WorkflowStep.WARN_CLEAN_TREE:
            actors.display.warn(CLEAN_TREE_MESSAGE)
            return None
        if step is WorkflowStep.GENERATION:
            config = _require_config(state)
            return await self.nested.generation(
                GenerationInput(
                    adapter=self._adapter(config),
                    model=config.model,
                    model_name=config.model_name,
                    options=GenerationOptions(
                        commit=options.commit,
                        dangerously_auto_approve=options.dangerously_auto_approve,
                        dry_run=options.dry_run,
                        hint=options.hint,
                    ),
                    slow_warning_threshold_ms=config.slow_warning_threshold_ms,
                    prompt=config.prompt,
                    editor=config.editor,
                    critical_rules=config.critical_rules,
                )
            )
        if step is WorkflowStep.PUSH:
            return await self.nested.push(
                PushInput(
                    push=options.push,
                    dangerously_auto_approve=options.dangerously_auto_approve,
                    is_interactive_mode=options.is_interactive_mode,
                )
            )
        raise RuntimeError(f"No actor for workflow step {step}")

    def output(self, state: WorkflowContext) -> WorkflowOutput:
        return WorkflowOutput(
            exit_code=state.exit_code,
            error=state.error,
            suggestion=state.suggestion,
            notice=state.notice,
        )


async def run_workflow(
    data: WorkflowInput,
    actors: Actors,
    nested: NestedWorkflows | None = None,
) -> WorkflowOutput:
    return await run_machine(WorkflowMachine(data, actors, nested))


__all__ = [
    "EXIT_OK",
    "EXIT_ERROR",
    "EXIT_INTERRUPTED",
    "CLEAN_TREE_MESSAGE",
    "WorkflowStep",
    "CLIOptions",
    "WorkflowInput",
    "WorkflowContext",
    "WorkflowOutput",
    "WorkflowMachine",
    "expand_flags",
    "apply_config_defaults",
    "initial_context",
    "transition",
    "run_workflow",
]

"""Generation workflow: draft, validate, review and commit a message.

Flow::

    fetch_branch -> gather_context -> [dry_run] -> invoke_model
        -> (invalid and auto_retries < 3) -> invoke_model
        -> auto_commit | show_menu -> try_commit | retry_prompt | edit

A failed validation is never an error: it sends the machine back to the
model with the critical issues in the prompt, at most ``MAX_AUTO_RETRIES``
times, after which the candidate goes to the human whatever its verdict.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from ai_git.config import PromptCustomization
from ai_git.core.git import CommitResult, RepoContext
from ai_git.core.prompt import Refinement, build_system_prompt, build_user_prompt, clean_model_response
from ai_git.core.validation import (
    DEFAULT_CRITICAL_RULES,
    ValidationResult,
    build_retry_context,
    format_issue,
    validate_commit_message,
)
from ai_git.errors import ValidationFailure
from ai_git.providers import ModelAdapter
from ai_git.workflow.actors import Actors, Choice
from ai_git.workflow.machine import Cancelled, Done, Event, Failed, Machine, run_machine, unhandled

logger = logging.getLogger(__name__)

MAX_AUTO_RETRIES = 3
DEFAULT_BRANCH = "main"
RETRY_PROMPT = "Enter instructions to refine (or leave blank to retry as-is):"


class GenerationStep(StrEnum):
    FETCH_BRANCH = "fetch_branch"
    GATHER_CONTEXT = "gather_context"
    DRY_RUN = "dry_run"
    INVOKE_MODEL = "invoke_model"
    AUTO_COMMIT = "auto_commit"
    SHOW_MENU = "show_menu"
    TRY_COMMIT = "try_commit"
    RETRY_PROMPT = "retry_prompt"
    EDIT = "edit"
    DONE = "done"


class MenuAction(StrEnum):
    COMMIT = "commit"
    RETRY = "retry"
    EDIT = "edit"
    CANCEL = "cancel"


@dataclass(frozen=True)
class GenerationOptions:
    commit: bool = False
    dangerously_auto_approve: bool = False
    dry_run: bool = False
    hint: str | None = None


@dataclass(frozen=True)
class GenerationInput:
    adapter: ModelAdapter
    model: str
    model_name: str
    options: GenerationOptions = field(default_factory=GenerationOptions)
    slow_warning_threshold_ms: int = 5000
    prompt: PromptCustomization | None = None
    editor: str | None = None
    critical_rules: tuple[str, ...] = tuple(sorted(DEFAULT_CRITICAL_RULES))


@dataclass(frozen=True)
class GenerationState:
    step: GenerationStep
    model: str
    model_name: str
    options: GenerationOptions
    critical_rules: tuple[str, ...]
    branch_name: str = DEFAULT_BRANCH
    diff: str = ""
    commits: tuple[str, ...] = ()
    file_list: str = ""
    context_loaded: bool = False
    current_message: str = ""
    last_generated_message: str = ""
    auto_retries: int = 0
    edited_manually: bool = False
    generation_errors: tuple[str, ...] = ()
    user_refinements: tuple[str, ...] = ()
    validation: ValidationResult | None = None
    commit_result: CommitResult | None = None
    committed: bool = False
    aborted: bool = False
    error: str | None = None

    @property
    def auto_commit(self) -> bool:
        return self.options.commit or self.options.dangerously_auto_approve


@dataclass(frozen=True)
class GenerationOutput:
    message: str = ""
    committed: bool = False
    aborted: bool = False
    error: str | None = None


def _abort(state: GenerationState, error: str | None = None) -> GenerationState:
    return replace(state, step=GenerationStep.DONE, aborted=True, error=error)


def _after_candidate(state: GenerationState, message: str) -> GenerationState:
    """Validate a fresh model candidate and pick retry or human decision."""
    result = validate_commit_message(message, state.critical_rules)
    state = replace(state, current_message=message, validation=result, edited_manually=False)

    if not result.valid and state.auto_retries < MAX_AUTO_RETRIES:
        return replace(
            state,
            step=GenerationStep.INVOKE_MODEL,
            auto_retries=state.auto_retries + 1,
            last_generated_message=message,
            generation_errors=tuple(format_issue(issue) for issue in result.critical_errors),
        )
    if state.auto_commit:
        return replace(state, step=GenerationStep.AUTO_COMMIT)
    return replace(state, step=GenerationStep.SHOW_MENU)


def transition(state: GenerationState, event: Event) -> GenerationState:
    """Pure generation transition function."""
    step = state.step

    if step is GenerationStep.FETCH_BRANCH:
        branch = DEFAULT_BRANCH
        if isinstance(event, Done) and event.output:
            branch = str(event.output)
        elif isinstance(event, Failed):
            logger.debug("Branch lookup failed, using %s: %s", DEFAULT_BRANCH, event.error)
        next_step = GenerationStep.INVOKE_MODEL if state.context_loaded else GenerationStep.GATHER_CONTEXT
        return replace(state, step=next_step, branch_name=branch)

    if step is GenerationStep.GATHER_CONTEXT:
        if isinstance(event, Done):
            context: RepoContext = event.output
            next_step = GenerationStep.DRY_RUN if state.options.dry_run else GenerationStep.INVOKE_MODEL
            return replace(
                state,
                step=next_step,
                diff=context.diff,
                commits=tuple(context.commits),
                file_list=context.file_list,
                context_loaded=True,
            )
        if isinstance(event, Failed):
            return _abort(state, f"Context gathering failed: {event.error}")
        return _abort(state)

    if step is GenerationStep.DRY_RUN and isinstance(event, Done):
        return replace(state, step=GenerationStep.DONE)

    if step is GenerationStep.INVOKE_MODEL:
        if isinstance(event, Done):
            message = clean_model_response(str(event.output or ""))
            if not message:
                return _abort(state, "The model returned an empty response.")
            return _after_candidate(state, message)
        if isinstance(event, Failed):
            return _abort(state, str(event.error))
        return _abort(state)

    if step in (GenerationStep.AUTO_COMMIT, GenerationStep.TRY_COMMIT):
        if isinstance(event, Done):
            return replace(state, step=GenerationStep.DONE, committed=True, commit_result=event.output, error=None)
        if isinstance(event, Failed):
            if step is GenerationStep.AUTO_COMMIT:
                return _abort(state, f"Commit failed: {event.error}")
            return replace(state, step=GenerationStep.SHOW_MENU, error=f"Commit failed: {event.error}")
        return _abort(state)

    if step is GenerationStep.SHOW_MENU:
        if isinstance(event, Done):
            choice = event.output
            cleared = replace(state, error=None)
            if choice == MenuAction.COMMIT:
                return replace(cleared, step=GenerationStep.TRY_COMMIT)
            if choice == MenuAction.RETRY:
                return replace(cleared, step=GenerationStep.RETRY_PROMPT)
            if choice == MenuAction.EDIT:
                return replace(cleared, step=GenerationStep.EDIT)
            return _abort(cleared)
        if isinstance(event, Cancelled):
            return _abort(state)
        unhandled(event, step)

    if step is GenerationStep.RETRY_PROMPT:
        if isinstance(event, Done):
            instructions = str(event.output or "").strip()
            refinements = (*state.user_refinements, instructions) if instructions else ()
            return replace(
                state,
                step=GenerationStep.INVOKE_MODEL,
                user_refinements=refinements,
                last_generated_message=state.current_message,
                auto_retries=0,
                generation_errors=(),
            )
        if isinstance(event, Cancelled):
            return _abort(state)
        unhandled(event, step)

    if step is GenerationStep.EDIT:
        if isinstance(event, Done) and event.output is not None:
            edited = str(event.output).strip()
            if edited and edited != state.current_message:
                return replace(
                    state,
                    step=GenerationStep.SHOW_MENU,
                    current_message=edited,
                    edited_manually=True,
                    validation=validate_commit_message(edited, state.critical_rules),
                )
            return replace(state, step=GenerationStep.SHOW_MENU)
        if isinstance(event, Failed):
            return replace(state, step=GenerationStep.SHOW_MENU, error=f"Editor failed: {event.error}")
        return replace(state, step=GenerationStep.SHOW_MENU)

    unhandled(event, step)


class GenerationMachine(Machine[GenerationState, GenerationOutput]):
    name = "generation"
    final_steps = frozenset({GenerationStep.DONE})

    def __init__(self, data: GenerationInput, actors: Actors):
        self.data = data
        self.actors = actors
        self.system_prompt = build_system_prompt(data.prompt)

    def initial_state(self) -> GenerationState:
        return GenerationState(
            step=GenerationStep.FETCH_BRANCH,
            model=self.data.model,
            model_name=self.data.model_name,
            options=self.data.options,
            critical_rules=tuple(self.data.critical_rules),
        )

    def transition(self, state: GenerationState, event: Event) -> GenerationState:
        return transition(state, event)

    def user_prompt(self, state: GenerationState) -> str:
        retry_context = None
        if state.generation_errors and state.last_generated_message:
            retry_context = build_retry_context(state.generation_errors, state.last_generated_message)
        refinement = None
        if state.last_generated_message and state.user_refinements:
            refinement = Refinement(state.last_generated_message, state.user_refinements)
        return build_user_prompt(
            branch_name=state.branch_name,
            diff=state.diff,
            recent_commits=state.commits,
            file_list=state.file_list,
            hint=state.options.hint,
            retry_context=retry_context,
            refinement=refinement,
        )

    async def invoke(self, state: GenerationState) -> Any:
        actors = self.actors
        step = state.step

        if step is GenerationStep.FETCH_BRANCH:
            return await actors.git.get_branch_name()
        if step is GenerationStep.GATHER_CONTEXT:
            return await actors.git.gather_context()
        if step is GenerationStep.DRY_RUN:
            actors.display.show_dry_run(self.system_prompt, self.user_prompt(state))
            return None
        if step is GenerationStep.INVOKE_MODEL:
            if state.auto_retries and state.generation_errors and state.validation is not None:
                actors.display.warn(
                    f"{ValidationFailure(state.validation)} Retrying ({state.auto_retries}/{MAX_AUTO_RETRIES})..."
                )
            return await actors.invoker.invoke(
                self.data.adapter,
                model=state.model,
                model_name=state.model_name,
                system_prompt=self.system_prompt,
                user_prompt=self.user_prompt(state),
                slow_threshold_ms=self.data.slow_warning_threshold_ms,
            )
        if step in (GenerationStep.AUTO_COMMIT, GenerationStep.TRY_COMMIT):
            if step is GenerationStep.AUTO_COMMIT:
                actors.display.show_message(state.current_message, state.validation)
            result = await actors.git.commit(state.current_message)
            actors.display.show_commit_result(result)
            return result
        if step is GenerationStep.SHOW_MENU:
            if state.error:
                actors.display.error(state.error)
            actors.display.show_message(state.current_message, state.validation)
            valid = state.validation is None or state.validation.valid
            return actors.prompts.select(
                "What would you like to do?",
                [
                    Choice(MenuAction.COMMIT, "Commit" if valid else "Commit (with warnings)"),
                    Choice(MenuAction.RETRY, "Retry"),
                    Choice(MenuAction.EDIT, "Edit"),
                    Choice(MenuAction.CANCEL, "Cancel"),
                ],
            )
        if step is GenerationStep.RETRY_PROMPT:
            return actors.prompts.text(RETRY_PROMPT, default="")
        if step is GenerationStep.EDIT:
            return actors.prompts.edit(state.current_message, self.data.editor)
        raise RuntimeError(f"No actor for generation step {step}")

    def output(self, state: GenerationState) -> GenerationOutput:
        return GenerationOutput(
            message=state.current_message,
            committed=state.committed,
            aborted=state.aborted,
            error=state.error if state.aborted else None,
        )


async def run_generation(data: GenerationInput, actors: Actors) -> GenerationOutput:
    return await run_machine(GenerationMachine(data, actors))


__all__ = [
    "MAX_AUTO_RETRIES",
    "GenerationStep",
    "MenuAction",
    "GenerationOptions",
    "GenerationInput",
    "GenerationState",
    "GenerationOutput",
    "GenerationMachine",
    "transition",
    "run_generation",
]

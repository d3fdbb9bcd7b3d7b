"""Staging workflow: make sure the index holds what should be committed.

Reads the staged and unstaged sets, then either finishes, stages
automatically (``--stage-all`` / auto-approve) or asks the user. After any
mutation the staged set is re-read from git; the output always reflects
that authoritative read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from ai_git.workflow.actors import Actors, Choice
from ai_git.workflow.machine import Cancelled, Done, Event, Failed, Machine, run_machine, unhandled

logger = logging.getLogger(__name__)


class StagingStep(StrEnum):
    READ_STAGED = "read_staged"
    READ_UNSTAGED = "read_unstaged"
    MENU_STAGED = "menu_staged"
    MENU_UNSTAGED = "menu_unstaged"
    SELECT_FILES = "select_files"
    STAGE_SELECTED = "stage_selected"
    STAGE_ALL = "stage_all"
    REREAD_STAGED = "reread_staged"
    DONE = "done"


class StagingAction(StrEnum):
    PROCEED = "proceed"
    SELECT_FILES = "select_files"
    STAGE_ALL = "stage_all"
    CANCEL = "cancel"


@dataclass(frozen=True)
class StagingInput:
    stage_all: bool = False
    auto_approve: bool = False
    exclude: tuple[str, ...] = ()


@dataclass(frozen=True)
class StagingState:
    step: StagingStep
    stage_all: bool
    auto_approve: bool
    exclude: tuple[str, ...] = ()
    staged_files: tuple[str, ...] = ()
    unstaged_files: tuple[str, ...] = ()
    selected_files: tuple[str, ...] = ()
    aborted: bool = False


@dataclass(frozen=True)
class StagingOutput:
    staged_files: tuple[str, ...] = field(default_factory=tuple)
    aborted: bool = False


def _abort(state: StagingState) -> StagingState:
    return replace(state, step=StagingStep.DONE, aborted=True)


def _route_after_read(state: StagingState) -> StagingState:
    if not state.unstaged_files:
        return replace(state, step=StagingStep.DONE)
    if state.stage_all or state.auto_approve:
        return replace(state, step=StagingStep.STAGE_ALL)
    if state.staged_files:
        return replace(state, step=StagingStep.MENU_STAGED)
    return replace(state, step=StagingStep.MENU_UNSTAGED)


def _route_menu_choice(state: StagingState, choice: str) -> StagingState:
    if choice == StagingAction.PROCEED:
        return replace(state, step=StagingStep.DONE)
    if choice == StagingAction.SELECT_FILES:
        return replace(state, step=StagingStep.SELECT_FILES)
    if choice == StagingAction.STAGE_ALL:
        return replace(state, step=StagingStep.STAGE_ALL)
    return _abort(state)


def transition(state: StagingState, event: Event) -> StagingState:
    """Pure staging transition function."""
    step = state.step

    if step is StagingStep.READ_STAGED and isinstance(event, Done):
        return replace(state, step=StagingStep.READ_UNSTAGED, staged_files=tuple(event.output))

    if step is StagingStep.READ_UNSTAGED and isinstance(event, Done):
        return _route_after_read(replace(state, unstaged_files=tuple(event.output)))

    if step in (StagingStep.MENU_STAGED, StagingStep.MENU_UNSTAGED):
        if isinstance(event, Done):
            return _route_menu_choice(state, event.output)
        return _abort(state)

    if step is StagingStep.SELECT_FILES:
        if isinstance(event, Done):
            selected = tuple(event.output)
            if not selected:
                return replace(state, step=StagingStep.DONE)
            return replace(state, step=StagingStep.STAGE_SELECTED, selected_files=selected)
        return _abort(state)

    if step in (StagingStep.STAGE_SELECTED, StagingStep.STAGE_ALL) and isinstance(event, Done):
        return replace(state, step=StagingStep.REREAD_STAGED)

    if step is StagingStep.REREAD_STAGED and isinstance(event, Done):
        return replace(state, step=StagingStep.DONE, staged_files=tuple(event.output))

    unhandled(event, step)


class StagingMachine(Machine[StagingState, StagingOutput]):
    name = "staging"
    final_steps = frozenset({StagingStep.DONE})

    def __init__(self, data: StagingInput, actors: Actors):
        self.data = data
        self.actors = actors

    def initial_state(self) -> StagingState:
        return StagingState(
            step=StagingStep.READ_STAGED,
            stage_all=self.data.stage_all,
            auto_approve=self.data.auto_approve,
            exclude=tuple(self.data.exclude),
        )

    def transition(self, state: StagingState, event: Event) -> StagingState:
        return transition(state, event)

    async def invoke(self, state: StagingState) -> Any:
        git = self.actors.git
        prompts = self.actors.prompts
        step = state.step

        if step in (StagingStep.READ_STAGED, StagingStep.REREAD_STAGED):
            return await git.get_staged_files()
        if step is StagingStep.READ_UNSTAGED:
            return await git.get_unstaged_files()
        if step is StagingStep.MENU_STAGED:
            return prompts.select(
                f"{len(state.staged_files)} file(s) staged. "
                f"{len(state.unstaged_files)} unstaged file(s) remaining.",
                [
                    Choice(StagingAction.PROCEED, "Proceed with staged files"),
                    Choice(StagingAction.SELECT_FILES, "Select additional files"),
                    Choice(StagingAction.STAGE_ALL, "Stage all remaining files"),
                    Choice(StagingAction.CANCEL, "Cancel"),
                ],
            )
        if step is StagingStep.MENU_UNSTAGED:
            return prompts.select(
                f"{len(state.unstaged_files)} unstaged file(s). What would you like to do?",
                [
                    Choice(StagingAction.STAGE_ALL, "Stage all"),
                    Choice(StagingAction.SELECT_FILES, "Select files"),
                    Choice(StagingAction.CANCEL, "Cancel"),
                ],
            )
        if step is StagingStep.SELECT_FILES:
            return prompts.multiselect(
                "Select files to stage:",
                [Choice(path, path) for path in state.unstaged_files],
            )
        if step is StagingStep.STAGE_SELECTED:
            await git.stage_files(state.selected_files)
            return None
        if step is StagingStep.STAGE_ALL:
            await git.stage_all_except(state.exclude)
            return None
        raise RuntimeError(f"No actor for staging step {step}")

    def output(self, state: StagingState) -> StagingOutput:
        return StagingOutput(staged_files=state.staged_files, aborted=state.aborted)


async def run_staging(data: StagingInput, actors: Actors) -> StagingOutput:
    return await run_machine(StagingMachine(data, actors))


__all__ = [
    "StagingStep",
    "StagingAction",
    "StagingInput",
    "StagingState",
    "StagingOutput",
    "StagingMachine",
    "transition",
    "run_staging",
]

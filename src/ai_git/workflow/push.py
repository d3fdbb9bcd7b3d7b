"""Push workflow: publish the new commit, guarding against divergence.

Before pushing, the remote is fetched and the number of upstream commits
missing locally is counted. In interactive mode the user may pull with
rebase first; without a human in the loop a diverged remote is fatal
(exit code 1) and nothing is pushed. A missing remote can be added
interactively.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any

from ai_git.errors import DivergenceFailure
from ai_git.workflow.actors import Actors
from ai_git.workflow.machine import Done, Event, Failed, Machine, run_machine, unhandled

logger = logging.getLogger(__name__)

MISSING_REMOTE_MARKERS: tuple[str, ...] = (
    "No configured push destination",
    "no remote repository specified",
)


class PushStep(StrEnum):
    CONFIRM_PUSH = "confirm_push"
    FETCH = "fetch"
    COUNT_AHEAD = "count_ahead"
    CONFIRM_REBASE = "confirm_rebase"
    PULL_REBASE = "pull_rebase"
    PUSH = "push"
    CONFIRM_ADD_REMOTE = "confirm_add_remote"
    ENTER_REMOTE_URL = "enter_remote_url"
    ADD_REMOTE_AND_PUSH = "add_remote_and_push"
    DONE = "done"


@dataclass(frozen=True)
class PushInput:
    push: bool = False
    dangerously_auto_approve: bool = False
    is_interactive_mode: bool = True


@dataclass(frozen=True)
class PushState:
    step: PushStep
    push: bool
    auto_approve: bool
    is_interactive_mode: bool
    pushed: bool = False
    remote_ahead: int = 0
    remote_url: str | None = None
    error_message: str | None = None
    exit_code: int = 0


@dataclass(frozen=True)
class PushOutput:
    pushed: bool = False
    exit_code: int = 0
    error_message: str | None = None


def is_missing_remote_error(error: BaseException | str) -> bool:
    text = str(error)
    if not isinstance(error, str):
        text = f"{text}\n{getattr(error, 'stderr', '')}"
    return any(marker in text for marker in MISSING_REMOTE_MARKERS)


def _done(state: PushState, **changes: Any) -> PushState:
    return replace(state, step=PushStep.DONE, **changes)


def initial_step(data: PushInput) -> PushStep:
    if data.push or data.dangerously_auto_approve:
        return PushStep.FETCH
    if data.is_interactive_mode:
        return PushStep.CONFIRM_PUSH
    return PushStep.DONE


def _confirmed(event: Event) -> bool:
    return isinstance(event, Done) and bool(event.output)


def transition(state: PushState, event: Event) -> PushState:
    """Pure push transition function."""
    step = state.step

    if step is PushStep.CONFIRM_PUSH:
        return replace(state, step=PushStep.FETCH) if _confirmed(event) else _done(state)

    if step is PushStep.FETCH:
        if isinstance(event, Failed):
            logger.debug("Fetch failed, pushing anyway: %s", event.error)
            return replace(state, step=PushStep.PUSH)
        if isinstance(event, Done):
            return replace(state, step=PushStep.COUNT_AHEAD)

    if step is PushStep.COUNT_AHEAD:
        if isinstance(event, Failed):
            logger.debug("Could not count upstream commits, pushing anyway: %s", event.error)
            return replace(state, step=PushStep.PUSH)
        if isinstance(event, Done):
            ahead = int(event.output or 0)
            if ahead <= 0:
                return replace(state, step=PushStep.PUSH, remote_ahead=0)
            if state.is_interactive_mode:
                return replace(state, step=PushStep.CONFIRM_REBASE, remote_ahead=ahead)
            return _done(state, remote_ahead=ahead, exit_code=1, error_message=str(DivergenceFailure(ahead)))

    if step is PushStep.CONFIRM_REBASE:
        return replace(state, step=PushStep.PULL_REBASE) if _confirmed(event) else _done(state)

    if step is PushStep.PULL_REBASE:
        if isinstance(event, Done):
            return replace(state, step=PushStep.PUSH)
        if isinstance(event, Failed):
            return _done(state, exit_code=1, error_message=f"Pull with rebase failed: {event.error}")

    if step is PushStep.PUSH:
        if isinstance(event, Done):
            return _done(state, pushed=True)
        if isinstance(event, Failed):
            if is_missing_remote_error(event.error):
                if state.is_interactive_mode:
                    return replace(state, step=PushStep.CONFIRM_ADD_REMOTE)
                return _done(state, error_message="No remote configured; skipping push.")
            return _done(state, error_message=f"Push failed: {event.error}")

    if step is PushStep.CONFIRM_ADD_REMOTE:
        return replace(state, step=PushStep.ENTER_REMOTE_URL) if _confirmed(event) else _done(state)

    if step is PushStep.ENTER_REMOTE_URL:
        if isinstance(event, Done) and str(event.output or "").strip():
            return replace(state, step=PushStep.ADD_REMOTE_AND_PUSH, remote_url=str(event.output).strip())
        return _done(state)

    if step is PushStep.ADD_REMOTE_AND_PUSH:
        if isinstance(event, Done):
            return _done(state, pushed=True)
        if isinstance(event, Failed):
            return _done(state, error_message=f"Failed to add remote and push: {event.error}")

    unhandled(event, step)


def _require_url(value: str) -> str | None:
    return None if value.strip() else "Remote URL is required"


class PushMachine(Machine[PushState, PushOutput]):
    name = "push"
    final_steps = frozenset({PushStep.DONE})

    def __init__(self, data: PushInput, actors: Actors):
        self.data = data
        self.actors = actors

    def initial_state(self) -> PushState:
        return PushState(
            step=initial_step(self.data),
            push=self.data.push,
            auto_approve=self.data.dangerously_auto_approve,
            is_interactive_mode=self.data.is_interactive_mode,
        )

    def transition(self, state: PushState, event: Event) -> PushState:
        return transition(state, event)

    async def invoke(self, state: PushState) -> Any:
        git = self.actors.git
        prompts = self.actors.prompts
        step = state.step

        if step is PushStep.CONFIRM_PUSH:
            return prompts.confirm("Push to remote?", default=True)
        if step is PushStep.FETCH:
            await git.fetch_remote()
            return None
        if step is PushStep.COUNT_AHEAD:
            return await git.get_remote_ahead_count()
        if step is PushStep.CONFIRM_REBASE:
            return prompts.confirm(
                f"Remote has {state.remote_ahead} new commit(s). Pull with rebase before pushing?",
                default=True,
            )
        if step is PushStep.PULL_REBASE:
            await git.pull_rebase()
            return None
        if step is PushStep.PUSH:
            self.actors.display.info("Pushing to remote...")
            await git.push()
            self.actors.display.success("Pushed to remote.")
            return None
        if step is PushStep.CONFIRM_ADD_REMOTE:
            return prompts.confirm("No remote configured. Add one now?", default=True)
        if step is PushStep.ENTER_REMOTE_URL:
            return prompts.text("Remote URL:", validate=_require_url)
        if step is PushStep.ADD_REMOTE_AND_PUSH:
            await git.add_remote_and_push(state.remote_url or "")
            self.actors.display.success(f"Added remote origin and pushed to {state.remote_url}.")
            return None
        raise RuntimeError(f"No actor for push step {step}")

    def output(self, state: PushState) -> PushOutput:
        return PushOutput(pushed=state.pushed, exit_code=state.exit_code, error_message=state.error_message)


async def run_push(data: PushInput, actors: Actors) -> PushOutput:
    return await run_machine(PushMachine(data, actors))


__all__ = [
    "MISSING_REMOTE_MARKERS",
    "PushStep",
    "PushInput",
    "PushState",
    "PushOutput",
    "PushMachine",
    "initial_step",
    "is_missing_remote_error",
    "transition",
    "run_push",
]

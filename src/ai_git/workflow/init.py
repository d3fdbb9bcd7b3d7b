"""Init workflow: create a project config for the current repository."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, Awaitable, Callable

from ai_git.config import ConfigTarget, UserConfig, is_config_complete
from ai_git.workflow.actors import Actors, Choice
from ai_git.workflow.machine import Done, Event, Failed, Machine, run_machine, unhandled
from ai_git.workflow.setup_wizard import SetupWizardInput, SetupWizardOutput, run_setup_wizard

logger = logging.getLogger(__name__)


class InitStep(StrEnum):
    LOAD_PROJECT = "load_project"
    CONFIRM_OVERWRITE = "confirm_overwrite"
    LOAD_GLOBAL = "load_global"
    CHOOSE_SOURCE = "choose_source"
    CONFIRM_SETUP = "confirm_setup"
    COPY_GLOBAL = "copy_global"
    RUN_WIZARD = "run_wizard"
    ASK_RUN = "ask_run"
    DONE = "done"


class InitSource(StrEnum):
    COPY = "copy"
    WIZARD = "wizard"


@dataclass(frozen=True)
class InitState:
    step: InitStep
    global_config: UserConfig | None = None
    continue_run: bool = False
    exit_code: int = 0


@dataclass(frozen=True)
class InitOutput:
    continue_run: bool = False
    exit_code: int = 0


def _exit(state: InitState, code: int) -> InitState:
    return replace(state, step=InitStep.DONE, exit_code=code)


def _confirmed(event: Event) -> bool:
    return isinstance(event, Done) and bool(event.output)


def transition(state: InitState, event: Event) -> InitState:
    """Pure init transition function."""
    step = state.step

    if step is InitStep.LOAD_PROJECT:
        if isinstance(event, Failed):
            # An unreadable file still counts as an existing config
            logger.debug("Project config unreadable: %s", event.error)
            return replace(state, step=InitStep.CONFIRM_OVERWRITE)
        if isinstance(event, Done):
            next_step = InitStep.CONFIRM_OVERWRITE if event.output is not None else InitStep.LOAD_GLOBAL
            return replace(state, step=next_step)

    if step is InitStep.CONFIRM_OVERWRITE:
        return replace(state, step=InitStep.LOAD_GLOBAL) if _confirmed(event) else _exit(state, 0)

    if step is InitStep.LOAD_GLOBAL:
        if isinstance(event, Done) and is_config_complete(event.output):
            return replace(state, step=InitStep.CHOOSE_SOURCE, global_config=event.output)
        if isinstance(event, (Done, Failed)):
            return replace(state, step=InitStep.CONFIRM_SETUP)

    if step is InitStep.CHOOSE_SOURCE:
        if isinstance(event, Done):
            if event.output == InitSource.COPY:
                return replace(state, step=InitStep.COPY_GLOBAL)
            return replace(state, step=InitStep.RUN_WIZARD)
        return _exit(state, 1)

    if step is InitStep.CONFIRM_SETUP:
        return replace(state, step=InitStep.RUN_WIZARD) if _confirmed(event) else _exit(state, 0)

    if step is InitStep.COPY_GLOBAL:
        if isinstance(event, Done):
            return replace(state, step=InitStep.ASK_RUN)
        return _exit(state, 1)

    if step is InitStep.RUN_WIZARD:
        if isinstance(event, Done) and event.output.completed:
            return replace(state, step=InitStep.ASK_RUN)
        return _exit(state, 1)

    if step is InitStep.ASK_RUN:
        if _confirmed(event):
            return replace(state, step=InitStep.DONE, continue_run=True, exit_code=0)
        return _exit(state, 0)

    unhandled(event, step)


class InitMachine(Machine[InitState, InitOutput]):
    name = "init"
    final_steps = frozenset({InitStep.DONE})

    def __init__(
        self,
        actors: Actors,
        setup: Callable[[SetupWizardInput], Awaitable[SetupWizardOutput]] | None = None,
    ):
        self.actors = actors
        self.setup = setup or (lambda data: run_setup_wizard(data, actors))

    def initial_state(self) -> InitState:
        return InitState(step=InitStep.LOAD_PROJECT)

    def transition(self, state: InitState, event: Event) -> InitState:
        return transition(state, event)

    async def invoke(self, state: InitState) -> Any:
        store = self.actors.config_store
        prompts = self.actors.prompts
        step = state.step

        if step is InitStep.LOAD_PROJECT:
            return store.load_project()
        if step is InitStep.CONFIRM_OVERWRITE:
            return prompts.confirm("A project config already exists. Overwrite it?", default=False)
        if step is InitStep.LOAD_GLOBAL:
            return store.load_user()
        if step is InitStep.CHOOSE_SOURCE:
            cfg = state.global_config
            summary = f"{cfg.provider} / {cfg.model}" if cfg else ""
            return prompts.select(
                "How would you like to configure this project?",
                [
                    Choice(InitSource.COPY, "Copy global config", summary or None),
                    Choice(InitSource.WIZARD, "Run the setup wizard"),
                ],
            )
        if step is InitStep.CONFIRM_SETUP:
            return prompts.confirm("No global config found. Run the setup wizard now?", default=True)
        if step is InitStep.COPY_GLOBAL:
            path = store.save(ConfigTarget.PROJECT, state.global_config or UserConfig())
            self.actors.display.success(f"Project config written to {path}")
            return path
        if step is InitStep.RUN_WIZARD:
            return await self.setup(SetupWizardInput(target=ConfigTarget.PROJECT, defaults=state.global_config))
        if step is InitStep.ASK_RUN:
            return prompts.confirm("Run ai-git now?", default=True)
        raise RuntimeError(f"No actor for init step {step}")

    def output(self, state: InitState) -> InitOutput:
        return InitOutput(continue_run=state.continue_run, exit_code=state.exit_code)


async def run_init(actors: Actors) -> InitOutput:
    return await run_machine(InitMachine(actors))


__all__ = [
    "InitStep",
    "InitSource",
    "InitState",
    "InitOutput",
    "InitMachine",
    "transition",
    "run_init",
]

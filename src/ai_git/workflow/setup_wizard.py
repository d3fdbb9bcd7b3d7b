"""Setup wizard: choose a provider and model and save them.

All provider availability probes run concurrently before the first prompt
so the provider list can flag what is not installed or lacks an API key.
The wizard never raises: cancellation and failures end with
``completed=False``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field, replace
from enum import StrEnum
from pathlib import Path
from typing import Any, Mapping

from ai_git.config import ConfigTarget, UserConfig
from ai_git.providers import PROVIDERS, Mode, ProviderDefinition, get_provider
from ai_git.workflow.actors import Actors, Choice
from ai_git.workflow.machine import Done, Event, Failed, Machine, run_machine

logger = logging.getLogger(__name__)


class SetupStep(StrEnum):
    PROBE = "probe"
    SELECT_PROVIDER = "select_provider"
    SELECT_MODEL = "select_model"
    ENTER_MODEL = "enter_model"
    SAVE = "save"
    DONE = "done"


@dataclass(frozen=True)
class SetupWizardInput:
    target: ConfigTarget = ConfigTarget.GLOBAL
    defaults: UserConfig | None = None


@dataclass(frozen=True)
class SetupState:
    step: SetupStep
    target: ConfigTarget
    availability: Mapping[str, bool] = field(default_factory=dict)
    provider: str | None = None
    model: str | None = None
    saved_path: Path | None = None
    completed: bool = False
    error: str | None = None


@dataclass(frozen=True)
class SetupWizardOutput:
    completed: bool = False
    config: UserConfig | None = None
    error: str | None = None


async def probe_providers(actors: Actors, providers: tuple[ProviderDefinition, ...] = PROVIDERS) -> dict[str, bool]:
    """Check every provider's availability concurrently."""

    async def probe(provider: ProviderDefinition) -> bool:
        adapter = actors.adapter_for(provider.id)
        if adapter is None:
            return False
        return await adapter.check_available()

    results = await asyncio.gather(*(probe(p) for p in providers), return_exceptions=True)
    availability: dict[str, bool] = {}
    for provider, result in zip(providers, results):
        if isinstance(result, BaseException):
            logger.debug("Availability probe for %s failed: %s", provider.id, result)
            availability[provider.id] = False
        else:
            availability[provider.id] = bool(result)
    return availability


def _finish(state: SetupState, **changes: Any) -> SetupState:
    return replace(state, step=SetupStep.DONE, **changes)


def transition(state: SetupState, event: Event) -> SetupState:
    """Pure setup-wizard transition function."""
    step = state.step

    if isinstance(event, Failed):
        logger.error("Setup failed during %s: %s", step, event.error)
        return _finish(state, completed=False, error=str(event.error))
    if not isinstance(event, Done):
        return _finish(state, completed=False)

    if step is SetupStep.PROBE:
        return replace(state, step=SetupStep.SELECT_PROVIDER, availability=dict(event.output))

    if step is SetupStep.SELECT_PROVIDER:
        provider = get_provider(str(event.output))
        if provider is None:
            return _finish(state, completed=False, error=f"Unknown provider '{event.output}'.")
        next_step = SetupStep.ENTER_MODEL if provider.dynamic_models else SetupStep.SELECT_MODEL
        return replace(state, step=next_step, provider=provider.id)

    if step in (SetupStep.SELECT_MODEL, SetupStep.ENTER_MODEL):
        return replace(state, step=SetupStep.SAVE, model=str(event.output).strip())

    if step is SetupStep.SAVE:
        return _finish(state, completed=True, saved_path=event.output)

    return _finish(state, completed=False)


def _provider_hint(provider: ProviderDefinition, available: bool) -> str | None:
    if available:
        return None
    if provider.mode is Mode.CLI:
        return f"'{provider.binary}' not installed"
    return f"{provider.api_key_env} not set"


def _require_model(value: str) -> str | None:
    return None if value.strip() else "Model id is required"


class SetupWizardMachine(Machine[SetupState, SetupWizardOutput]):
    name = "setup"
    final_steps = frozenset({SetupStep.DONE})

    def __init__(self, data: SetupWizardInput, actors: Actors):
        self.data = data
        self.actors = actors

    def initial_state(self) -> SetupState:
        return SetupState(step=SetupStep.PROBE, target=self.data.target)

    def transition(self, state: SetupState, event: Event) -> SetupState:
        return transition(state, event)

    def build_config(self, state: SetupState) -> UserConfig:
        base = self.data.defaults or UserConfig()
        return base.model_copy(update={"provider": state.provider, "model": state.model})

    async def invoke(self, state: SetupState) -> Any:
        prompts = self.actors.prompts
        step = state.step
        provider = get_provider(state.provider) if state.provider else None

        if step is SetupStep.PROBE:
            return await probe_providers(self.actors)
        if step is SetupStep.SELECT_PROVIDER:
            current = self.data.defaults.provider if self.data.defaults else None
            choices = [
                Choice(p.id, f"{p.name} ({p.mode})", _provider_hint(p, state.availability.get(p.id, False)))
                for p in PROVIDERS
            ]
            return prompts.select("Select an AI provider:", choices, default=current)
        if step is SetupStep.SELECT_MODEL and provider is not None:
            default_model = provider.default_model.id if provider.default_model else None
            return prompts.select(
                f"Select a {provider.name} model:",
                [Choice(m.id, m.name, "default" if m.is_default else None) for m in provider.models],
                default=default_model,
            )
        if step is SetupStep.ENTER_MODEL and provider is not None:
            if provider.api_key_env and not os.environ.get(provider.api_key_env):
                self.actors.display.warn(f"{provider.api_key_env} is not set; export it before running ai-git.")
            return prompts.text(f"{provider.name} model id:", validate=_require_model)
        if step is SetupStep.SAVE:
            path = self.actors.config_store.save(state.target, self.build_config(state))
            self.actors.display.success(f"Configuration saved to {path}")
            return path
        raise RuntimeError(f"No actor for setup step {step}")

    def output(self, state: SetupState) -> SetupWizardOutput:
        return SetupWizardOutput(
            completed=state.completed,
            config=self.build_config(state) if state.completed else None,
            error=state.error,
        )


async def run_setup_wizard(data: SetupWizardInput, actors: Actors) -> SetupWizardOutput:
    return await run_machine(SetupWizardMachine(data, actors))


__all__ = [
    "SetupStep",
    "SetupWizardInput",
    "SetupState",
    "SetupWizardOutput",
    "SetupWizardMachine",
    "probe_providers",
    "transition",
    "run_setup_wizard",
]

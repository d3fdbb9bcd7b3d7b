"""Setup wizard tests."""

from __future__ import annotations

import asyncio
import logging

import pytest

from ai_git.config import ConfigTarget, UserConfig
from ai_git.errors import UserCancelled
from ai_git.providers import PROVIDERS, get_provider
from ai_git.workflow.setup_wizard import SetupWizardInput, probe_providers, run_setup_wizard


@pytest.mark.asyncio
async def test_static_provider_selects_from_model_list(prompts, config_store, actors):
    prompts.queue("claude-code", "sonnet")

    result = await run_setup_wizard(SetupWizardInput(), actors)

    assert result.completed is True
    assert result.config == UserConfig(provider="claude-code", model="sonnet")
    assert config_store.saved == [(ConfigTarget.GLOBAL, UserConfig(provider="claude-code", model="sonnet"))]
    assert prompts.messages() == ["Select an AI provider:", "Select a Claude Code model:"]
    assert prompts.asked[1][2] == ("haiku", "sonnet", "opus")


@pytest.mark.asyncio
async def test_dynamic_provider_asks_for_model_id(prompts, display, config_store, actors, monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    prompts.queue("openrouter", "  anthropic/claude-3.5-haiku ")

    result = await run_setup_wizard(SetupWizardInput(), actors)

    assert result.completed is True
    assert config_store.saved[-1][1].model == "anthropic/claude-3.5-haiku"
    assert prompts.messages("text") == ["OpenRouter model id:"]
    assert any("OPENROUTER_API_KEY" in warning for warning in display.texts("warn"))


@pytest.mark.asyncio
async def test_cancel_at_provider_prompt_saves_nothing(prompts, config_store, actors):
    prompts.queue(UserCancelled())

    result = await run_setup_wizard(SetupWizardInput(), actors)

    assert result.completed is False
    assert result.error is None
    assert config_store.saved == []


@pytest.mark.asyncio
async def test_save_failure_is_logged_not_raised(prompts, config_store, actors, caplog):
    def broken_save(target, config):
        raise PermissionError("read-only file system")

    config_store.save = broken_save
    prompts.queue("codex", "gpt-5")

    with caplog.at_level(logging.ERROR, logger="ai_git.workflow.setup_wizard"):
        result = await run_setup_wizard(SetupWizardInput(), actors)

    assert result.completed is False
    assert result.error == "read-only file system"
    assert "Setup failed during save" in caplog.text


@pytest.mark.asyncio
async def test_project_target_keeps_other_defaults(prompts, config_store, actors):
    defaults = UserConfig(provider="codex", model="gpt-5", editor="vim")
    prompts.queue("gemini-cli", "gemini-2.5-pro")

    result = await run_setup_wizard(SetupWizardInput(target=ConfigTarget.PROJECT, defaults=defaults), actors)

    target, saved = config_store.saved[0]
    assert target is ConfigTarget.PROJECT
    assert saved.editor == "vim"
    assert (saved.provider, saved.model) == ("gemini-cli", "gemini-2.5-pro")
    assert result.config == saved


@pytest.mark.asyncio
async def test_unavailable_providers_are_flagged(prompts, actors, fake_adapter_cls):
    actors.adapter_for = lambda provider_id: fake_adapter_cls(provider_id, available=False)
    prompts.queue(UserCancelled())

    await run_setup_wizard(SetupWizardInput(), actors)

    hints = {choice.value: choice.hint for choice in prompts.choice_sets[0]}
    assert hints["claude-code"] == "'claude' not installed"
    assert hints["openrouter"] == "OPENROUTER_API_KEY not set"


@pytest.mark.asyncio
async def test_probes_run_concurrently(actors, fake_adapter_cls):
    active = 0
    peak = 0

    class SlowAdapter(fake_adapter_cls):
        async def check_available(self) -> bool:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            if self.provider_id == "codex":
                raise OSError("probe crashed")
            return self.provider_id != "openai"

    actors.adapter_for = lambda provider_id: None if provider_id == "anthropic" else SlowAdapter(provider_id)

    availability = await probe_providers(actors)

    assert peak == len(PROVIDERS) - 1
    assert availability["claude-code"] is True
    assert availability["codex"] is False
    assert availability["openai"] is False
    assert availability["anthropic"] is False
    assert set(availability) == {p.id for p in PROVIDERS}


def test_registry_defaults():
    assert get_provider("claude-code").default_model.id == "haiku"
    assert get_provider("openrouter").dynamic_models is True
    assert get_provider("nope") is None

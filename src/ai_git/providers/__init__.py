"""Provider registry and adapter lookup."""

from __future__ import annotations

from typing import Callable

from ai_git.providers.api import AnthropicAdapter, GoogleAIStudioAdapter, OpenAICompatibleAdapter, OpenRouterAdapter
from ai_git.providers.base import BaseCLIAdapter, Mode, ModelAdapter, ModelDefinition, ProviderDefinition
from ai_git.providers.cli import ClaudeCodeAdapter, CodexAdapter, GeminiCLIAdapter

PROVIDERS: tuple[ProviderDefinition, ...] = (
    ProviderDefinition(
        id="claude-code",
        name="Claude Code",
        mode=Mode.CLI,
        binary="claude",
        models=(
            ModelDefinition("haiku", "Claude Haiku", is_default=True),
            ModelDefinition("sonnet", "Claude Sonnet"),
            ModelDefinition("opus", "Claude Opus"),
        ),
    ),
    ProviderDefinition(
        id="gemini-cli",
        name="Gemini CLI",
        mode=Mode.CLI,
        binary="gemini",
        is_default=True,
        models=(
            ModelDefinition("gemini-2.5-flash", "Gemini 2.5 Flash", is_default=True),
            ModelDefinition("gemini-2.5-flash-lite", "Gemini 2.5 Flash Lite"),
            ModelDefinition("gemini-2.5-pro", "Gemini 2.5 Pro"),
        ),
    ),
    ProviderDefinition(
        id="codex",
        name="Codex",
        mode=Mode.CLI,
        binary="codex",
        models=(
            ModelDefinition("gpt-5-codex", "GPT-5 Codex", is_default=True),
            ModelDefinition("gpt-5-codex-mini", "GPT-5 Codex Mini"),
            ModelDefinition("gpt-5", "GPT-5"),
        ),
    ),
    ProviderDefinition(
        id="openrouter",
        name="OpenRouter",
        mode=Mode.API,
        api_key_env="OPENROUTER_API_KEY",
        dynamic_models=True,
        is_default=True,
    ),
    ProviderDefinition(
        id="openai",
        name="OpenAI",
        mode=Mode.API,
        api_key_env="OPENAI_API_KEY",
        dynamic_models=True,
    ),
    ProviderDefinition(
        id="google-ai-studio",
        name="Google AI Studio",
        mode=Mode.API,
        api_key_env="GEMINI_API_KEY",
        dynamic_models=True,
    ),
    ProviderDefinition(
        id="anthropic",
        name="Anthropic",
        mode=Mode.API,
        api_key_env="ANTHROPIC_API_KEY",
        dynamic_models=True,
    ),
)

_ADAPTER_FACTORIES: dict[str, Callable[[], ModelAdapter]] = {
    "claude-code": ClaudeCodeAdapter,
    "gemini-cli": GeminiCLIAdapter,
    "codex": CodexAdapter,
    "openrouter": OpenRouterAdapter,
    "openai": OpenAICompatibleAdapter,
    "google-ai-studio": GoogleAIStudioAdapter,
    "anthropic": AnthropicAdapter,
}


def get_provider(provider_id: str) -> ProviderDefinition | None:
    for provider in PROVIDERS:
        if provider.id == provider_id:
            return provider
    return None


def provider_ids() -> list[str]:
    return [provider.id for provider in PROVIDERS]


def providers_by_mode(mode: Mode) -> list[ProviderDefinition]:
    return [provider for provider in PROVIDERS if provider.mode is mode]


def get_adapter(provider_id: str) -> ModelAdapter | None:
    """Build a fresh adapter for ``provider_id``, or None when unknown."""
    factory = _ADAPTER_FACTORIES.get(provider_id)
    return factory() if factory is not None else None


__all__ = [
    "PROVIDERS",
    "Mode",
    "ModelAdapter",
    "ModelDefinition",
    "ProviderDefinition",
    "BaseCLIAdapter",
    "get_provider",
    "provider_ids",
    "providers_by_mode",
    "get_adapter",
]

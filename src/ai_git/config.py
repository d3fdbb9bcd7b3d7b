"""User and project configuration.

Two YAML files are read: the global file under the platform config dir
(``AI_GIT_CONFIG_DIR`` overrides it) and ``.ai-git.yaml`` at the repository
root. Values resolve with priority CLI flags > project file > global file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ai_git.core.validation import DEFAULT_CRITICAL_RULES, RULES
from ai_git.errors import ConfigError
from ai_git.providers import PROVIDERS, ProviderDefinition, get_provider

logger = logging.getLogger(__name__)

APP_NAME = "ai-git"
CONFIG_DIR_ENV = "AI_GIT_CONFIG_DIR"
CONFIG_FILE_NAME = "config.yaml"
PROJECT_CONFIG_FILE_NAME = ".ai-git.yaml"
DEFAULT_SLOW_WARNING_THRESHOLD_MS = 5000


class PromptCustomization(BaseModel):
    """Extra guidance merged into the system prompt."""

    model_config = ConfigDict(extra="ignore")

    context: str | None = None
    style: str | None = None
    examples: list[str] = Field(default_factory=list)


class WorkflowDefaults(BaseModel):
    """Flags switched on by default, OR-ed with the command line."""

    model_config = ConfigDict(extra="ignore")

    stage_all: bool | None = None
    commit: bool | None = None
    push: bool | None = None


class ValidationPolicy(BaseModel):
    """Which validator rules reject a message and trigger an auto-retry."""

    model_config = ConfigDict(extra="ignore")

    critical_rules: list[str] = Field(default_factory=lambda: sorted(DEFAULT_CRITICAL_RULES))


class UserConfig(BaseModel):
    """Schema shared by the global and project config files."""

    model_config = ConfigDict(extra="ignore")

    provider: str | None = None
    model: str | None = None
    defaults: WorkflowDefaults | None = None
    prompt: PromptCustomization | None = None
    editor: str | None = None
    slow_warning_threshold_ms: int | None = None
    validation: ValidationPolicy | None = None


@dataclass(frozen=True)
class ResolvedConfig:
    """Configuration after merging files and command-line overrides."""

    provider: ProviderDefinition
    model: str
    model_name: str
    stage_all: bool = False
    commit: bool = False
    push: bool = False
    prompt: PromptCustomization | None = None
    editor: str | None = None
    slow_warning_threshold_ms: int = DEFAULT_SLOW_WARNING_THRESHOLD_MS
    critical_rules: tuple[str, ...] = field(default_factory=lambda: tuple(sorted(DEFAULT_CRITICAL_RULES)))


@dataclass(frozen=True)
class ConfigResolution:
    """Outcome of loading config: either resolved or in need of setup."""

    needs_setup: bool
    config: ResolvedConfig | None = None


def global_config_dir() -> Path:
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path(user_config_dir(APP_NAME))


def global_config_path() -> Path:
    return global_config_dir() / CONFIG_FILE_NAME


def find_repo_root(start: Path) -> Path | None:
    """Walk upwards from ``start`` to the directory holding ``.git``."""
    current = start.resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def project_config_path(cwd: Path | None = None) -> Path:
    start = cwd or Path.cwd()
    return (find_repo_root(start) or start) / PROJECT_CONFIG_FILE_NAME


def load_config(path: Path) -> UserConfig | None:
    """Load one config file; None when the file does not exist."""
    if not path.exists():
        return None

    yaml = YAML()
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.load(handle) or {}
    except (OSError, YAMLError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}", suggestion=f"Fix or delete {path}.") from exc

    if not isinstance(payload, dict):
        raise ConfigError(f"{path} must contain a mapping.", suggestion=f"Fix or delete {path}.")

    try:
        return UserConfig.model_validate(dict(payload))
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}: {exc}", suggestion=f"Fix or delete {path}.") from exc


def save_config(path: Path, config: UserConfig) -> None:
    """Persist ``config`` to ``path``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    yaml = YAML()
    yaml.default_flow_style = False
    with path.open("w", encoding="utf-8") as handle:
        yaml.dump(config.model_dump(exclude_none=True), handle)
    logger.debug("Saved configuration to %s", path)


def is_config_complete(config: UserConfig | None) -> bool:
    if config is None or not config.provider or not config.model:
        return False
    provider = get_provider(config.provider)
    if provider is None:
        return False
    return provider.dynamic_models or provider.get_model(config.model) is not None


def merge_configs(base: UserConfig | None, override: UserConfig | None) -> UserConfig:
    """Overlay ``override`` on ``base``; nested sections merge key by key."""
    merged: dict[str, Any] = base.model_dump(exclude_none=True) if base is not None else {}
    if override is not None:
        for key, value in override.model_dump(exclude_none=True).items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value
    return UserConfig.model_validate(merged)


def _unknown_provider(provider_id: str) -> ConfigError:
    valid = ", ".join(p.id for p in PROVIDERS)
    return ConfigError(
        f"Unknown provider '{provider_id}'.",
        suggestion=f"Supported providers: {valid}. Run `ai-git --setup` to select one.",
    )


def _unknown_model(provider: ProviderDefinition, model_id: str) -> ConfigError:
    available = ", ".join(m.id for m in provider.models)
    return ConfigError(
        f"Unknown model '{model_id}' for provider '{provider.name}'.",
        suggestion=f"Available models: {available}. Run `ai-git --setup` to select one.",
    )


def resolve_config(
    user: UserConfig | None,
    project: UserConfig | None,
    *,
    provider: str | None = None,
    model: str | None = None,
) -> ConfigResolution:
    """Merge both config layers and the CLI overrides.

    Returns ``needs_setup`` when neither file is usable and neither names a
    provider and model; a file that names an unknown provider or model is an
    error rather than a silent re-run of setup.
    """
    if not is_config_complete(user) and not is_config_complete(project):
        best = project or user
        if best is not None and best.provider and best.model:
            provider_def = get_provider(best.provider)
            if provider_def is None:
                raise _unknown_provider(best.provider)
            raise _unknown_model(provider_def, best.model)
        return ConfigResolution(needs_setup=True)

    merged = merge_configs(user, project)
    provider_id = provider or merged.provider or ""
    provider_def = get_provider(provider_id)
    if provider_def is None:
        raise _unknown_provider(provider_id)

    model_id = model
    if model_id is None:
        if provider is None or provider == merged.provider:
            model_id = merged.model
        elif provider_def.default_model is not None:
            model_id = provider_def.default_model.id
    if not model_id:
        raise ConfigError(
            f"No model configured for provider '{provider_def.name}'.",
            suggestion="Pass --model or run `ai-git --setup`.",
        )

    if provider_def.dynamic_models:
        model_name = model_id
    else:
        model_def = provider_def.get_model(model_id)
        if model_def is None:
            raise _unknown_model(provider_def, model_id)
        model_name = model_def.name

    defaults = merged.defaults or WorkflowDefaults()
    policy = merged.validation or ValidationPolicy()
    unknown_rules = sorted(set(policy.critical_rules) - set(RULES))
    if unknown_rules:
        raise ConfigError(
            f"Unknown validation rule(s): {', '.join(unknown_rules)}.",
            suggestion=f"Valid rules: {', '.join(RULES)}.",
        )

    threshold = merged.slow_warning_threshold_ms
    return ConfigResolution(
        needs_setup=False,
        config=ResolvedConfig(
            provider=provider_def,
            model=model_id,
            model_name=model_name,
            stage_all=bool(defaults.stage_all),
            commit=bool(defaults.commit),
            push=bool(defaults.push),
            prompt=merged.prompt,
            editor=merged.editor,
            slow_warning_threshold_ms=DEFAULT_SLOW_WARNING_THRESHOLD_MS if threshold is None else threshold,
            critical_rules=tuple(policy.critical_rules),
        ),
    )


class ConfigTarget(StrEnum):
    GLOBAL = "global"
    PROJECT = "project"


class FileConfigStore:
    """Reads and writes the global and project config files."""

    def __init__(self, cwd: Path | None = None):
        self.cwd = cwd

    def path_for(self, target: ConfigTarget) -> Path:
        if target is ConfigTarget.PROJECT:
            return project_config_path(self.cwd)
        return global_config_path()

    def load_user(self) -> UserConfig | None:
        return load_config(self.path_for(ConfigTarget.GLOBAL))

    def load_project(self) -> UserConfig | None:
        return load_config(self.path_for(ConfigTarget.PROJECT))

    def save(self, target: ConfigTarget, config: UserConfig) -> Path:
        path = self.path_for(target)
        save_config(path, config)
        return path

    def resolve(self, provider: str | None = None, model: str | None = None) -> ConfigResolution:
        return resolve_config(self.load_user(), self.load_project(), provider=provider, model=model)


__all__ = [
    "APP_NAME",
    "CONFIG_DIR_ENV",
    "DEFAULT_SLOW_WARNING_THRESHOLD_MS",
    "PromptCustomization",
    "WorkflowDefaults",
    "ValidationPolicy",
    "UserConfig",
    "ResolvedConfig",
    "ConfigResolution",
    "global_config_dir",
    "global_config_path",
    "find_repo_root",
    "project_config_path",
    "load_config",
    "save_config",
    "is_config_complete",
    "merge_configs",
    "resolve_config",
    "ConfigTarget",
    "FileConfigStore",
]

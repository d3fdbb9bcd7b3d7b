"""Base protocol and classes for model adapters.

This module defines:
    - ProviderDefinition / ModelDefinition registry records
    - ModelAdapter Protocol used by the generation workflow
    - BaseCLIAdapter for providers driven through a local binary
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol, runtime_checkable

from ai_git.errors import ProviderFailure

logger = logging.getLogger(__name__)


class Mode(StrEnum):
    CLI = "cli"
    API = "api"


@dataclass(frozen=True)
class ModelDefinition:
    id: str
    name: str
    is_default: bool = False


@dataclass(frozen=True)
class ProviderDefinition:
    """Static description of a provider in the registry."""

    id: str
    name: str
    mode: Mode
    binary: str | None = None
    api_key_env: str | None = None
    dynamic_models: bool = False
    is_default: bool = False
    models: tuple[ModelDefinition, ...] = field(default_factory=tuple)

    def get_model(self, model_id: str) -> ModelDefinition | None:
        for model in self.models:
            if model.id == model_id:
                return model
        return None

    @property
    def default_model(self) -> ModelDefinition | None:
        for model in self.models:
            if model.is_default:
                return model
        return self.models[0] if self.models else None


@runtime_checkable
class ModelAdapter(Protocol):
    """Contract every provider adapter satisfies."""

    provider_id: str
    mode: Mode

    async def invoke(self, model: str, system_prompt: str, user_prompt: str) -> str:
        """Return the raw model response text."""
        ...

    async def check_available(self) -> bool:
        """Report whether the provider can be used on this machine."""
        ...


class BaseCLIAdapter:
    """Adapter that runs a provider's CLI binary as a subprocess.

    Subclasses set ``provider_id`` and ``binary`` and implement
    :meth:`build_command`; :meth:`extra_env` lets them pass data such as a
    system-prompt file through the environment.
    """

    provider_id: str = ""
    binary: str = ""
    mode = Mode.CLI
    display_name: str = ""

    def __init__(self, timeout: float | None = 180):
        self.timeout = timeout

    def build_command(self, model: str, system_prompt: str, user_prompt: str) -> list[str]:
        raise NotImplementedError

    def extra_env(self, system_prompt: str) -> dict[str, str]:
        return {}

    def cleanup(self) -> None:
        """Release resources created by :meth:`extra_env`."""

    async def check_available(self) -> bool:
        return shutil.which(self.binary) is not None

    async def invoke(self, model: str, system_prompt: str, user_prompt: str) -> str:
        cmd = self.build_command(model, system_prompt, user_prompt)
        env = {**os.environ, **self.extra_env(system_prompt)}
        logger.debug("Invoking %s with model %s", self.binary, model)
        try:
            try:
                process = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env=env,
                )
            except FileNotFoundError as exc:
                raise ProviderFailure(
                    self.provider_id,
                    f"'{self.binary}' CLI is not installed.",
                    suggestion="Install it or run `ai-git --setup` to pick another provider.",
                ) from exc

            try:
                stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
            except asyncio.TimeoutError as exc:
                process.kill()
                await process.wait()
                raise ProviderFailure(self.provider_id, f"timed out after {self.timeout}s") from exc
        finally:
            self.cleanup()

        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")
        if process.returncode != 0:
            detail = err.strip() or out.strip() or "Unknown error"
            raise ProviderFailure(
                self.provider_id,
                f"{self.display_name or self.binary} CLI error (exit code {process.returncode}):\n{detail}",
            )
        return out


__all__ = [
    "Mode",
    "ModelDefinition",
    "ProviderDefinition",
    "ModelAdapter",
    "BaseCLIAdapter",
]

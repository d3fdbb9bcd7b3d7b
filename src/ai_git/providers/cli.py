"""Adapters for providers reached through a locally installed CLI."""

from __future__ import annotations

import os
import re
import tempfile

from ai_git.providers.base import BaseCLIAdapter

_CLAUDE_EFFORT_RE = re.compile(r"^(.+)-(low|medium|high)$")
_CODEX_EFFORT_RE = re.compile(r"^(.+)-(xhigh|high|medium|low)$")


class ClaudeCodeAdapter(BaseCLIAdapter):
    """Claude Code (``claude -p``) with tools and sessions disabled.

    Model ids may carry an effort suffix such as ``sonnet-high``.
    """

    provider_id = "claude-code"
    binary = "claude"
    display_name = "Claude"

    def build_command(self, model: str, system_prompt: str, user_prompt: str) -> list[str]:
        effort = None
        match = _CLAUDE_EFFORT_RE.match(model)
        if match:
            model, effort = match.group(1), match.group(2)

        cmd = [
            self.binary,
            "-p",
            "--model",
            model,
            "--system-prompt",
            system_prompt,
            "--tools",
            "",
            "--no-session-persistence",
            "--disable-slash-commands",
            "--strict-mcp-config",
        ]
        if effort:
            cmd.extend(["--effort", effort])
        cmd.append(user_prompt)
        return cmd


class GeminiCLIAdapter(BaseCLIAdapter):
    """Gemini CLI; the system prompt is passed as a file via GEMINI_SYSTEM_MD."""

    provider_id = "gemini-cli"
    binary = "gemini"
    display_name = "Gemini"

    def __init__(self, timeout: float | None = 180):
        super().__init__(timeout)
        self._system_file: str | None = None

    def build_command(self, model: str, system_prompt: str, user_prompt: str) -> list[str]:
        return [
            self.binary,
            "-p",
            "--model",
            model,
            "--output-format",
            "text",
            "--approval-mode",
            "plan",
            user_prompt,
        ]

    def extra_env(self, system_prompt: str) -> dict[str, str]:
        with tempfile.NamedTemporaryFile(
            "w", prefix="ai-git-system-", suffix=".md", delete=False, encoding="utf-8"
        ) as handle:
            handle.write(system_prompt)
            self._system_file = handle.name
        return {"GEMINI_SYSTEM_MD": self._system_file}

    def cleanup(self) -> None:
        if self._system_file is None:
            return
        try:
            os.unlink(self._system_file)
        except FileNotFoundError:
            pass
        self._system_file = None


class CodexAdapter(BaseCLIAdapter):
    """Codex CLI (``codex exec``); the system prompt is prepended to the prompt."""

    provider_id = "codex"
    binary = "codex"
    display_name = "Codex"

    def build_command(self, model: str, system_prompt: str, user_prompt: str) -> list[str]:
        effort = "medium"
        match = _CODEX_EFFORT_RE.match(model)
        if match:
            model, effort = match.group(1), match.group(2)
        return [
            self.binary,
            "--model",
            model,
            "-c",
            f"model_reasoning_effort={effort}",
            "exec",
            f"{system_prompt}\n\n{user_prompt}",
        ]


__all__ = ["ClaudeCodeAdapter", "GeminiCLIAdapter", "CodexAdapter"]

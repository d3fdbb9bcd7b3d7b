"""CLI adapters: command construction and subprocess error handling."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ai_git.errors import ProviderFailure
from ai_git.providers import PROVIDERS, get_adapter, get_provider
from ai_git.providers.cli import ClaudeCodeAdapter, CodexAdapter, GeminiCLIAdapter


def fake_process(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> MagicMock:
    process = MagicMock()
    process.returncode = returncode
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.wait = AsyncMock(return_value=returncode)
    return process


class TestRegistry:
    def test_every_provider_has_an_adapter(self):
        for provider in PROVIDERS:
            adapter = get_adapter(provider.id)
            assert adapter is not None
            assert adapter.provider_id == provider.id
            assert adapter.mode is provider.mode

    def test_unknown_provider(self):
        assert get_provider("copilot") is None
        assert get_adapter("copilot") is None

    def test_static_providers_have_one_default_model(self):
        for provider in PROVIDERS:
            if provider.dynamic_models:
                assert provider.models == ()
            else:
                assert sum(model.is_default for model in provider.models) == 1


class TestCommands:
    def test_claude_disables_tools_and_sessions(self):
        cmd = ClaudeCodeAdapter().build_command("haiku", "SYSTEM", "USER")

        assert cmd[:5] == ["claude", "-p", "--model", "haiku", "--system-prompt"]
        assert "--no-session-persistence" in cmd
        assert cmd[cmd.index("--tools") + 1] == ""
        assert "--effort" not in cmd
        assert cmd[-1] == "USER"

    def test_claude_effort_suffix_is_split_off(self):
        cmd = ClaudeCodeAdapter().build_command("sonnet-high", "SYSTEM", "USER")

        assert cmd[cmd.index("--model") + 1] == "sonnet"
        assert cmd[cmd.index("--effort") + 1] == "high"

    def test_codex_prepends_system_prompt_and_defaults_effort(self):
        cmd = CodexAdapter().build_command("gpt-5-codex", "SYSTEM", "USER")

        assert cmd[:3] == ["codex", "--model", "gpt-5-codex"]
        assert "model_reasoning_effort=medium" in cmd
        assert cmd[-2] == "exec"
        assert cmd[-1] == "SYSTEM\n\nUSER"

    def test_codex_effort_suffix(self):
        cmd = CodexAdapter().build_command("gpt-5-xhigh", "S", "U")

        assert cmd[2] == "gpt-5"
        assert "model_reasoning_effort=xhigh" in cmd

    def test_gemini_writes_system_prompt_file_and_cleans_up(self):
        adapter = GeminiCLIAdapter()

        env = adapter.extra_env("SYSTEM PROMPT")
        path = Path(env["GEMINI_SYSTEM_MD"])

        assert path.read_text(encoding="utf-8") == "SYSTEM PROMPT"
        adapter.cleanup()
        assert not path.exists()
        adapter.cleanup()


class TestInvoke:
    @pytest.mark.asyncio
    async def test_returns_stdout(self):
        process = fake_process(stdout=b"feat: add login\n")
        with patch("ai_git.providers.base.asyncio.create_subprocess_exec", AsyncMock(return_value=process)) as spawn:
            result = await ClaudeCodeAdapter().invoke("haiku", "S", "U")

        assert result == "feat: add login\n"
        assert spawn.call_args.args[0] == "claude"
        assert spawn.call_args.kwargs["stdin"] == asyncio.subprocess.DEVNULL

    @pytest.mark.asyncio
    async def test_gemini_passes_system_file_and_removes_it(self):
        process = fake_process(stdout=b"fix: x")
        with patch("ai_git.providers.base.asyncio.create_subprocess_exec", AsyncMock(return_value=process)) as spawn:
            await GeminiCLIAdapter().invoke("gemini-2.5-flash", "SYSTEM", "U")

        system_file = spawn.call_args.kwargs["env"]["GEMINI_SYSTEM_MD"]
        assert not os.path.exists(system_file)

    @pytest.mark.asyncio
    async def test_nonzero_exit_reports_stderr(self):
        process = fake_process(returncode=2, stderr=b"rate limited\n")
        with patch("ai_git.providers.base.asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(ProviderFailure) as excinfo:
                await CodexAdapter().invoke("gpt-5", "S", "U")

        assert excinfo.value.provider == "codex"
        assert "Codex CLI error (exit code 2)" in str(excinfo.value)
        assert "rate limited" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_missing_binary(self):
        with patch(
            "ai_git.providers.base.asyncio.create_subprocess_exec",
            AsyncMock(side_effect=FileNotFoundError("claude")),
        ):
            with pytest.raises(ProviderFailure) as excinfo:
                await ClaudeCodeAdapter().invoke("haiku", "S", "U")

        assert "'claude' CLI is not installed." in str(excinfo.value)
        assert "--setup" in excinfo.value.suggestion

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        process = fake_process()

        async def hang():
            await asyncio.sleep(10)

        process.communicate = hang
        process.kill = MagicMock()
        with patch("ai_git.providers.base.asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(ProviderFailure, match="timed out"):
                await ClaudeCodeAdapter(timeout=0.01).invoke("haiku", "S", "U")

        process.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_availability_follows_path_lookup(self):
        with patch("ai_git.providers.base.shutil.which", return_value=None):
            assert await CodexAdapter().check_available() is False
        with patch("ai_git.providers.base.shutil.which", return_value="/usr/bin/codex"):
            assert await CodexAdapter().check_available() is True

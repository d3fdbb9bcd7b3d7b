from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Iterator

import pytest

from ai_git.config import ConfigResolution, ConfigTarget, UserConfig, resolve_config
from ai_git.core.git import CommitResult, RepoContext
from ai_git.core.paths import filter_excluded
from ai_git.providers import Mode
from ai_git.update_check import UpdateCheckResult
from ai_git.workflow.actors import Actors


def run(cmd: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    return subprocess.run(cmd, cwd=cwd, check=True, capture_output=True, text=True)


class FakeGit:
    """In-memory GitClient that records every call."""

    def __init__(self) -> None:
        self.staged: list[str] = []
        self.unstaged: list[str] = []
        self.branch = "feature/login"
        self.context = RepoContext(
            diff="diff --git a/app.py b/app.py\n+print('hi')",
            commits=("feat: initial commit",),
            file_list="M\tapp.py",
        )
        self.ahead = 0
        self.branch_error: Exception | None = None
        self.context_error: Exception | None = None
        self.commit_error: Exception | None = None
        self.fetch_error: Exception | None = None
        self.count_error: Exception | None = None
        self.pull_error: Exception | None = None
        self.push_errors: list[Exception] = []
        self.remote_error: Exception | None = None
        # paths git silently declines to stage, e.g. ignored by a hook
        self.unstageable: set[str] = set()
        self.commits: list[str] = []
        self.calls: list[tuple] = []

    def called(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    def _move(self, files) -> None:
        for path in files:
            if path in self.unstageable:
                continue
            if path in self.unstaged:
                self.unstaged.remove(path)
            if path not in self.staged:
                self.staged.append(path)

    async def get_staged_files(self) -> list[str]:
        self.calls.append(("get_staged_files",))
        return list(self.staged)

    async def get_unstaged_files(self) -> list[str]:
        self.calls.append(("get_unstaged_files",))
        return list(self.unstaged)

    async def stage_files(self, files) -> None:
        self.calls.append(("stage_files", tuple(files)))
        self._move(files)

    async def stage_all_except(self, exclude) -> None:
        self.calls.append(("stage_all_except", tuple(exclude)))
        self._move(filter_excluded(list(self.unstaged), exclude))

    async def commit(self, message: str) -> CommitResult:
        self.calls.append(("commit", message))
        if self.commit_error is not None:
            raise self.commit_error
        self.commits.append(message)
        return CommitResult(
            hash="abc1234",
            branch=self.branch,
            subject=message.split("\n", 1)[0],
            files_changed=len(self.staged),
        )

    async def push(self) -> None:
        self.calls.append(("push",))
        if self.push_errors:
            raise self.push_errors.pop(0)

    async def add_remote_and_push(self, url: str) -> None:
        self.calls.append(("add_remote_and_push", url))
        if self.remote_error is not None:
            raise self.remote_error

    async def fetch_remote(self) -> None:
        self.calls.append(("fetch_remote",))
        if self.fetch_error is not None:
            raise self.fetch_error

    async def get_remote_ahead_count(self) -> int:
        self.calls.append(("get_remote_ahead_count",))
        if self.count_error is not None:
            raise self.count_error
        return self.ahead

    async def pull_rebase(self) -> None:
        self.calls.append(("pull_rebase",))
        if self.pull_error is not None:
            raise self.pull_error
        self.ahead = 0

    async def get_branch_name(self) -> str:
        self.calls.append(("get_branch_name",))
        if self.branch_error is not None:
            raise self.branch_error
        return self.branch

    async def gather_context(self) -> RepoContext:
        self.calls.append(("gather_context",))
        if self.context_error is not None:
            raise self.context_error
        return self.context


class ScriptedPrompts:
    """PromptSurface answering from a queue; exceptions in the queue are raised."""

    def __init__(self) -> None:
        self.answers: list = []
        self.asked: list[tuple] = []
        self.choice_sets: list[tuple] = []
        self.countdown_error: BaseException | None = None

    def queue(self, *answers) -> "ScriptedPrompts":
        self.answers.extend(answers)
        return self

    def messages(self, kind: str | None = None) -> list[str]:
        return [message for asked_kind, message, _ in self.asked if kind is None or asked_kind == kind]

    def _next(self, kind: str, message: str, choices=()):
        self.asked.append((kind, message, tuple(choice.value for choice in choices)))
        self.choice_sets.append(tuple(choices))
        if not self.answers:
            raise AssertionError(f"Unexpected {kind} prompt: {message}")
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer

    def select(self, message, choices, default=None):
        return self._next("select", message, choices)

    def multiselect(self, message, choices):
        return self._next("multiselect", message, choices)

    def confirm(self, message, default=True):
        return self._next("confirm", message)

    def text(self, message, *, default=None, validate=None):
        return self._next("text", message)

    def edit(self, text, editor=None):
        return self._next("edit", text)

    def countdown(self, message, seconds):
        self.asked.append(("countdown", message, ()))
        if self.countdown_error is not None:
            raise self.countdown_error


class RecordingDisplay:
    def __init__(self) -> None:
        self.events: list[tuple] = []

    def of(self, kind: str) -> list[tuple]:
        return [event[1:] for event in self.events if event[0] == kind]

    def texts(self, kind: str) -> list[str]:
        return [str(event[0]) for event in self.of(kind)]

    def info(self, message):
        self.events.append(("info", message))

    def success(self, message):
        self.events.append(("success", message))

    def warn(self, message):
        self.events.append(("warn", message))

    def error(self, message, suggestion=None):
        self.events.append(("error", message, suggestion))

    def show_welcome(self, version, config):
        self.events.append(("welcome", version, config))

    def show_update(self, result):
        self.events.append(("update", result))

    def show_message(self, message, validation):
        self.events.append(("message", message, validation))

    def show_commit_result(self, result):
        self.events.append(("commit_result", result))

    def show_dry_run(self, system_prompt, user_prompt):
        self.events.append(("dry_run", system_prompt, user_prompt))


class FakeInvoker:
    """ModelInvoker returning scripted responses in order."""

    def __init__(self) -> None:
        self.responses: list = []
        self.calls: list[dict] = []

    def queue(self, *responses) -> "FakeInvoker":
        self.responses.extend(responses)
        return self

    async def invoke(self, adapter, *, model, model_name, system_prompt, user_prompt, slow_threshold_ms):
        self.calls.append(
            {
                "adapter": adapter,
                "model": model,
                "model_name": model_name,
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "slow_threshold_ms": slow_threshold_ms,
            }
        )
        if not self.responses:
            raise AssertionError("No scripted model response left")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


class FakeAdapter:
    def __init__(self, provider_id: str = "claude-code", mode: Mode = Mode.CLI, available: bool = True) -> None:
        self.provider_id = provider_id
        self.mode = mode
        self.available = available

    async def invoke(self, model, system_prompt, user_prompt):
        raise AssertionError("FakeAdapter is only called through FakeInvoker")

    async def check_available(self) -> bool:
        return self.available


class InMemoryConfigStore:
    def __init__(self, user: UserConfig | None = None, project: UserConfig | None = None) -> None:
        self.user = user
        self.project = project
        self.saved: list[tuple[ConfigTarget, UserConfig]] = []
        self.load_error: Exception | None = None

    def load_user(self) -> UserConfig | None:
        return self.user

    def load_project(self) -> UserConfig | None:
        if self.load_error is not None:
            raise self.load_error
        return self.project

    def save(self, target: ConfigTarget, config: UserConfig) -> Path:
        self.saved.append((target, config))
        if target is ConfigTarget.PROJECT:
            self.project = config
            return Path("/repo/.ai-git.yaml")
        self.user = config
        return Path("/config/ai-git/config.yaml")

    def resolve(self, provider: str | None = None, model: str | None = None) -> ConfigResolution:
        return resolve_config(self.load_user(), self.load_project(), provider=provider, model=model)


@pytest.fixture
def git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def prompts() -> ScriptedPrompts:
    return ScriptedPrompts()


@pytest.fixture
def display() -> RecordingDisplay:
    return RecordingDisplay()


@pytest.fixture
def invoker() -> FakeInvoker:
    return FakeInvoker()


@pytest.fixture
def adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def config_store() -> InMemoryConfigStore:
    return InMemoryConfigStore(user=UserConfig(provider="claude-code", model="haiku"))


@pytest.fixture
def actors(git, prompts, display, config_store, invoker, adapter) -> Actors:
    async def check_update(version: str) -> UpdateCheckResult:
        return UpdateCheckResult(update_available=False, current_version=version)

    return Actors(
        git=git,
        prompts=prompts,
        display=display,
        config_store=config_store,
        invoker=invoker,
        adapter_for=lambda provider_id: adapter,
        check_repository=lambda: None,
        check_update=check_update,
    )


@pytest.fixture()
def temp_repo(tmp_path: Path) -> Iterator[Path]:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    repo_dir = tmp_path / "repo"
    repo_dir.mkdir()
    run(["git", "init", "-b", "main"], cwd=repo_dir)
    run(["git", "config", "user.name", "ai-git tests"], cwd=repo_dir)
    run(["git", "config", "user.email", "tests@example.com"], cwd=repo_dir)
    run(["git", "config", "commit.gpgsign", "false"], cwd=repo_dir)
    yield repo_dir


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    config_dir = tmp_path / "config-home"
    monkeypatch.setenv("AI_GIT_CONFIG_DIR", str(config_dir))
    monkeypatch.setenv("AI_GIT_DISABLE_UPDATE_CHECK", "1")
    return config_dir


@pytest.fixture
def fake_adapter_cls() -> type[FakeAdapter]:
    return FakeAdapter

"""Git operations used by the workflow actors.

``GitClient`` is the contract the orchestrators depend on;
``SubprocessGitClient`` is the production implementation that shells out to
``git`` through asyncio subprocesses. Every mutating call is followed by an
authoritative re-read in the staging workflow, so no state is cached here.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence

from ai_git.core.paths import filter_excluded
from ai_git.errors import GitOperationFailure

logger = logging.getLogger(__name__)

LOCKFILE_EXCLUDES: tuple[str, ...] = (
    ":(exclude)package-lock.json",
    ":(exclude)yarn.lock",
    ":(exclude)pnpm-lock.yaml",
    ":(exclude)bun.lockb",
    ":(exclude)bun.lock",
    ":(exclude)Cargo.lock",
    ":(exclude)Gemfile.lock",
    ":(exclude)composer.lock",
    ":(exclude)poetry.lock",
    ":(exclude)uv.lock",
    ":(exclude)deno.lock",
    ":(exclude)go.sum",
)

MAX_DIFF_LINES = 2500
DIFF_TRUNCATED_MARKER = "... [DIFF TRUNCATED] ..."
RECENT_COMMIT_COUNT = 5

_COMMIT_HEADER_RE = re.compile(r"^\[([^\]]+?)(?:\s+\([^)]+\))?\s+([a-f0-9]+)\]")
_COMMIT_SUBJECT_RE = re.compile(r"\]\s+(.+)$")
_COMMIT_STATS_RE = re.compile(
    r"(\d+)\s+files?\s+changed(?:,\s+(\d+)\s+insertions?\(\+\))?(?:,\s+(\d+)\s+deletions?\(-\))?"
)
_CREATE_MODE_RE = re.compile(r"^\s+create mode \d+ (.+)$")
_DELETE_MODE_RE = re.compile(r"^\s+delete mode \d+ (.+)$")
_RENAME_RE = re.compile(r"^\s+rename (.+) => (.+) \(\d+%\)$")


@dataclass(frozen=True)
class ChangedFile:
    status: str  # "A", "D" or "R"
    path: str


@dataclass(frozen=True)
class CommitResult:
    """Structured summary of a created commit."""

    hash: str
    branch: str
    subject: str
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0
    files: tuple[ChangedFile, ...] = field(default_factory=tuple)
    is_root: bool = False


@dataclass(frozen=True)
class RepoContext:
    """Staged diff and surrounding history handed to the prompt builder."""

    diff: str
    commits: tuple[str, ...] = field(default_factory=tuple)
    file_list: str = ""


class GitClient(Protocol):
    async def get_staged_files(self) -> list[str]: ...

    async def get_unstaged_files(self) -> list[str]: ...

    async def stage_files(self, files: Sequence[str]) -> None: ...

    async def stage_all_except(self, exclude: Sequence[str]) -> None: ...

    async def commit(self, message: str) -> CommitResult: ...

    async def push(self) -> None: ...

    async def add_remote_and_push(self, url: str) -> None: ...

    async def fetch_remote(self) -> None: ...

    async def get_remote_ahead_count(self) -> int: ...

    async def pull_rebase(self) -> None: ...

    async def get_branch_name(self) -> str: ...

    async def gather_context(self) -> RepoContext: ...


@dataclass
class _GitCommandResult:
    returncode: int
    stdout: str
    stderr: str


async def _run_git(cwd: Path | None, args: Sequence[str], timeout: float | None = 60) -> _GitCommandResult:
    """Run git and normalize failure shape for deterministic handling."""
    try:
        process = await asyncio.create_subprocess_exec(
            "git",
            *args,
            cwd=str(cwd) if cwd else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        return _GitCommandResult(returncode=127, stdout="", stderr="git executable not found on PATH")

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return _GitCommandResult(
            returncode=124,
            stdout="",
            stderr=f"git command timed out: git {' '.join(args)}",
        )

    return _GitCommandResult(
        returncode=process.returncode if process.returncode is not None else 1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


def _lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def _paths(text: str) -> list[str]:
    """Split NUL-terminated (``-z``) path output; names are never quoted."""
    return [path for path in text.split("\0") if path]


def truncate_diff(diff: str, max_lines: int = MAX_DIFF_LINES) -> str:
    lines = diff.split("\n")
    if len(lines) <= max_lines:
        return diff
    return "\n".join(lines[:max_lines]) + f"\n{DIFF_TRUNCATED_MARKER}"


def parse_commit_output(stdout: str, message: str) -> CommitResult:
    """Parse ``git commit`` output into a :class:`CommitResult`.

    Format: ``[branch (root-commit) hash] subject`` followed by the stats
    line and create/delete/rename mode lines. The branch label may be
    ``detached HEAD``.
    """
    lines = stdout.strip().split("\n")
    first = lines[0] if lines else ""

    header = _COMMIT_HEADER_RE.match(first)
    branch = header.group(1) if header else "unknown"
    commit_hash = header.group(2) if header else "unknown"
    subject_match = _COMMIT_SUBJECT_RE.search(first)
    subject = subject_match.group(1) if subject_match else message.split("\n", 1)[0]

    files_changed = insertions = deletions = 0
    for line in lines:
        stats = _COMMIT_STATS_RE.search(line)
        if stats:
            files_changed = int(stats.group(1))
            insertions = int(stats.group(2) or 0)
            deletions = int(stats.group(3) or 0)
            break

    files: list[ChangedFile] = []
    for line in lines:
        if match := _CREATE_MODE_RE.match(line):
            files.append(ChangedFile("A", match.group(1)))
        elif match := _DELETE_MODE_RE.match(line):
            files.append(ChangedFile("D", match.group(1)))
        elif match := _RENAME_RE.match(line):
            files.append(ChangedFile("R", f"{match.group(1)} → {match.group(2)}"))

    return CommitResult(
        hash=commit_hash,
        branch=branch,
        subject=subject,
        files_changed=files_changed,
        insertions=insertions,
        deletions=deletions,
        files=tuple(files),
        is_root="(root-commit)" in first,
    )


class SubprocessGitClient:
    """GitClient backed by the ``git`` executable."""

    def __init__(self, cwd: Path | None = None, timeout: float | None = 60):
        self.cwd = cwd
        self.timeout = timeout

    async def _git(self, *args: str, timeout: float | None = None) -> str:
        result = await _run_git(self.cwd, args, timeout=timeout or self.timeout)
        logger.debug("git %s -> %s", " ".join(args), result.returncode)
        if result.returncode != 0:
            raise GitOperationFailure(args, result.returncode, result.stderr)
        return result.stdout

    async def get_staged_files(self) -> list[str]:
        return _paths(await self._git("diff", "--cached", "--name-only", "-z"))

    async def get_unstaged_files(self) -> list[str]:
        modified = await self._git("ls-files", "-m", "--exclude-standard", "-z")
        untracked = await self._git("ls-files", "-o", "--exclude-standard", "-z")
        return list(dict.fromkeys(_paths(modified) + _paths(untracked)))

    async def stage_files(self, files: Sequence[str]) -> None:
        for path in files:
            await self._git("add", "--", path)

    async def stage_all_except(self, exclude: Sequence[str]) -> None:
        if not exclude:
            await self._git("add", "-A")
            return
        to_stage = filter_excluded(await self.get_unstaged_files(), exclude)
        if to_stage:
            await self.stage_files(to_stage)

    async def commit(self, message: str) -> CommitResult:
        stdout = await self._git("-c", "core.quotePath=false", "commit", "-m", message)
        return parse_commit_output(stdout, message)

    async def push(self) -> None:
        # Network operations run without the local timeout
        await self._git("push", timeout=None)

    async def add_remote_and_push(self, url: str) -> None:
        await self._git("remote", "add", "origin", url)
        await self._git("push", "-u", "origin", "HEAD", timeout=None)

    async def fetch_remote(self) -> None:
        await self._git("fetch", timeout=None)

    async def get_remote_ahead_count(self) -> int:
        output = await self._git("rev-list", "HEAD..@{u}", "--count")
        try:
            return int(output.strip())
        except ValueError:
            return 0

    async def pull_rebase(self) -> None:
        await self._git("pull", "--rebase", timeout=None)

    async def get_branch_name(self) -> str:
        return (await self._git("rev-parse", "--abbrev-ref", "HEAD")).strip()

    async def gather_context(self) -> RepoContext:
        diff, commits, file_list = await asyncio.gather(
            self._staged_diff(),
            self._recent_commits(),
            self._staged_file_list(),
        )
        return RepoContext(diff=diff, commits=commits, file_list=file_list)

    async def _staged_diff(self) -> str:
        diff = await self._git("diff", "--staged", "--", ".", *LOCKFILE_EXCLUDES)
        if not diff.strip():
            diff = await self._git("diff", "--staged", "--stat")
        return truncate_diff(diff)

    async def _recent_commits(self) -> tuple[str, ...]:
        # An unborn branch has no log
        result = await _run_git(self.cwd, ["log", f"-{RECENT_COMMIT_COUNT}", "--format=%s"], timeout=self.timeout)
        if result.returncode != 0:
            return ()
        return tuple(_lines(result.stdout))

    async def _staged_file_list(self) -> str:
        output = await self._git(
            "-c", "core.quotePath=false", "diff", "--staged", "--name-status", "--", ".", *LOCKFILE_EXCLUDES
        )
        return output.strip()


__all__ = [
    "LOCKFILE_EXCLUDES",
    "MAX_DIFF_LINES",
    "DIFF_TRUNCATED_MARKER",
    "ChangedFile",
    "CommitResult",
    "RepoContext",
    "GitClient",
    "SubprocessGitClient",
    "parse_commit_output",
    "truncate_diff",
]

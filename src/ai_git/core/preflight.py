"""Git preflight checks run before any workflow touches the index."""

from __future__ import annotations

import shlex
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from ai_git.errors import PreflightError

__all__ = [
    "GitPreflightIssue",
    "GitPreflightResult",
    "run_git_preflight",
    "require_git_repository",
]


@dataclass
class GitPreflightIssue:
    """Single preflight issue with optional remediation command."""

    code: str
    message: str
    remediation: str
    command: str | None = None


@dataclass
class GitPreflightResult:
    repo_root: Path
    errors: list[GitPreflightIssue] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.errors

    @property
    def first_error(self) -> GitPreflightIssue | None:
        return self.errors[0] if self.errors else None


def _is_dubious_ownership(stderr: str) -> bool:
    text = stderr.lower()
    return "dubious ownership" in text or "safe.directory" in text


def _first_line(text: str) -> str:
    for line in text.splitlines():
        stripped = line.strip()
        if stripped:
            return stripped
    return ""


def run_git_preflight(cwd: Path, *, timeout: int = 15) -> GitPreflightResult:
    """Check that git is installed and ``cwd`` is inside a work tree."""
    root = cwd.resolve()
    result = GitPreflightResult(repo_root=root)

    if shutil.which("git") is None:
        result.errors.append(
            GitPreflightIssue(
                code="GIT_NOT_INSTALLED",
                message="'git' is not installed.",
                remediation="Install git: https://git-scm.com/downloads",
            )
        )
        return result

    try:
        completed = subprocess.run(
            ["git", "rev-parse", "--is-inside-work-tree"],
            cwd=str(root),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout,
        )
        returncode, stdout, stderr = completed.returncode, completed.stdout or "", completed.stderr or ""
    except subprocess.TimeoutExpired:
        returncode, stdout, stderr = 124, "", "git rev-parse timed out"

    if returncode == 0 and stdout.strip().lower() == "true":
        return result

    if _is_dubious_ownership(stderr):
        result.errors.append(
            GitPreflightIssue(
                code="UNTRUSTED_REPOSITORY",
                message="Git rejected repository ownership trust (safe.directory).",
                remediation="Mark the repository as trusted for this machine.",
                command=f"git config --global --add safe.directory {shlex.quote(str(root))}",
            )
        )
    else:
        detail = _first_line(stderr) or "Not a git repository."
        result.errors.append(
            GitPreflightIssue(
                code="NOT_A_GIT_REPOSITORY",
                message=f"Not a git repository: {detail}",
                remediation="Run this command inside a git repository, or create one.",
                command="git init",
            )
        )
    return result


def require_git_repository(cwd: Path) -> Path:
    """Raise :class:`PreflightError` unless ``cwd`` is a usable repository."""
    result = run_git_preflight(cwd)
    issue = result.first_error
    if issue is not None:
        suggestion = issue.remediation
        if issue.command:
            suggestion = f"{suggestion} ({issue.command})"
        raise PreflightError(issue.message, suggestion=suggestion)
    return result.repo_root

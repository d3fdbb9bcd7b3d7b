"""Exception hierarchy for ai-git workflows."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from ai_git.core.validation import ValidationResult


class AiGitError(Exception):
    """Base exception for ai-git errors.

    ``suggestion`` carries an actionable next step shown under the error
    message when the failure reaches the terminal.
    """

    exit_code: int = 1

    def __init__(self, message: str, *, suggestion: str | None = None):
        self.suggestion = suggestion
        super().__init__(message)


class UserCancelled(AiGitError):
    """The user dismissed a prompt (Esc, Ctrl+C or end of input)."""

    def __init__(self, message: str = "Operation cancelled."):
        super().__init__(message)


class ValidationFailure(AiGitError):
    """A generated commit message failed one or more critical rules."""

    def __init__(self, result: "ValidationResult"):
        self.result = result
        failing = ", ".join(error.rule for error in result.critical_errors)
        super().__init__(f"Commit message failed validation ({failing}).")


class ProviderFailure(AiGitError):
    """The model invocation itself failed."""

    def __init__(self, provider: str, message: str, *, suggestion: str | None = None):
        self.provider = provider
        super().__init__(f"{provider}: {message}", suggestion=suggestion)


class GitOperationFailure(AiGitError):
    """A git command exited non-zero."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str):
        self.command = tuple(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"git {' '.join(args)} failed: {detail}")


class DivergenceFailure(AiGitError):
    """The remote branch has commits the local branch lacks."""

    def __init__(self, ahead: int):
        self.ahead = ahead
        super().__init__(
            f"Remote has {ahead} new commit(s). Pull before pushing.",
            suggestion="Run `git pull --rebase` and then `git push`.",
        )


class ConfigError(AiGitError):
    """Configuration could not be read or names an unknown provider/model."""


class PreflightError(AiGitError):
    """git is unavailable or the working directory is not a repository."""


__all__ = [
    "AiGitError",
    "UserCancelled",
    "ValidationFailure",
    "ProviderFailure",
    "GitOperationFailure",
    "DivergenceFailure",
    "ConfigError",
    "PreflightError",
]

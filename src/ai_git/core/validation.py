"""Conventional Commits validation for generated messages.

Each rule reports a :class:`ValidationIssue`. Whether an issue blocks the
message is decided by the critical rule set passed in (normally taken from
``UserConfig.validation.critical_rules``); rules outside that set keep their
advisory severity. A message is valid when no critical issue remains.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Iterable


class Severity(StrEnum):
    """How strongly a rule violation counts against a message."""

    CRITICAL = "critical"
    IMPORTANT = "important"
    MINOR = "minor"


VALID_TYPES: tuple[str, ...] = (
    "feat",
    "fix",
    "refactor",
    "perf",
    "style",
    "docs",
    "test",
    "build",
    "ci",
    "chore",
    "revert",
)

MAX_HEADER_LENGTH = 50

DEFAULT_CRITICAL_RULES: frozenset[str] = frozenset({"header-length", "valid-type", "no-markdown"})

# Advisory severity for rules that are not configured as critical
_ADVISORY_SEVERITY: dict[str, Severity] = {
    "header-length": Severity.IMPORTANT,
    "valid-type": Severity.IMPORTANT,
    "no-markdown": Severity.IMPORTANT,
    "imperative-mood": Severity.IMPORTANT,
    "lowercase-subject": Severity.IMPORTANT,
    "breaking-change-consistency": Severity.IMPORTANT,
    "no-period": Severity.MINOR,
}

RULES: tuple[str, ...] = tuple(_ADVISORY_SEVERITY)

_TYPE_RE = re.compile(r"^(\w+)(?:\(.*?\))?!?:")
_BANG_RE = re.compile(r"^\w+(?:\([^)]*\))?!:")
_BREAKING_FOOTER_RE = re.compile(r"^BREAKING CHANGE:", re.MULTILINE)
_PAST_TENSE_RE = re.compile(r"^(added|fixed|updated|removed|changed|implemented|created)\b", re.IGNORECASE)
_SUBJECT_PREFIX_RE = re.compile(r"^.*?:\s*")


@dataclass(frozen=True)
class ValidationIssue:
    rule: str
    severity: Severity
    message: str
    suggestion: str


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one commit message."""

    valid: bool
    errors: tuple[ValidationIssue, ...] = field(default_factory=tuple)

    @property
    def critical_errors(self) -> tuple[ValidationIssue, ...]:
        return tuple(e for e in self.errors if e.severity is Severity.CRITICAL)

    @property
    def warnings(self) -> tuple[ValidationIssue, ...]:
        return tuple(e for e in self.errors if e.severity is not Severity.CRITICAL)


def _issue(rule: str, critical: frozenset[str], message: str, suggestion: str) -> ValidationIssue:
    severity = Severity.CRITICAL if rule in critical else _ADVISORY_SEVERITY[rule]
    return ValidationIssue(rule=rule, severity=severity, message=message, suggestion=suggestion)


def validate_commit_message(
    message: str,
    critical_rules: Iterable[str] = DEFAULT_CRITICAL_RULES,
) -> ValidationResult:
    """Validate ``message`` and classify each violation by severity."""
    critical = frozenset(critical_rules)
    issues: list[ValidationIssue] = []
    header = message.split("\n", 1)[0]

    if len(header) > MAX_HEADER_LENGTH:
        issues.append(
            _issue(
                "header-length",
                critical,
                f"Header is {len(header)} chars (max {MAX_HEADER_LENGTH})",
                f"Shorten to {MAX_HEADER_LENGTH} characters or fewer",
            )
        )

    type_match = _TYPE_RE.match(header)
    if type_match is None or type_match.group(1) not in VALID_TYPES:
        issues.append(
            _issue(
                "valid-type",
                critical,
                f"Header must start with a valid type: {', '.join(VALID_TYPES)}",
                "Remove any preamble text before the type",
            )
        )

    if "```" in message or "**" in message:
        issues.append(
            _issue(
                "no-markdown",
                critical,
                "Message contains markdown formatting",
                "Output raw text only, no code blocks or bold markers",
            )
        )

    subject = _SUBJECT_PREFIX_RE.sub("", header, count=1)
    if _PAST_TENSE_RE.match(subject):
        issues.append(
            _issue(
                "imperative-mood",
                critical,
                "Subject uses past tense instead of imperative",
                "Use imperative mood: 'add' not 'added', 'fix' not 'fixed'",
            )
        )

    if subject and subject[0].isupper():
        issues.append(
            _issue(
                "lowercase-subject",
                critical,
                "Subject should start with lowercase",
                f'Change to: "{subject[0].lower()}{subject[1:]}"',
            )
        )

    if subject.endswith("."):
        issues.append(_issue("no-period", critical, "Subject should not end with a period", "Remove trailing period"))

    has_bang = _BANG_RE.match(header) is not None
    has_footer = _BREAKING_FOOTER_RE.search(message) is not None
    if has_bang != has_footer:
        issues.append(
            _issue(
                "breaking-change-consistency",
                critical,
                "Header has ! but no BREAKING CHANGE footer"
                if has_bang
                else "Has BREAKING CHANGE footer but no ! in header",
                "Use both ! in header AND BREAKING CHANGE: in footer",
            )
        )

    return ValidationResult(
        valid=not any(issue.severity is Severity.CRITICAL for issue in issues),
        errors=tuple(issues),
    )


def build_retry_context(errors: Iterable[str], previous_message: str) -> str:
    """Describe why the previous attempt was rejected, for the next prompt.

    ``errors`` are the rendered critical issue texts recorded on the
    generation state.
    """
    previous_header = previous_message.split("\n", 1)[0]
    lines = [
        "# VALIDATION ERRORS IN PREVIOUS ATTEMPT",
        "Previous output:",
        f'"{previous_header}"',
        "",
        "Issues:",
    ]
    lines.extend(f"- {error}" for error in errors)
    return "\n".join(lines) + "\n"


def format_issue(issue: ValidationIssue) -> str:
    return f"{issue.message}. Fix: {issue.suggestion}"


__all__ = [
    "Severity",
    "VALID_TYPES",
    "MAX_HEADER_LENGTH",
    "DEFAULT_CRITICAL_RULES",
    "RULES",
    "ValidationIssue",
    "ValidationResult",
    "validate_commit_message",
    "build_retry_context",
    "format_issue",
]

"""Prompt construction and model-response cleanup."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from ai_git.config import PromptCustomization

SYSTEM_PROMPT = """You write git commit messages that follow the Conventional Commits format.

<rules>
- Output the commit message only: no preamble, no markdown, no code fences.
- Header: type(scope): subject, at most 50 characters.
- Types: feat, fix, refactor, perf, style, docs, test, build, ci, chore, revert.
- Subject in imperative mood, lowercase, no trailing period.
- Mark breaking changes with ! in the header and a BREAKING CHANGE: footer.
- Add a body of short "- " bullets only when the change needs explanation.
</rules>"""

DEFAULT_EXAMPLES: tuple[str, ...] = (
    "fix(auth): correct token expiry check",
    "chore(deps): bump httpx to 0.27.0",
    "feat(cart): prevent duplicate items on click\n\n"
    "- debounce the add-to-cart button\n"
    "- disable the button while the request is pending",
    "feat(config)!: switch to yaml config files\n\n"
    "- replace .apprc with config.yaml\n\n"
    "BREAKING CHANGE: .apprc files must be converted to config.yaml",
)

_FENCE_LINE_RE = re.compile(r"^```[\w-]*\s*$")


@dataclass(frozen=True)
class Refinement:
    """Previous message plus the user's accumulated instructions."""

    last_message: str
    instructions: tuple[str, ...] = field(default_factory=tuple)


def build_system_prompt(customization: "PromptCustomization | None" = None) -> str:
    prompt = SYSTEM_PROMPT

    if customization is not None and (customization.context or customization.style):
        prompt += "\n\n<project-context>"
        if customization.context:
            prompt += f"\nAbout: {customization.context}"
        if customization.style:
            prompt += f"\nStyle: {customization.style}"
        prompt += "\n</project-context>"

    examples = customization.examples if customization is not None and customization.examples else DEFAULT_EXAMPLES
    prompt += "\n\n<examples>\n" + "\n\n".join(examples) + "\n</examples>"
    return prompt


def build_user_prompt(
    *,
    branch_name: str,
    diff: str,
    recent_commits: Sequence[str] = (),
    file_list: str = "",
    hint: str | None = None,
    retry_context: str | None = None,
    refinement: Refinement | None = None,
) -> str:
    """Assemble the per-attempt prompt from repository context."""
    sections: list[str] = [f"# BRANCH\n{branch_name}"]

    if recent_commits:
        sections.append("# RECENT COMMITS\n" + "\n".join(recent_commits))
    if file_list:
        sections.append(f"# CHANGED FILES\n{file_list}")
    if hint:
        sections.append(f"# USER HINT\n{hint}")
    if retry_context:
        sections.append(retry_context.rstrip("\n"))
    if refinement is not None:
        sections.append(f"# PREVIOUS GENERATED MESSAGE\n{refinement.last_message}")
        sections.append("# USER REFINEMENT INSTRUCTIONS\n" + "\n".join(refinement.instructions))
        sections.append("IMPORTANT: Still follow Conventional Commits and the 50 character header limit.")

    sections.append(f"# STAGED DIFF\n{diff}")
    return "\n\n".join(sections)


def clean_model_response(raw: str) -> str:
    """Strip code-fence lines and surrounding whitespace from model output."""
    lines = [line for line in raw.splitlines() if not _FENCE_LINE_RE.match(line.strip())]
    return "\n".join(lines).strip()


__all__ = [
    "SYSTEM_PROMPT",
    "DEFAULT_EXAMPLES",
    "Refinement",
    "build_system_prompt",
    "build_user_prompt",
    "clean_model_response",
]

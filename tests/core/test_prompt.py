"""Prompt builder and response cleanup."""

from __future__ import annotations

from ai_git.config import PromptCustomization
from ai_git.core.prompt import (
    DEFAULT_EXAMPLES,
    Refinement,
    build_system_prompt,
    build_user_prompt,
    clean_model_response,
)


def test_system_prompt_uses_default_examples():
    prompt = build_system_prompt()

    assert DEFAULT_EXAMPLES[0] in prompt
    assert "<project-context>" not in prompt


def test_customization_adds_context_and_replaces_examples():
    prompt = build_system_prompt(
        PromptCustomization(context="CLI tool", style="terse", examples=["docs: fix typo in readme"])
    )

    assert "<project-context>\nAbout: CLI tool\nStyle: terse\n</project-context>" in prompt
    assert "docs: fix typo in readme" in prompt
    assert DEFAULT_EXAMPLES[0] not in prompt


def test_user_prompt_section_order():
    prompt = build_user_prompt(
        branch_name="main",
        diff="+x",
        recent_commits=["feat: a", "fix: b"],
        file_list="M\tx.py",
        hint="perf work",
        retry_context="# VALIDATION ERRORS IN PREVIOUS ATTEMPT\nIssues:\n- too long\n",
        refinement=Refinement("feat: old", ("shorter", "mention cache")),
    )

    order = [
        "# BRANCH",
        "# RECENT COMMITS",
        "# CHANGED FILES",
        "# USER HINT",
        "# VALIDATION ERRORS IN PREVIOUS ATTEMPT",
        "# PREVIOUS GENERATED MESSAGE",
        "# USER REFINEMENT INSTRUCTIONS",
        "# STAGED DIFF",
    ]
    positions = [prompt.index(marker) for marker in order]
    assert positions == sorted(positions)
    assert "# USER REFINEMENT INSTRUCTIONS\nshorter\nmention cache" in prompt


def test_user_prompt_omits_empty_sections():
    prompt = build_user_prompt(branch_name="main", diff="+x")

    assert prompt == "# BRANCH\nmain\n\n# STAGED DIFF\n+x"


def test_clean_response_strips_fences_and_whitespace():
    raw = "\n```text\nfeat: add login\n\n- wire form\n```\n"

    assert clean_model_response(raw) == "feat: add login\n\n- wire form"


def test_clean_response_keeps_inline_backticks():
    assert clean_model_response("fix: handle `None` input") == "fix: handle `None` input"

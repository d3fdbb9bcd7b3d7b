"""Exclusion pattern matching."""

from __future__ import annotations

import pytest

from ai_git.core.paths import filter_excluded, matches_exclude_pattern


@pytest.mark.parametrize(
    ("path", "pattern", "expected"),
    [
        ("dist/app.js", "dist/", True),
        ("src/dist/app.js", "dist/", False),
        ("debug.log", "*.log", True),
        ("logs/debug.log", "*.log", True),
        ("logs/debug.log", "logs/*.log", True),
        ("README.md", "README.md", True),
        ("docs/README.md", "README.md", False),
        ("vendor/lib/a.py", "vendor", True),
        ("vendored.py", "vendor", False),
    ],
)
def test_matches_exclude_pattern(path, pattern, expected):
    assert matches_exclude_pattern(path, [pattern]) is expected


def test_regex_characters_in_globs_are_literal():
    assert matches_exclude_pattern("a+b.txt", ["a+b.*"])
    assert not matches_exclude_pattern("aab.txt", ["a+b.*"])


def test_filter_excluded_preserves_order():
    files = ["b.py", "a.log", "dist/x.js", "a.py"]

    assert filter_excluded(files, ["*.log", "dist/"]) == ["b.py", "a.py"]
    assert filter_excluded(files, []) == files
    assert filter_excluded(files, [""]) == files

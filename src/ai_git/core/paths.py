"""Path exclusion patterns used when staging everything."""

from __future__ import annotations

import re
from typing import Iterable


def _glob_to_regex(pattern: str) -> re.Pattern[str]:
    escaped = re.escape(pattern).replace(r"\*", ".*")
    return re.compile(f"^{escaped}$")


def matches_exclude_pattern(file_path: str, patterns: Iterable[str]) -> bool:
    """Return True when ``file_path`` matches any exclusion pattern.

    Supported forms:
        - ``dir/``: directory prefix
        - ``*.log``: glob, tested against the full path and the basename
        - ``path``: exact file, or directory prefix when followed by ``/``
    """
    basename = file_path.rsplit("/", 1)[-1]
    for pattern in patterns:
        if not pattern:
            continue
        if pattern.endswith("/"):
            if file_path.startswith(pattern) or f"{file_path}/" == pattern:
                return True
        elif "*" in pattern:
            regex = _glob_to_regex(pattern)
            if regex.match(file_path) or regex.match(basename):
                return True
        elif file_path == pattern or file_path.startswith(f"{pattern}/"):
            return True
    return False


def filter_excluded(files: Iterable[str], patterns: Iterable[str]) -> list[str]:
    """Drop files matching any exclusion pattern, preserving order."""
    pattern_list = [p for p in patterns if p]
    if not pattern_list:
        return list(files)
    return [f for f in files if not matches_exclude_pattern(f, pattern_list)]


__all__ = ["matches_exclude_pattern", "filter_excluded"]

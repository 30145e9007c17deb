"""Include/exclude glob filtering of changed paths."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Sequence

from .git import ChangedFile


@lru_cache(maxsize=256)
def pattern_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a glob into an anchored regex.

    ``*`` stops at ``/``, ``**`` crosses it, ``?`` is any single character
    and everything else is literal.
    """
    parts = ["^"]
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "*":
            if pattern[i + 1 : i + 2] == "*":
                parts.append(".*")
                i += 1
            else:
                parts.append("[^/]*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
        i += 1
    parts.append("$")
    return re.compile("".join(parts), re.DOTALL)


def matches_any_pattern(value: str, patterns: Sequence[str]) -> bool:
    return any(pattern_to_regex(p).match(value) for p in patterns)


def should_include_path(
    value: str, include: Sequence[str], exclude: Sequence[str]
) -> bool:
    if include and not matches_any_pattern(value, include):
        return False
    if exclude and matches_any_pattern(value, exclude):
        return False
    return True


def filter_changes(
    changes: Iterable[ChangedFile],
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
) -> list[ChangedFile]:
    """Keep matching entries, drop duplicate paths, sort by path.

    The first entry seen for a path wins. The sort order is the per-file
    commit order.
    """
    seen: set[str] = set()
    kept: list[ChangedFile] = []
    for change in changes:
        if change.path in seen:
            continue
        if not should_include_path(change.path, include, exclude):
            continue
        seen.add(change.path)
        kept.append(change)
    kept.sort(key=lambda change: change.path)
    return kept

"""Glob pattern translation for path-based group activation."""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache


def normalize_path(path: str) -> str:
    """Use forward slashes and drop a leading ``./``."""
    normalized = path.strip().replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a glob into an anchored regular expression.

    ``**/`` matches zero or more directories, ``**`` matches anything
    including separators, ``*`` matches within one path segment and ``?``
    matches a single non-separator character. Everything else is literal.

    Example:
        >>> bool(compile_glob("src/**/*.py").fullmatch("src/a/b/c.py"))
        True
        >>> bool(compile_glob("*.py").fullmatch("src/c.py"))
        False
    """
    pattern = normalize_path(pattern)
    parts: list[str] = []
    i = 0
    length = len(pattern)

    while i < length:
        char = pattern[i]
        if char == "*":
            if pattern.startswith("**", i):
                if pattern.startswith("**/", i):
                    parts.append("(?:.*/)?")
                    i += 3
                else:
                    parts.append(".*")
                    i += 2
                continue
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        i += 1

    return re.compile("".join(parts))


def match_any(patterns: Iterable[str], paths: Iterable[str]) -> list[str]:
    """Return the paths matched by at least one pattern, in input order."""
    compiled = [compile_glob(p) for p in patterns if p and p.strip()]
    if not compiled:
        return []

    matched: list[str] = []
    for path in paths:
        normalized = normalize_path(path)
        if normalized and any(regex.fullmatch(normalized) for regex in compiled):
            matched.append(path)
    return matched

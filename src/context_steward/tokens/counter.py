"""Token estimation.

Counts are an approximation: characters divided by ``CHARS_PER_TOKEN``,
rounded up. Every savings figure in the package uses the same estimate so
that baselines, injected bundles and reclaimed history stay comparable.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

CHARS_PER_TOKEN = 4


def estimate_tokens_from_chars(chars: int) -> int:
    """Estimate tokens from a character count."""
    if chars <= 0:
        return 0
    return math.ceil(chars / CHARS_PER_TOKEN)


def estimate_tokens(text: str | None) -> int:
    """Estimate tokens in a string.

    Example:
        >>> estimate_tokens("abcdefgh")
        2
        >>> estimate_tokens("abcdefghi")
        3
    """
    if not text:
        return 0
    return estimate_tokens_from_chars(len(text))


def estimate_lines_tokens(lines: Iterable[str]) -> int:
    """Estimate tokens for a set of instruction lines, summed before rounding."""
    return estimate_tokens_from_chars(sum(len(line) for line in lines))

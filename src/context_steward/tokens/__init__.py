"""Token estimation and savings tracking.

Standalone Usage:
    >>> from context_steward.tokens import TokenStats, SavingsTracker, estimate_tokens
    >>> estimate_tokens("Prefer pathlib over os.path.")
    7
    >>> tracker = SavingsTracker(TokenStats())
    >>> tracker.record_selection(baseline_tokens=900, bundle_tokens=120, injected_tokens=180)
    780
"""

from context_steward.tokens.counter import (
    CHARS_PER_TOKEN,
    estimate_lines_tokens,
    estimate_tokens,
    estimate_tokens_from_chars,
)
from context_steward.tokens.tracker import SavingsTracker, TokenStats

__all__ = [
    "CHARS_PER_TOKEN",
    "SavingsTracker",
    "TokenStats",
    "estimate_lines_tokens",
    "estimate_tokens",
    "estimate_tokens_from_chars",
]

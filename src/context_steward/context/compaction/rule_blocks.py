"""Removal of previously injected rule blocks from history.

Rules are re-injected every turn, so any rule block already sitting in
history is redundant.
"""

from __future__ import annotations

import re
from typing import Any

from context_steward.context import transcript as tx
from context_steward.tokens.counter import estimate_tokens

RULE_BLOCK_PATTERN = re.compile(
    re.escape(tx.RULE_BLOCK_START) + r".*?" + re.escape(tx.RULE_BLOCK_END),
    re.DOTALL,
)


def strip_rule_blocks(transcript: list[dict[str, Any]]) -> tuple[int, int]:
    """Remove rule blocks from every text part, in place.

    Applies to every record, including the protected tail.

    Returns:
        Tuple of (blocks removed, estimated tokens reclaimed).
    """
    blocks = 0
    tokens = 0

    for _, _, part in tx.iter_parts(transcript):
        if not tx.is_text_part(part):
            continue
        text = part["text"]
        if tx.RULE_BLOCK_START not in text:
            continue

        stripped, count = RULE_BLOCK_PATTERN.subn("", text)
        if not count:
            continue

        stripped = stripped.strip()
        part["text"] = stripped
        blocks += count
        tokens += max(0, estimate_tokens(text) - estimate_tokens(stripped))

    return blocks, tokens

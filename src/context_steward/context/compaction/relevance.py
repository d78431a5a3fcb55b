"""Relevance-scored compaction strategy."""

from __future__ import annotations

from typing import Any

from context_steward.context import transcript as tx
from context_steward.context.compaction.base import CompactionDecision, CompactionStrategy
from context_steward.context.compaction.index import READ_TOOLS, FileOperationIndex
from context_steward.context.compaction.summaries import build_summary
from context_steward.tokens.counter import estimate_tokens

# Tools whose output is cheap to regenerate.
EPHEMERAL_TOOLS = frozenset({"bash", "glob", "grep"})

# Outputs smaller than this are never worth compacting.
MIN_COMPACT_TOKENS = 100

BASE_SCORE = 100
AGE_PENALTY = 6
SUPERSEDED_READ_PENALTY = 60
STALE_READ_PENALTY = 50
LARGE_OUTPUT_TOKENS = 2000
LARGE_OUTPUT_PENALTY = 15
MEDIUM_OUTPUT_TOKENS = 500
MEDIUM_OUTPUT_PENALTY = 8
EPHEMERAL_PENALTY = 10


def is_eligible(part: dict[str, Any]) -> bool:
    """Whether a part may be scored at all."""
    if not tx.is_tool_part(part):
        return False
    if tx.tool_status(part) != tx.STATUS_COMPLETED:
        return False
    if tx.compacted_at(part):
        return False
    output = tx.tool_output(part)
    return output is not None and estimate_tokens(output) >= MIN_COMPACT_TOKENS


def score_tool_part(
    part: dict[str, Any],
    record_index: int,
    total_records: int,
    index: FileOperationIndex,
) -> int:
    """Score an eligible tool part; lower means safer to compact.

    Args:
        part: Tool part that passed ``is_eligible``.
        record_index: Index of the record holding the part.
        total_records: Number of records in the transcript.
        index: File operations of the whole transcript.

    Returns:
        Score in the range 0-100.
    """
    name = tx.tool_name(part)
    tokens = estimate_tokens(tx.tool_output(part) or "")

    score = BASE_SCORE
    score -= AGE_PENALTY * (total_records - 1 - record_index)

    if name in READ_TOOLS:
        path = tx.file_path_of(part)
        if path:
            if index.has_later_read(path, record_index):
                score -= SUPERSEDED_READ_PENALTY
            if index.has_later_write(path, record_index):
                score -= STALE_READ_PENALTY

    if tokens > LARGE_OUTPUT_TOKENS:
        score -= LARGE_OUTPUT_PENALTY
    elif tokens > MEDIUM_OUTPUT_TOKENS:
        score -= MEDIUM_OUTPUT_PENALTY

    if name in EPHEMERAL_TOOLS:
        score -= EPHEMERAL_PENALTY

    return max(0, score)


class RelevanceCompactor(CompactionStrategy):
    """Replace stale tool outputs with short summaries.

    Each completed tool output outside the protected tail is scored on
    age, whether its file was re-read or modified later, its size and
    whether the tool is cheap to re-run. Outputs scoring below the
    configured mode threshold are compacted.
    """

    @property
    def name(self) -> str:
        return "relevance"

    def plan(self, transcript: list[dict[str, Any]]) -> list[CompactionDecision]:
        """Select tool parts to compact.

        Args:
            transcript: Host transcript; not modified.

        Returns:
            Decisions in transcript order.
        """
        if not isinstance(transcript, list) or not transcript:
            return []

        total = len(transcript)
        protected_start = max(0, total - self.config.preserve_last_n)
        threshold = self.config.threshold
        index = FileOperationIndex.build(transcript)

        decisions: list[CompactionDecision] = []
        for record_index, part_index, part in tx.iter_parts(transcript):
            if record_index >= protected_start:
                break
            if not is_eligible(part):
                continue

            score = score_tool_part(part, record_index, total, index)
            if score >= threshold:
                continue

            tokens_before = estimate_tokens(tx.tool_output(part) or "")
            decisions.append(
                CompactionDecision(
                    record_index=record_index,
                    part_index=part_index,
                    tool=tx.tool_name(part),
                    score=score,
                    tokens_before=tokens_before,
                    summary=build_summary(part, tokens_before),
                )
            )
        return decisions

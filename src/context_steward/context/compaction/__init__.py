"""Transcript compaction strategies."""

from context_steward.context.compaction.base import (
    CompactionDecision,
    CompactionStrategy,
    TrimStats,
)
from context_steward.context.compaction.index import FileOperationIndex
from context_steward.context.compaction.relevance import (
    EPHEMERAL_TOOLS,
    MIN_COMPACT_TOKENS,
    RelevanceCompactor,
    is_eligible,
    score_tool_part,
)
from context_steward.context.compaction.rule_blocks import strip_rule_blocks
from context_steward.context.compaction.summaries import build_summary

__all__ = [
    "EPHEMERAL_TOOLS",
    "MIN_COMPACT_TOKENS",
    "CompactionDecision",
    "CompactionStrategy",
    "FileOperationIndex",
    "RelevanceCompactor",
    "TrimStats",
    "build_summary",
    "is_eligible",
    "score_tool_part",
    "strip_rule_blocks",
]

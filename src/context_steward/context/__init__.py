"""Conversation history management.

Transcript records are compacted in place by scoring each tool output
for relevance and replacing stale ones with short summaries.
"""

from context_steward.context.compaction import (
    CompactionDecision,
    CompactionStrategy,
    FileOperationIndex,
    RelevanceCompactor,
    TrimStats,
)
from context_steward.context.transcript import RULE_BLOCK_END, RULE_BLOCK_START

__all__ = [
    "RULE_BLOCK_END",
    "RULE_BLOCK_START",
    "CompactionDecision",
    "CompactionStrategy",
    "FileOperationIndex",
    "RelevanceCompactor",
    "TrimStats",
]

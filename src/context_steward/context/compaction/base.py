"""Base class for transcript compaction strategies."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from context_steward.config.schema import TrimmingConfig
from context_steward.context import transcript as tx
from context_steward.context.compaction.rule_blocks import strip_rule_blocks
from context_steward.tokens.counter import estimate_tokens

logger = logging.getLogger(__name__)


@dataclass
class TrimStats:
    """Result of a compaction pass.

    Attributes:
        parts_trimmed: Tool outputs replaced by summaries.
        tokens_saved: Estimated tokens reclaimed from tool outputs.
        rule_blocks_stripped: Stale rule blocks removed from text parts.
        rule_block_tokens_saved: Estimated tokens reclaimed from rule blocks.
    """

    parts_trimmed: int = 0
    tokens_saved: int = 0
    rule_blocks_stripped: int = 0
    rule_block_tokens_saved: int = 0

    @property
    def total_tokens_saved(self) -> int:
        return self.tokens_saved + self.rule_block_tokens_saved

    @property
    def changed(self) -> bool:
        return self.parts_trimmed > 0 or self.rule_blocks_stripped > 0


@dataclass
class CompactionDecision:
    """A tool part selected for compaction.

    Attributes:
        record_index: Index of the transcript record.
        part_index: Index of the part within the record.
        tool: Lower-cased tool name.
        score: Relevance score that put it under the threshold.
        tokens_before: Estimated tokens of the original output.
        summary: Replacement text.
    """

    record_index: int
    part_index: int
    tool: str
    score: int
    tokens_before: int
    summary: str


def _now_ms() -> int:
    return int(time.time() * 1000)


class CompactionStrategy(ABC):
    """Abstract base class for transcript compaction strategies.

    This class uses the Template Method pattern. Subclasses implement
    ``plan()``, a pure function from a transcript to compaction decisions;
    the base class owns the single mutating ``apply()`` pass, rule-block
    stripping and result building.
    """

    def __init__(
        self,
        config: TrimmingConfig | None = None,
        *,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        """Initialize the strategy.

        Args:
            config: Trimming configuration; defaults when omitted.
            clock: Returns the compaction timestamp in epoch milliseconds.
        """
        self.config = config or TrimmingConfig()
        self._clock = clock

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the strategy name."""
        ...

    @abstractmethod
    def plan(self, transcript: list[dict[str, Any]]) -> list[CompactionDecision]:
        """Decide which tool parts to compact without mutating anything."""
        ...

    def compact(self, transcript: list[dict[str, Any]]) -> TrimStats:
        """Compact a transcript in place.

        1. Early return when trimming is disabled
        2. Delegates to ``plan()`` for strategy-specific scoring
        3. Applies the decisions and strips stale rule blocks

        Args:
            transcript: Host transcript, mutated in place.

        Returns:
            ``TrimStats`` for the pass.
        """
        if not self.config.enabled:
            return TrimStats()

        decisions = self.plan(transcript)
        stats = self.apply(transcript, decisions)

        if self.config.strip_rule_blocks:
            blocks, tokens = strip_rule_blocks(transcript)
            stats.rule_blocks_stripped = blocks
            stats.rule_block_tokens_saved = tokens

        if stats.changed:
            logger.debug(
                "%s compacted %d parts (~%d tokens) and stripped %d rule blocks (~%d tokens)",
                self.name,
                stats.parts_trimmed,
                stats.tokens_saved,
                stats.rule_blocks_stripped,
                stats.rule_block_tokens_saved,
            )
        return stats

    def apply(
        self,
        transcript: list[dict[str, Any]],
        decisions: list[CompactionDecision],
    ) -> TrimStats:
        """Write summaries back and stamp the compacted marker.

        Decisions whose part disappeared or was compacted in the meantime
        are skipped, so applying a stale plan is harmless.
        """
        stats = TrimStats()
        timestamp = self._clock()

        for decision in decisions:
            try:
                part = tx.record_parts(transcript[decision.record_index])[decision.part_index]
            except IndexError:
                continue
            if not isinstance(part, dict) or not tx.is_tool_part(part):
                continue
            if tx.compacted_at(part):
                continue

            tx.mark_compacted(part, decision.summary, timestamp)
            stats.parts_trimmed += 1
            stats.tokens_saved += max(0, decision.tokens_before - estimate_tokens(decision.summary))

        return stats

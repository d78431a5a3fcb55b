"""Token savings tracking."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from context_steward.context.compaction.base import TrimStats


class TokenStats(BaseModel):
    """Cumulative savings ledger for one session.

    Attributes:
        tokens_skipped_by_selection: Tokens not injected thanks to selective loading.
        tokens_injected: Tokens actually emitted in rule blocks.
        tokens_trimmed_from_history: Tokens reclaimed by tool-output compaction.
        tokens_trimmed_rule_blocks: Tokens reclaimed by removing stale rule blocks.
        prompts_processed: Turns accounted for.
        rules_injected: Instruction lines emitted across all turns.
    """

    model_config = ConfigDict(extra="allow")

    tokens_skipped_by_selection: int = Field(default=0, ge=0)
    tokens_injected: int = Field(default=0, ge=0)
    tokens_trimmed_from_history: int = Field(default=0, ge=0)
    tokens_trimmed_rule_blocks: int = Field(default=0, ge=0)
    prompts_processed: int = Field(default=0, ge=0)
    rules_injected: int = Field(default=0, ge=0)

    @property
    def total_saved(self) -> int:
        return (
            self.tokens_skipped_by_selection
            + self.tokens_trimmed_from_history
            + self.tokens_trimmed_rule_blocks
        )

    @property
    def avg_rules_per_prompt(self) -> float:
        if self.prompts_processed == 0:
            return 0.0
        return round(self.rules_injected / self.prompts_processed, 1)


class SavingsTracker:
    """Apply per-turn savings to a session's ``TokenStats``.

    Selection savings and trim savings are kept in separate counters
    because they have different causes and are configured independently.
    """

    def __init__(self, stats: TokenStats) -> None:
        """Initialize the tracker.

        Args:
            stats: Ledger to update in place (usually ``session.token_stats``).
        """
        self._stats = stats

    @property
    def stats(self) -> TokenStats:
        return self._stats

    def record_selection(
        self,
        baseline_tokens: int,
        bundle_tokens: int,
        injected_tokens: int,
        rule_count: int = 0,
    ) -> int:
        """Record one turn of selective injection.

        Args:
            baseline_tokens: Cost of injecting every rule unconditionally.
            bundle_tokens: Estimated tokens of the rules actually selected.
            injected_tokens: Estimated tokens of the rendered block.
            rule_count: Instruction lines emitted this turn.

        Returns:
            Tokens saved by selection this turn.
        """
        skipped = max(0, baseline_tokens - bundle_tokens)
        self._stats.tokens_skipped_by_selection += skipped
        self._stats.tokens_injected += max(0, injected_tokens)
        self._stats.rules_injected += max(0, rule_count)
        self._stats.prompts_processed += 1
        return skipped

    def record_trim(self, trim: TrimStats) -> int:
        """Record the outcome of a compaction pass.

        Returns:
            Tokens reclaimed by the pass.
        """
        self._stats.tokens_trimmed_from_history += max(0, trim.tokens_saved)
        self._stats.tokens_trimmed_rule_blocks += max(0, trim.rule_block_tokens_saved)
        return trim.total_tokens_saved

    def total_saved(self) -> int:
        return self._stats.total_saved

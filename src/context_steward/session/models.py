"""Persisted session and rollup models."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from context_steward.config.overrides import SessionOverrides
from context_steward.tokens.tracker import TokenStats

SESSION_FORMAT_VERSION = 1
ROLLUP_FORMAT_VERSION = 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Session(BaseModel):
    """State of one host conversation.

    Attributes:
        version: File format version.
        id: Host session identifier.
        started: Creation time.
        last_activity: Time of the last processed turn.
        cwd: Working directory the session was created in.
        label: Display label, the working directory's name.
        title: First prompt, collapsed and truncated.
        prompt_count: Turns processed so far.
        overrides: Session toggles layered over the configuration.
        token_stats: Savings ledger for this session.
    """

    model_config = ConfigDict(extra="allow")

    version: int = Field(default=SESSION_FORMAT_VERSION)
    id: str
    started: datetime = Field(default_factory=utcnow)
    last_activity: datetime = Field(default_factory=utcnow)
    cwd: str = Field(default="")
    label: str = Field(default="unknown")
    title: str | None = Field(default=None)
    prompt_count: int = Field(default=0, ge=0)
    overrides: SessionOverrides = Field(default_factory=SessionOverrides)
    token_stats: TokenStats = Field(default_factory=TokenStats)

    @field_validator("started", "last_activity")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class SessionSummary(BaseModel):
    """Snapshot of a session's totals kept in the rollup ledger."""

    model_config = ConfigDict(extra="allow")

    session_id: str
    started: datetime
    prompts_processed: int = Field(default=0, ge=0)
    tokens_skipped_by_selection: int = Field(default=0, ge=0)
    tokens_injected: int = Field(default=0, ge=0)
    tokens_trimmed_from_history: int = Field(default=0, ge=0)
    tokens_trimmed_rule_blocks: int = Field(default=0, ge=0)
    rules_injected: int = Field(default=0, ge=0)
    tokens_saved: int = Field(default=0, ge=0)

    @field_validator("started")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @classmethod
    def from_session(cls, session: Session) -> SessionSummary:
        stats = session.token_stats
        return cls(
            session_id=session.id,
            started=session.started,
            prompts_processed=stats.prompts_processed,
            tokens_skipped_by_selection=stats.tokens_skipped_by_selection,
            tokens_injected=stats.tokens_injected,
            tokens_trimmed_from_history=stats.tokens_trimmed_from_history,
            tokens_trimmed_rule_blocks=stats.tokens_trimmed_rule_blocks,
            rules_injected=stats.rules_injected,
            tokens_saved=stats.total_saved,
        )


class RollupTotals(BaseModel):
    """Totals across session snapshots."""

    model_config = ConfigDict(extra="allow")

    session_count: int = Field(default=0, ge=0)
    prompts_processed: int = Field(default=0, ge=0)
    tokens_skipped_by_selection: int = Field(default=0, ge=0)
    tokens_injected: int = Field(default=0, ge=0)
    tokens_trimmed_from_history: int = Field(default=0, ge=0)
    tokens_trimmed_rule_blocks: int = Field(default=0, ge=0)
    rules_injected: int = Field(default=0, ge=0)
    total_tokens_saved: int = Field(default=0, ge=0)

    @classmethod
    def from_summaries(cls, summaries: Iterable[SessionSummary]) -> RollupTotals:
        totals = cls()
        for summary in summaries:
            totals.session_count += 1
            totals.prompts_processed += summary.prompts_processed
            totals.tokens_skipped_by_selection += summary.tokens_skipped_by_selection
            totals.tokens_injected += summary.tokens_injected
            totals.tokens_trimmed_from_history += summary.tokens_trimmed_from_history
            totals.tokens_trimmed_rule_blocks += summary.tokens_trimmed_rule_blocks
            totals.rules_injected += summary.rules_injected
            totals.total_tokens_saved += summary.tokens_saved
        return totals

    @property
    def avg_rules_per_prompt(self) -> float:
        if self.prompts_processed == 0:
            return 0.0
        return round(self.rules_injected / self.prompts_processed, 1)


class RollupLedger(BaseModel):
    """Persisted cross-session ledger.

    ``cumulative`` is derived data; it is recomputed from ``sessions``
    whenever the ledger is updated.
    """

    model_config = ConfigDict(extra="allow")

    version: int = Field(default=ROLLUP_FORMAT_VERSION)
    sessions: list[SessionSummary] = Field(default_factory=list)
    cumulative: RollupTotals = Field(default_factory=RollupTotals)

    def upsert(self, summary: SessionSummary) -> None:
        """Replace the snapshot with the same session id, or append it."""
        for position, existing in enumerate(self.sessions):
            if existing.session_id == summary.session_id:
                self.sessions[position] = summary
                break
        else:
            self.sessions.append(summary)
        self.recompute()

    def recompute(self) -> None:
        self.cumulative = RollupTotals.from_summaries(self.sessions)

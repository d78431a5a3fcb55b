"""Per-turn coordinator tying the engine, compaction and session ledger together."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from context_steward.config.discovery import CONFIG_DIR_NAME, ConfigScope, discover_config
from context_steward.config.loader import load_config, read_instruction_lines
from context_steward.config.overrides import apply_overrides
from context_steward.config.schema import StewardConfig
from context_steward.context.compaction.base import TrimStats
from context_steward.context.compaction.relevance import RelevanceCompactor
from context_steward.engine.aggregator import RuleBundle, RuleReader, aggregate, estimate_baseline
from context_steward.engine.escalation import EscalationResult, resolve_escalation
from context_steward.engine.matcher import ActivationResult, match_groups
from context_steward.errors import ConfigNotFoundError, PersistenceError
from context_steward.formatting import SavingsReport, render_bundle
from context_steward.observability import setup_logging
from context_steward.session.models import RollupTotals, Session
from context_steward.session.rollup import RollupStore
from context_steward.session.store import SessionStore
from context_steward.tokens.counter import estimate_tokens
from context_steward.tokens.tracker import SavingsTracker

logger = logging.getLogger(__name__)

# Star-command that requests the full savings report.
STATS_COMMAND = "stats"


@dataclass
class TurnResult:
    """Outcome of processing one user prompt.

    Attributes:
        session_id: Host session identifier.
        block: Rendered rule block to inject.
        bundle: Rules selected for the turn.
        activation: Matcher output.
        escalation: Escalation state.
        prompt_count: Session prompt count after this turn.
        is_new_session: Whether the session was created by this turn.
        tokens_skipped: Tokens saved by selection this turn.
        tokens_injected: Estimated tokens of ``block``.
        warnings: Configuration warnings collected at load time.
    """

    session_id: str
    block: str
    bundle: RuleBundle
    activation: ActivationResult
    escalation: EscalationResult
    prompt_count: int
    is_new_session: bool = False
    tokens_skipped: int = 0
    tokens_injected: int = 0
    warnings: list[str] = field(default_factory=list)


class ContextSteward:
    """Select rules for each prompt and compact transcripts, per session.

    All state is keyed by session id and stored through ``SessionStore``;
    the coordinator itself holds only the loaded configuration.

    Example:
        >>> steward = ContextSteward.from_directory("/work/project")
        >>> turn = steward.process_prompt("abc123", "fix the login form", "/work/project")
        >>> turn.block.startswith("<steward-rules>")
        True
    """

    def __init__(
        self,
        config: StewardConfig,
        *,
        scope: ConfigScope = ConfigScope.LOCAL,
        sessions: SessionStore | None = None,
        rollups: RollupStore | None = None,
        reader: RuleReader = read_instruction_lines,
    ) -> None:
        """Initialize the coordinator.

        Args:
            config: Loaded configuration.
            scope: Where the configuration was found.
            sessions: Session store; defaults to one under the config directory.
            rollups: Rollup store; defaults to one sharing ``sessions``.
            reader: Reads instruction lines from a rule document.
        """
        self._config = config
        self.scope = scope
        self.sessions = sessions or SessionStore(config.config_path)
        self.rollups = rollups or RollupStore(config.config_path, sessions=self.sessions)
        self._reader = reader

    @classmethod
    def from_directory(
        cls,
        start_dir: str | Path,
        *,
        global_dir: Path | None = None,
        configure_logging: bool = False,
    ) -> ContextSteward:
        """Discover and load the configuration for a working directory.

        Args:
            start_dir: Directory to start discovery from.
            global_dir: Override for the global fallback directory.
            configure_logging: Apply the manifest's logging settings.

        Returns:
            A ready coordinator.

        Raises:
            ConfigNotFoundError: If no configuration exists anywhere.
            ConfigurationError: If the manifest is invalid.
        """
        result = discover_config(start_dir, global_dir=global_dir)
        if result is None:
            raise ConfigNotFoundError(
                f"No {CONFIG_DIR_NAME} configuration found from {start_dir}",
                start_dir=str(start_dir),
            )

        config = load_config(result.config_path)
        if configure_logging:
            setup_logging(config.manifest.logging)
        logger.info("Loaded %s configuration from %s", result.scope.value, result.config_path)
        return cls(config, scope=result.scope)

    @property
    def config(self) -> StewardConfig:
        return self._config

    def reload(self) -> StewardConfig:
        """Re-read the configuration directory.

        Raises:
            ConfigNotFoundError: If the manifest has been removed.
            ConfigurationError: If the manifest became invalid.
        """
        self._config = load_config(self._config.config_path)
        return self._config

    def _save(self, session: Session, *, rollup: bool) -> None:
        try:
            self.sessions.persist(session)
            if rollup:
                self.rollups.update(session)
        except PersistenceError as e:
            logger.warning("Could not persist session %s: %s", session.id, e)

    def _open_session(self, session_id: str, cwd: str) -> tuple[Session, bool]:
        session, is_new = self.sessions.get_or_create(session_id, cwd)
        if is_new:
            self.sessions.sweep_stale()
        return session, is_new

    def rollup(self) -> RollupTotals:
        """Totals across sessions within the configured retention window."""
        return self.rollups.rollup(self._config.manifest.stats.retention_days)

    def process_prompt(
        self,
        session_id: str,
        prompt: str,
        cwd: str,
        active_paths: Iterable[str] | None = None,
    ) -> TurnResult:
        """Select, render and account for the rules of one turn.

        Never raises for configuration or persistence defects; those are
        logged and the turn proceeds with what could be loaded.

        Args:
            session_id: Host session identifier.
            prompt: User prompt for this turn.
            cwd: Host working directory.
            active_paths: Paths the host reports as open or recently edited.

        Returns:
            ``TurnResult`` holding the block to inject.
        """
        session, is_new = self._open_session(session_id, cwd)
        self.sessions.record_turn(session, prompt)

        effective = apply_overrides(self._config, session.overrides)
        manifest = effective.manifest

        activation = match_groups(
            prompt,
            manifest.groups,
            active_paths=tuple(active_paths or ()),
            global_exclude=manifest.global_exclude,
        )
        escalation = resolve_escalation(
            session.prompt_count,
            effective.escalation.thresholds,
            effective.escalation.levels,
        )
        bundle = aggregate(
            activation,
            escalation,
            self._config,
            overrides=session.overrides,
            prompt_count=session.prompt_count,
            reader=self._reader,
        )

        stats_enabled = manifest.stats.enabled
        baseline = estimate_baseline(effective, reader=self._reader)

        savings: SavingsReport | None = None
        if stats_enabled:
            show_report = STATS_COMMAND in activation.star_commands
            savings = SavingsReport.from_stats(
                session.token_stats,
                baseline_per_prompt=baseline,
                rules_this_prompt=bundle.rule_count(),
                show_full_report=show_report,
                rollup=self.rollup() if show_report else None,
                rollup_days=manifest.stats.retention_days,
            )

        block = render_bundle(bundle, savings)
        injected = estimate_tokens(block)

        skipped = 0
        if stats_enabled:
            skipped = SavingsTracker(session.token_stats).record_selection(
                baseline,
                bundle.estimated_tokens(),
                injected,
                bundle.rule_count(),
            )

        self._save(session, rollup=stats_enabled)

        logger.debug(
            "Session %s prompt %d: %d rules, ~%d tokens injected, ~%d skipped",
            session.id,
            session.prompt_count,
            bundle.rule_count(),
            injected,
            skipped,
        )
        return TurnResult(
            session_id=session.id,
            block=block,
            bundle=bundle,
            activation=activation,
            escalation=escalation,
            prompt_count=session.prompt_count,
            is_new_session=is_new,
            tokens_skipped=skipped,
            tokens_injected=injected,
            warnings=list(effective.warnings),
        )

    def compact_transcript(
        self,
        session_id: str,
        transcript: list[dict[str, Any]],
        cwd: str,
    ) -> TrimStats:
        """Compact a host transcript in place and record the savings.

        Args:
            session_id: Host session identifier.
            transcript: Host transcript records, mutated in place.
            cwd: Host working directory.

        Returns:
            ``TrimStats`` for the pass.
        """
        session, _ = self._open_session(session_id, cwd)
        effective = apply_overrides(self._config, session.overrides)

        stats = RelevanceCompactor(effective.manifest.trimming).compact(transcript)

        if stats.changed and effective.manifest.stats.enabled:
            SavingsTracker(session.token_stats).record_trim(stats)
            self._save(session, rollup=True)
        return stats

    def set_override(self, session_id: str, cwd: str, **overrides: Any) -> Session:
        """Update a session's overrides and persist them.

        Args:
            session_id: Host session identifier.
            cwd: Host working directory.
            **overrides: ``devmode``, ``escalation``, ``commands``,
                ``trimming`` (bool or None) and ``group_states`` (mapping of
                group name to bool or None).

        Returns:
            The updated session.

        Raises:
            pydantic.ValidationError: If an override value has the wrong type.
        """
        session, _ = self._open_session(session_id, cwd)
        self.sessions.set_overrides(session, **overrides)
        self._save(session, rollup=False)
        return session

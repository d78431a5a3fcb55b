"""Tests for the cross-session rollup ledger."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from context_steward.errors import PersistenceError
from context_steward.session import RollupStore, Session, SessionStore
from context_steward.tokens.tracker import TokenStats


def _session(session_id: str, started: datetime, **stats: int) -> Session:
    return Session(
        id=session_id,
        started=started,
        last_activity=started,
        token_stats=TokenStats(**stats),
    )


@pytest.fixture
def sessions(config_dir: Path, fixed_now: datetime) -> SessionStore:
    return SessionStore(config_dir, clock=lambda: fixed_now)


@pytest.fixture
def rollups(config_dir: Path, sessions: SessionStore, fixed_now: datetime) -> RollupStore:
    return RollupStore(config_dir, sessions=sessions, clock=lambda: fixed_now)


class TestUpdate:
    """Tests for RollupStore.update()."""

    def test_update_is_idempotent(self, rollups: RollupStore, fixed_now: datetime) -> None:
        """Updating twice with an unchanged session keeps one snapshot."""
        session = _session("s1", fixed_now, prompts_processed=2, tokens_skipped_by_selection=40)

        rollups.update(session)
        ledger = rollups.update(session)

        assert len(ledger.sessions) == 1
        assert ledger.cumulative.session_count == 1
        assert ledger.cumulative.total_tokens_saved == 40

    def test_update_replaces_snapshot(self, rollups: RollupStore, fixed_now: datetime) -> None:
        """Later updates overwrite the earlier snapshot for the same session."""
        session = _session("s1", fixed_now, prompts_processed=1, tokens_injected=10)
        rollups.update(session)
        session.token_stats.prompts_processed = 3
        session.token_stats.tokens_trimmed_from_history = 500

        ledger = rollups.update(session)

        assert ledger.cumulative.prompts_processed == 3
        assert ledger.cumulative.tokens_trimmed_from_history == 500
        assert ledger.cumulative.total_tokens_saved == 500

    def test_totals_sum_across_sessions(self, rollups: RollupStore, fixed_now: datetime) -> None:
        """Cumulative totals are the sum of every snapshot."""
        rollups.update(_session("a", fixed_now, prompts_processed=2, rules_injected=6))
        rollups.update(_session("b", fixed_now, prompts_processed=2, rules_injected=4))

        totals = rollups.load().cumulative

        assert totals.session_count == 2
        assert totals.rules_injected == 10
        assert totals.avg_rules_per_prompt == 2.5

    def test_save_failure_raises_persistence_error(
        self, tmp_path: Path, fixed_now: datetime
    ) -> None:
        """Write errors are wrapped in PersistenceError."""
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        rollups = RollupStore(blocker / "nested")

        with pytest.raises(PersistenceError):
            rollups.update(_session("s1", fixed_now))


class TestLoad:
    """Tests for RollupStore.load()."""

    def test_missing_ledger_is_empty(self, rollups: RollupStore) -> None:
        """A missing ledger loads as an empty ledger."""
        ledger = rollups.load()

        assert ledger.sessions == []
        assert ledger.cumulative.session_count == 0

    def test_corrupt_ledger_is_deleted(self, rollups: RollupStore) -> None:
        """An unparseable ledger is removed and replaced with an empty one."""
        rollups.ledger_file.parent.mkdir(parents=True, exist_ok=True)
        rollups.ledger_file.write_text("not json", encoding="utf-8")

        ledger = rollups.load()

        assert ledger.sessions == []
        assert not rollups.ledger_file.exists()

    def test_undeletable_corrupt_ledger_loads_empty(
        self, rollups: RollupStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A corrupt ledger that cannot be removed still loads as empty."""
        rollups.ledger_file.parent.mkdir(parents=True, exist_ok=True)
        rollups.ledger_file.write_bytes(b"\xff not json")

        def refuse(self: Path, missing_ok: bool = False) -> None:
            raise PermissionError(13, "Permission denied", str(self))

        monkeypatch.setattr(Path, "unlink", refuse)

        ledger = rollups.load()
        rollups.clear()

        assert ledger.sessions == []
        assert rollups.ledger_file.exists()

    def test_stale_cumulative_is_recomputed(
        self, rollups: RollupStore, fixed_now: datetime
    ) -> None:
        """Hand-edited totals are replaced by totals derived from snapshots."""
        ledger = rollups.update(_session("s1", fixed_now, tokens_skipped_by_selection=12))
        ledger.cumulative.total_tokens_saved = 9999
        rollups.save(ledger)

        assert rollups.load().cumulative.total_tokens_saved == 12


class TestRollup:
    """Tests for RollupStore.rollup()."""

    def test_includes_unlisted_session_files(
        self, rollups: RollupStore, sessions: SessionStore, fixed_now: datetime
    ) -> None:
        """Sessions on disk without a ledger snapshot are counted."""
        rollups.update(_session("listed", fixed_now, prompts_processed=1))
        sessions.persist(_session("unlisted", fixed_now, prompts_processed=4))

        totals = rollups.rollup()

        assert totals.session_count == 2
        assert totals.prompts_processed == 5

    def test_ledger_snapshot_wins_over_session_file(
        self, rollups: RollupStore, sessions: SessionStore, fixed_now: datetime
    ) -> None:
        """A session present in both places is counted once."""
        session = _session("s1", fixed_now, prompts_processed=2)
        rollups.update(session)
        sessions.persist(session)

        assert rollups.rollup().session_count == 1

    def test_max_age_filters_by_start_time(
        self, rollups: RollupStore, fixed_now: datetime
    ) -> None:
        """Only sessions started within the window are totalled."""
        rollups.update(_session("old", fixed_now - timedelta(days=10), prompts_processed=7))
        rollups.update(_session("new", fixed_now - timedelta(days=1), prompts_processed=2))

        assert rollups.rollup(max_age_days=7).prompts_processed == 2
        assert rollups.rollup().prompts_processed == 9

    def test_clear_removes_ledger_and_sessions(
        self, rollups: RollupStore, sessions: SessionStore, fixed_now: datetime
    ) -> None:
        """clear() forgets every session."""
        session = _session("s1", fixed_now, prompts_processed=1)
        rollups.update(session)
        sessions.persist(session)

        rollups.clear()

        assert not rollups.ledger_file.exists()
        assert rollups.rollup().session_count == 0

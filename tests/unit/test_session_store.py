"""Tests for session persistence."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from context_steward.config.schema import StewardConfig
from context_steward.errors import PersistenceError
from context_steward.session import Session, SessionStore, derive_title


class _Clock:
    """Mutable clock for deterministic timestamps."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock(fixed_now: datetime) -> _Clock:
    return _Clock(fixed_now)


@pytest.fixture
def store(config_dir: Path, clock: _Clock) -> SessionStore:
    return SessionStore(config_dir, clock=clock)


class TestDeriveTitle:
    """Tests for derive_title()."""

    def test_collapses_whitespace(self) -> None:
        """Runs of whitespace become single spaces."""
        assert derive_title("  fix\n\tthe   bug  ") == "fix the bug"

    def test_truncates_long_prompts(self) -> None:
        """Titles longer than 60 characters keep 57 plus an ellipsis."""
        title = derive_title("a" * 80)

        assert title == "a" * 57 + "..."
        assert len(title) == 60

    def test_sixty_characters_fit(self) -> None:
        """A 60 character prompt is kept whole."""
        assert derive_title("b" * 60) == "b" * 60


class TestGetOrCreate:
    """Tests for SessionStore.get_or_create()."""

    def test_creates_new_session(self, store: SessionStore, fixed_now: datetime) -> None:
        """A missing session is created but not yet persisted."""
        session, is_new = store.get_or_create("s1", "/work/my-app")

        assert is_new
        assert session.id == "s1"
        assert session.label == "my-app"
        assert session.prompt_count == 0
        assert session.started == fixed_now
        assert not store.session_file("s1").exists()

    def test_returns_persisted_session(self, store: SessionStore) -> None:
        """A persisted session is loaded back."""
        session, _ = store.get_or_create("s1", "/work/app")
        store.record_turn(session, "hello")
        store.persist(session)

        loaded, is_new = store.get_or_create("s1", "/elsewhere")

        assert not is_new
        assert loaded.prompt_count == 1
        assert loaded.cwd == "/work/app"

    def test_corrupt_session_is_deleted(self, store: SessionStore) -> None:
        """Unparseable session files are removed and treated as absent."""
        path = store.session_file("s1")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{not json", encoding="utf-8")

        session, is_new = store.get_or_create("s1", "/work/app")

        assert is_new
        assert session.prompt_count == 0
        assert not path.exists()

    def test_undecodable_session_is_discarded(self, store: SessionStore) -> None:
        """A session file that is not UTF-8 is removed."""
        path = store.session_file("s1")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\xff\xfe{}")

        assert store.load("s1") is None
        assert not path.exists()

    def test_unsafe_session_ids_stay_in_sessions_dir(self, store: SessionStore) -> None:
        """Path separators in ids cannot escape the sessions directory."""
        path = store.session_file("../../etc/passwd")

        assert path.parent == store.sessions_dir

    def test_ids_that_sanitise_alike_stay_separate(self, store: SessionStore) -> None:
        """Ids differing only in unsafe characters do not share a file."""
        existing = store.create("a_b", "/work/app")
        store.record_turn(existing, "first prompt")
        store.persist(existing)

        session, is_new = store.get_or_create("a/b", "/work/app")

        assert store.session_file("a/b") != store.session_file("a_b")
        assert is_new
        assert session.id == "a/b"
        assert session.prompt_count == 0

    def test_file_holding_another_id_is_ignored(self, store: SessionStore) -> None:
        """A file whose stored id differs from the requested one is not returned."""
        other = store.create("other", "/work/app")
        store.persist(other)
        store.session_file("other").rename(store.session_file("s1"))

        assert store.load("s1") is None
        assert store.session_file("s1").exists()


class TestRecordTurn:
    """Tests for SessionStore.record_turn()."""

    def test_increments_once_and_updates_activity(
        self, store: SessionStore, clock: _Clock, fixed_now: datetime
    ) -> None:
        """Each call counts exactly one turn."""
        session = store.create("s1", "/work/app")
        clock.now = fixed_now + timedelta(minutes=5)

        store.record_turn(session, "first")

        assert session.prompt_count == 1
        assert session.last_activity == fixed_now + timedelta(minutes=5)

    def test_title_from_first_non_empty_prompt(self, store: SessionStore) -> None:
        """The title comes from the first usable prompt within three turns."""
        session = store.create("s1", "/work/app")

        store.record_turn(session, "   ")
        store.record_turn(session, "add  login\nform")
        store.record_turn(session, "something else")

        assert session.title == "add login form"

    def test_no_title_after_third_turn(self, store: SessionStore) -> None:
        """Prompts after the third turn never set a title."""
        session = store.create("s1", "/work/app")
        for _ in range(3):
            store.record_turn(session, None)

        store.record_turn(session, "late prompt")

        assert session.title is None


class TestPersist:
    """Tests for SessionStore.persist()."""

    def test_persist_is_idempotent(self, store: SessionStore) -> None:
        """Persisting the same session twice writes identical content."""
        session = store.create("s1", "/work/app")

        path = store.persist(session)
        first = path.read_text(encoding="utf-8")
        store.persist(session)

        assert path.read_text(encoding="utf-8") == first
        assert json.loads(first)["id"] == "s1"

    def test_unknown_fields_survive_round_trip(self, store: SessionStore) -> None:
        """Fields written by newer releases are preserved."""
        session = Session.model_validate({"id": "s1", "future_field": {"a": 1}})

        store.persist(session)
        loaded = store.load("s1")

        assert loaded is not None
        assert loaded.model_extra == {"future_field": {"a": 1}}

    def test_write_failure_raises_persistence_error(self, tmp_path: Path) -> None:
        """OS errors are wrapped in PersistenceError."""
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        store = SessionStore(blocker)

        with pytest.raises(PersistenceError) as exc_info:
            store.persist(Session(id="s1"))

        assert exc_info.value.recoverable is True
        assert isinstance(exc_info.value.cause, OSError)


class TestOverrides:
    """Tests for SessionStore override handling."""

    def test_set_overrides_merges_group_states(self, store: SessionStore) -> None:
        """Group overrides are merged rather than replaced."""
        session = store.create("s1", "/work/app")

        store.set_overrides(session, group_states={"docs": False})
        store.set_overrides(session, devmode=True, group_states={"frontend": True})

        assert session.overrides.devmode is True
        assert session.overrides.group_states == {"docs": False, "frontend": True}

    def test_set_overrides_rejects_bad_types(self, store: SessionStore) -> None:
        """Invalid values raise a validation error."""
        session = store.create("s1", "/work/app")

        with pytest.raises(ValidationError):
            store.set_overrides(session, devmode="sometimes")

    def test_apply_overrides_leaves_base_config(
        self, store: SessionStore, steward_config: StewardConfig
    ) -> None:
        """The effective configuration is a copy."""
        session = store.create("s1", "/work/app")
        store.set_overrides(session, devmode=True)

        effective = store.apply_overrides(steward_config, session)

        assert effective.manifest.devmode is True
        assert steward_config.manifest.devmode is False


class TestSweepStale:
    """Tests for SessionStore.sweep_stale()."""

    def test_removes_stale_and_corrupt_sessions(
        self, store: SessionStore, clock: _Clock, fixed_now: datetime
    ) -> None:
        """Old sessions and unparseable files are deleted; fresh ones stay."""
        old = store.create("old", "/work/app")
        old.last_activity = fixed_now - timedelta(hours=25)
        fresh = store.create("fresh", "/work/app")
        store.persist(old)
        store.persist(fresh)
        (store.sessions_dir / "broken.json").write_text("[]", encoding="utf-8")

        removed = store.sweep_stale()

        assert removed == 2
        assert store.load("fresh") is not None
        assert not store.session_file("old").exists()
        assert not (store.sessions_dir / "broken.json").exists()

    def test_missing_directory(self, store: SessionStore) -> None:
        """Sweeping without a sessions directory removes nothing."""
        assert store.sweep_stale() == 0

    def test_naive_timestamps_are_read_as_utc(
        self, store: SessionStore, fixed_now: datetime
    ) -> None:
        """Session files without a timezone are still comparable."""
        store.sessions_dir.mkdir(parents=True)
        naive = (fixed_now - timedelta(hours=1)).replace(tzinfo=None).isoformat()
        store.session_file("s1").write_text(
            json.dumps({"id": "s1", "started": naive, "last_activity": naive}),
            encoding="utf-8",
        )

        assert store.sweep_stale() == 0


class TestRemovalFailures:
    """Tests for deletions the filesystem refuses."""

    @pytest.fixture
    def locked(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def refuse(self: Path, missing_ok: bool = False) -> None:
            raise PermissionError(13, "Permission denied", str(self))

        monkeypatch.setattr(Path, "unlink", refuse)

    def test_corrupt_session_is_treated_as_absent(
        self, store: SessionStore, locked: None, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A corrupt file that cannot be deleted is logged and skipped."""
        path = store.session_file("s1")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{not json", encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="context_steward"):
            session, is_new = store.get_or_create("s1", "/work/app")

        assert is_new
        assert session.prompt_count == 0
        assert path.exists()
        assert "Could not remove" in caplog.text

    def test_sweep_and_clear_count_only_removed_files(
        self, store: SessionStore, locked: None, fixed_now: datetime
    ) -> None:
        """Files that survive deletion are not counted."""
        old = store.create("old", "/work/app")
        old.last_activity = fixed_now - timedelta(hours=25)
        store.persist(old)

        assert store.sweep_stale() == 0
        assert store.clear() == 0
        assert store.session_file("old").exists()


def test_clear_removes_session_files(store: SessionStore) -> None:
    """clear() deletes every session file."""
    store.persist(store.create("a", "/w"))
    store.persist(store.create("b", "/w"))

    assert store.clear() == 2
    assert store.iter_files() == []

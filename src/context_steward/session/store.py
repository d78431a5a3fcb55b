"""Session persistence.

Sessions are stored one JSON file per session under
``<config_path>/sessions/<sanitised id>-<id hash>.json``. Corrupt files are
treated as absent and removed; failures to remove them are logged.
"""

from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path

from pydantic import ValidationError

from context_steward.config.overrides import SessionOverrides, apply_overrides
from context_steward.config.schema import StewardConfig
from context_steward.errors import PersistenceError
from context_steward.session.models import Session, utcnow

logger = logging.getLogger(__name__)

SESSIONS_DIR = "sessions"
STALE_SESSION_HOURS = 24
TITLE_MAX_CHARS = 60
TITLE_PROMPT_WINDOW = 3

_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9._-]")
ID_HASH_CHARS = 12
_WHITESPACE = re.compile(r"\s+")


def discard_file(path: Path) -> bool:
    """Delete a state file, logging instead of raising when that fails.

    Returns:
        True if the file is gone afterwards.
    """
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove %s: %s", path, e)
        return False
    return True


def derive_title(prompt: str) -> str:
    """Collapse whitespace and truncate a prompt for use as a title."""
    cleaned = _WHITESPACE.sub(" ", prompt).strip()
    if len(cleaned) > TITLE_MAX_CHARS:
        return cleaned[: TITLE_MAX_CHARS - 3] + "..."
    return cleaned


class SessionStore:
    """Load, update and persist per-session state.

    Example:
        >>> store = SessionStore(Path(".steward"))
        >>> session, is_new = store.get_or_create("abc123", "/work/project")
        >>> store.record_turn(session, "fix the login form")
        >>> store.persist(session)
    """

    def __init__(
        self,
        config_path: Path,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the store.

        Args:
            config_path: Configuration directory holding the sessions folder.
            clock: Returns the current time (timezone aware).
        """
        self.config_path = Path(config_path)
        self.sessions_dir = self.config_path / SESSIONS_DIR
        self._clock = clock

    def session_file(self, session_id: str) -> Path:
        """Path of a session's file.

        The readable prefix is sanitised; the hash suffix keeps ids that
        sanitise alike (``a/b`` and ``a_b``) in separate files.
        """
        safe_id = _UNSAFE_ID_CHARS.sub("_", session_id)[:64] or "_"
        digest = hashlib.sha256(session_id.encode("utf-8")).hexdigest()[:ID_HASH_CHARS]
        return self.sessions_dir / f"{safe_id}-{digest}.json"

    def load(self, session_id: str) -> Session | None:
        """Load a session, deleting the file if it cannot be parsed.

        Returns:
            The session, or None when absent or corrupt.
        """
        path = self.session_file(session_id)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            logger.warning("Discarding corrupt session file %s: %s", path, e)
            discard_file(path)
            return None
        except OSError as e:
            logger.warning("Cannot read session file %s: %s", path, e)
            return None

        try:
            session = Session.model_validate_json(content)
        except (ValueError, ValidationError) as e:
            logger.warning("Discarding corrupt session file %s: %s", path, e)
            discard_file(path)
            return None

        if session.id != session_id:
            logger.warning("Session file %s belongs to %s, not %s", path, session.id, session_id)
            return None
        return session

    def create(self, session_id: str, cwd: str) -> Session:
        now = self._clock()
        return Session(
            id=session_id,
            started=now,
            last_activity=now,
            cwd=cwd,
            label=Path(cwd).name or "unknown",
        )

    def get_or_create(self, session_id: str, cwd: str) -> tuple[Session, bool]:
        """Return the stored session or a fresh one.

        Returns:
            Tuple of (session, is_new).
        """
        existing = self.load(session_id)
        if existing is not None:
            return existing, False
        logger.debug("Creating session %s in %s", session_id, cwd)
        return self.create(session_id, cwd), True

    def record_turn(self, session: Session, prompt: str | None = None) -> None:
        """Count a turn and derive the title from the first prompts."""
        session.prompt_count += 1
        session.last_activity = self._clock()

        if session.title is None and prompt and session.prompt_count <= TITLE_PROMPT_WINDOW:
            title = derive_title(prompt)
            if title:
                session.title = title

    @staticmethod
    def apply_overrides(config: StewardConfig, session: Session) -> StewardConfig:
        """Effective configuration for a session; ``config`` is not mutated."""
        return apply_overrides(config, session.overrides)

    def set_overrides(
        self,
        session: Session,
        **values: bool | dict[str, bool | None] | None,
    ) -> None:
        """Merge override values into a session.

        Raises:
            ValidationError: If a value has the wrong type.
        """
        merged = session.overrides.model_dump()
        group_states = values.pop("group_states", None)
        merged.update(values)
        if isinstance(group_states, dict):
            merged["group_states"] = {**merged.get("group_states", {}), **group_states}
        session.overrides = SessionOverrides.model_validate(merged)

    def persist(self, session: Session) -> Path:
        """Write a session to disk, replacing any previous copy.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        path = self.session_file(session.id)
        try:
            self.sessions_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(session.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            raise PersistenceError(
                f"Failed to save session {session.id}",
                cause=e,
                path=str(path),
            ) from e
        return path

    def iter_files(self) -> list[Path]:
        if not self.sessions_dir.is_dir():
            return []
        try:
            return sorted(self.sessions_dir.glob("*.json"))
        except OSError as e:
            logger.warning("Cannot list session files in %s: %s", self.sessions_dir, e)
            return []

    def sweep_stale(self, max_age_hours: float = STALE_SESSION_HOURS) -> int:
        """Delete sessions idle for longer than ``max_age_hours``.

        Unparseable session files are deleted as well.

        Returns:
            Number of files removed.
        """
        cutoff = self._clock() - timedelta(hours=max_age_hours)
        removed = 0

        for path in self.iter_files():
            try:
                session = Session.model_validate_json(path.read_text(encoding="utf-8"))
                stale = session.last_activity < cutoff
            except (OSError, ValueError, ValidationError):
                stale = True

            if stale and discard_file(path):
                removed += 1

        if removed:
            logger.info("Removed %d stale session files from %s", removed, self.sessions_dir)
        return removed

    def clear(self) -> int:
        """Delete every session file.

        Returns:
            Number of files removed.
        """
        return sum(1 for path in self.iter_files() if discard_file(path))

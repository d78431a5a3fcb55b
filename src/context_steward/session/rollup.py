"""Cross-session savings rollup.

The ledger lives at ``<config_path>/stats.json`` and keeps one snapshot per
session. Totals are always recomputed from the snapshots, so they cannot
drift from them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path

from pydantic import ValidationError

from context_steward.errors import PersistenceError
from context_steward.session.models import (
    RollupLedger,
    RollupTotals,
    Session,
    SessionSummary,
    utcnow,
)
from context_steward.session.store import SessionStore, discard_file

logger = logging.getLogger(__name__)

ROLLUP_FILE = "stats.json"


class RollupStore:
    """Maintain the cross-session savings ledger."""

    def __init__(
        self,
        config_path: Path,
        *,
        sessions: SessionStore | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the rollup store.

        Args:
            config_path: Configuration directory holding the ledger.
            sessions: Session store whose files are merged into rollups.
            clock: Returns the current time (timezone aware).
        """
        self.config_path = Path(config_path)
        self.ledger_file = self.config_path / ROLLUP_FILE
        self.sessions = sessions or SessionStore(self.config_path, clock=clock)
        self._clock = clock

    def load(self) -> RollupLedger:
        """Read the ledger, replacing a corrupt file with a fresh ledger."""
        try:
            content = self.ledger_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return RollupLedger()
        except UnicodeDecodeError as e:
            logger.warning("Discarding corrupt rollup ledger %s: %s", self.ledger_file, e)
            discard_file(self.ledger_file)
            return RollupLedger()
        except OSError as e:
            logger.warning("Cannot read rollup ledger %s: %s", self.ledger_file, e)
            return RollupLedger()

        try:
            ledger = RollupLedger.model_validate_json(content)
        except (ValueError, ValidationError) as e:
            logger.warning("Discarding corrupt rollup ledger %s: %s", self.ledger_file, e)
            discard_file(self.ledger_file)
            return RollupLedger()

        ledger.recompute()
        return ledger

    def save(self, ledger: RollupLedger) -> None:
        """Write the ledger.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        try:
            self.config_path.mkdir(parents=True, exist_ok=True)
            self.ledger_file.write_text(ledger.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            raise PersistenceError(
                "Failed to save rollup ledger",
                cause=e,
                path=str(self.ledger_file),
            ) from e

    def update(self, session: Session) -> RollupLedger:
        """Replace the session's snapshot and save the ledger.

        Calling this twice with an unchanged session leaves the totals
        unchanged.

        Raises:
            PersistenceError: If the ledger cannot be written.
        """
        ledger = self.load()
        ledger.upsert(SessionSummary.from_session(session))
        self.save(ledger)
        return ledger

    def _merged_summaries(self) -> list[SessionSummary]:
        summaries = {summary.session_id: summary for summary in self.load().sessions}

        for path in self.sessions.iter_files():
            try:
                session = Session.model_validate_json(path.read_text(encoding="utf-8"))
            except (OSError, ValueError, ValidationError):
                logger.debug("Skipping unreadable session file %s", path)
                continue
            if session.id not in summaries:
                summaries[session.id] = SessionSummary.from_session(session)

        return list(summaries.values())

    def rollup(self, max_age_days: int | None = None) -> RollupTotals:
        """Totals across every known session.

        Sessions with a file on disk but no snapshot in the ledger are
        included.

        Args:
            max_age_days: Only count sessions started within this many days.

        Returns:
            ``RollupTotals`` recomputed from the snapshots.
        """
        summaries = self._merged_summaries()
        if max_age_days is not None:
            cutoff = self._clock() - timedelta(days=max_age_days)
            summaries = [summary for summary in summaries if summary.started >= cutoff]
        return RollupTotals.from_summaries(summaries)

    def clear(self) -> None:
        """Remove the ledger and every session file."""
        discard_file(self.ledger_file)
        removed = self.sessions.clear()
        logger.info("Cleared rollup ledger and %d session files", removed)

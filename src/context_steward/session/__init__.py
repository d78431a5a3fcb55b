"""Session state and cross-session savings ledger."""

from context_steward.session.models import (
    RollupLedger,
    RollupTotals,
    Session,
    SessionSummary,
)
from context_steward.session.rollup import RollupStore
from context_steward.session.store import SessionStore, derive_title

__all__ = [
    "RollupLedger",
    "RollupStore",
    "RollupTotals",
    "Session",
    "SessionStore",
    "SessionSummary",
    "derive_title",
]

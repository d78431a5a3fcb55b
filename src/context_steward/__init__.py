"""
Context Steward - selective rule injection and transcript compaction for coding agents.

Quick Start:
    >>> from context_steward import ContextSteward
    >>> steward = ContextSteward.from_directory("/work/project")
    >>> turn = steward.process_prompt("abc123", "fix the login form", "/work/project")
    >>> print(turn.block)

Compacting history:
    >>> stats = steward.compact_transcript("abc123", transcript, "/work/project")
    >>> stats.total_tokens_saved
    1840

Key Features:
    - Keyword, path-glob and star-command rule activation
    - Escalation levels driven by conversation length
    - Relevance-scored compaction of stale tool outputs
    - Per-session overrides and cross-session savings rollup
"""

from context_steward.config import StewardConfig, load_config
from context_steward.context.compaction import RelevanceCompactor, TrimStats
from context_steward.engine import RuleBundle, aggregate, match_groups, resolve_escalation
from context_steward.errors import (
    ConfigNotFoundError,
    ConfigurationError,
    PersistenceError,
    StewardError,
)
from context_steward.formatting import render_bundle
from context_steward.session import RollupStore, Session, SessionStore
from context_steward.steward import ContextSteward, TurnResult

__version__ = "0.1.0"

__all__ = [
    # Core
    "ContextSteward",
    "TurnResult",
    # Configuration
    "StewardConfig",
    "load_config",
    # Engine
    "RuleBundle",
    "aggregate",
    "match_groups",
    "render_bundle",
    "resolve_escalation",
    # History
    "RelevanceCompactor",
    "TrimStats",
    # Sessions
    "RollupStore",
    "Session",
    "SessionStore",
    # Errors
    "ConfigNotFoundError",
    "ConfigurationError",
    "PersistenceError",
    "StewardError",
    # Version
    "__version__",
]

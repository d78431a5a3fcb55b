"""Rule selection engine.

Per turn the engine runs, in order:
    - match_groups: which rule groups and star-commands the prompt activates
    - resolve_escalation: urgency level from the session prompt count
    - aggregate: the ordered rule bundle to inject
    - estimate_baseline: cost of injecting everything, for savings accounting

Example:
    >>> from context_steward.config import load_config
    >>> from context_steward.engine import aggregate, match_groups, resolve_escalation
    >>> config = load_config(".steward")
    >>> activation = match_groups("fix the setup docs", config.manifest.groups)
    >>> escalation = resolve_escalation(
    ...     3, config.escalation.thresholds, config.escalation.levels
    ... )
    >>> bundle = aggregate(activation, escalation, config, prompt_count=3)
"""

from context_steward.engine.aggregator import (
    AvailableGroup,
    RuleBundle,
    aggregate,
    estimate_baseline,
)
from context_steward.engine.escalation import (
    EscalationLevel,
    EscalationResult,
    resolve_escalation,
)
from context_steward.engine.globs import compile_glob, match_any, normalize_path
from context_steward.engine.matcher import (
    ActivationResult,
    detect_star_commands,
    extract_path_tokens,
    find_keywords,
    match_groups,
)

__all__ = [
    "ActivationResult",
    "AvailableGroup",
    "EscalationLevel",
    "EscalationResult",
    "RuleBundle",
    "aggregate",
    "compile_glob",
    "detect_star_commands",
    "estimate_baseline",
    "extract_path_tokens",
    "find_keywords",
    "match_any",
    "match_groups",
    "normalize_path",
    "resolve_escalation",
]

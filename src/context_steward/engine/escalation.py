"""Escalation levels derived from a session's prompt count.

Levels (from least to most urgent):
- NOMINAL: prompt_count < moderate
- REINFORCED: moderate <= prompt_count < heavy
- HEAVY: heavy <= prompt_count < critical
- CRITICAL: prompt_count >= critical (HEAVY rules plus a warning)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from context_steward.config.schema import EscalationLevels, EscalationThresholds


class EscalationLevel(str, Enum):
    """Ordered urgency states for an ageing conversation."""

    NOMINAL = "nominal"
    REINFORCED = "reinforced"
    HEAVY = "heavy"
    CRITICAL = "critical"

    @property
    def order(self) -> int:
        return _LEVEL_ORDER[self]


_LEVEL_ORDER = {
    EscalationLevel.NOMINAL: 0,
    EscalationLevel.REINFORCED: 1,
    EscalationLevel.HEAVY: 2,
    EscalationLevel.CRITICAL: 3,
}


@dataclass
class EscalationResult:
    """Resolved escalation state for one turn.

    Attributes:
        level: Current level.
        instruction_lines: Rules for the level (empty when it is disabled).
        threshold_crossed: Threshold of the current level (0 for nominal).
    """

    level: EscalationLevel
    instruction_lines: list[str] = field(default_factory=list)
    threshold_crossed: int = 0

    @property
    def is_critical(self) -> bool:
        return self.level is EscalationLevel.CRITICAL


def resolve_escalation(
    prompt_count: int,
    thresholds: EscalationThresholds,
    levels: EscalationLevels,
) -> EscalationResult:
    """Map a prompt count to an escalation level.

    Critical deliberately reuses the heavy level's rules: it is a warning
    overlay rather than a distinct rule set.

    Args:
        prompt_count: Turns processed so far in the session.
        thresholds: Ascending moderate/heavy/critical thresholds.
        levels: Per-level rule sets.

    Returns:
        ``EscalationResult`` with a copy of the level's rules.
    """
    if prompt_count >= thresholds.critical:
        heavy = levels.heavy
        return EscalationResult(
            level=EscalationLevel.CRITICAL,
            instruction_lines=list(heavy.rules) if heavy.enabled else [],
            threshold_crossed=thresholds.critical,
        )

    if prompt_count >= thresholds.heavy:
        heavy = levels.heavy
        return EscalationResult(
            level=EscalationLevel.HEAVY,
            instruction_lines=list(heavy.rules) if heavy.enabled else [],
            threshold_crossed=thresholds.heavy,
        )

    if prompt_count >= thresholds.moderate:
        reinforced = levels.reinforced
        return EscalationResult(
            level=EscalationLevel.REINFORCED,
            instruction_lines=list(reinforced.rules) if reinforced.enabled else [],
            threshold_crossed=thresholds.moderate,
        )

    nominal = levels.nominal
    return EscalationResult(
        level=EscalationLevel.NOMINAL,
        instruction_lines=list(nominal.rules) if nominal.enabled else [],
        threshold_crossed=0,
    )

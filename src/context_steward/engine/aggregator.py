"""Rule aggregation.

Combines an ``ActivationResult`` and an ``EscalationResult`` with the
static command definitions into one ordered ``RuleBundle``, and computes
the flat-injection baseline that selective loading is measured against.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from context_steward.config.loader import read_instruction_lines
from context_steward.config.overrides import SessionOverrides, apply_overrides
from context_steward.config.schema import StewardConfig
from context_steward.engine.escalation import EscalationLevel, EscalationResult
from context_steward.engine.matcher import ActivationResult
from context_steward.tokens.counter import estimate_lines_tokens

logger = logging.getLogger(__name__)

RuleReader = Callable[[Path], list[str]]


@dataclass
class AvailableGroup:
    """An enabled group that was not loaded this turn."""

    name: str
    recall: list[str] = field(default_factory=list)


@dataclass
class RuleBundle:
    """Ordered injectable rules for one turn.

    Attributes:
        always_on: Always-on group rules keyed by group name.
        activated: Activated group rules keyed by group name.
        commands: Star-command rules keyed by command name.
        escalation_rules: Rules of the current escalation level.
        escalation_level: Current escalation level.
        escalation_threshold: Threshold of the current level.
        prompt_count: Session prompt count the bundle was built for.
        matched_keywords: Keywords (or paths) that activated each group.
        suppressed: Exclusion keywords that suppressed each group.
        global_suppressed: Global exclusion keywords found.
        available: Enabled groups that were not loaded.
        devmode: Whether debug output is requested.
        escalation_enabled: Whether the escalation subsystem is on.
        commands_enabled: Whether the star-command subsystem is on.
    """

    always_on: dict[str, list[str]] = field(default_factory=dict)
    activated: dict[str, list[str]] = field(default_factory=dict)
    commands: dict[str, list[str]] = field(default_factory=dict)
    escalation_rules: list[str] = field(default_factory=list)
    escalation_level: EscalationLevel = EscalationLevel.NOMINAL
    escalation_threshold: int = 0
    prompt_count: int = 0
    matched_keywords: dict[str, list[str]] = field(default_factory=dict)
    suppressed: dict[str, list[str]] = field(default_factory=dict)
    global_suppressed: list[str] = field(default_factory=list)
    available: list[AvailableGroup] = field(default_factory=list)
    devmode: bool = False
    escalation_enabled: bool = True
    commands_enabled: bool = True

    def all_lines(self) -> list[str]:
        """Every injected line, in injection order."""
        lines: list[str] = []
        for rules in self.always_on.values():
            lines.extend(rules)
        for rules in self.activated.values():
            lines.extend(rules)
        for rules in self.commands.values():
            lines.extend(rules)
        lines.extend(self.escalation_rules)
        return lines

    def rule_count(self) -> int:
        return len(self.all_lines())

    def estimated_tokens(self) -> int:
        return estimate_lines_tokens(self.all_lines())

    def loaded_groups(self) -> list[str]:
        return [*self.always_on, *self.activated]


def aggregate(
    activation: ActivationResult,
    escalation: EscalationResult,
    config: StewardConfig,
    *,
    overrides: SessionOverrides | None = None,
    prompt_count: int = 0,
    reader: RuleReader = read_instruction_lines,
) -> RuleBundle:
    """Build the rule bundle for one turn.

    Never raises for configuration defects: a group whose document is
    missing contributes no rules, and unknown star-commands are ignored.

    Args:
        activation: Matcher output for this turn.
        escalation: Escalation state for this turn.
        config: Loaded configuration.
        overrides: Session overrides applied before aggregating.
        prompt_count: Session prompt count, for display.
        reader: Reads instruction lines from a rule document.

    Returns:
        ``RuleBundle`` with rules in injection order.
    """
    effective = apply_overrides(config, overrides)
    manifest = effective.manifest

    bundle = RuleBundle(
        escalation_level=escalation.level,
        escalation_threshold=escalation.threshold_crossed,
        prompt_count=prompt_count,
        suppressed=dict(activation.suppressed),
        global_suppressed=list(activation.global_suppressed),
        devmode=manifest.devmode,
        escalation_enabled=manifest.context.enabled,
        commands_enabled=manifest.commands.enabled,
    )

    def load(name: str) -> list[str]:
        group = manifest.groups.get(name)
        if group is None or not group.enabled:
            return []
        return reader(effective.group_document(name))

    for name in activation.always_on:
        rules = load(name)
        if rules:
            bundle.always_on[name] = rules

    for name, keywords in activation.activated.items():
        rules = load(name)
        if rules:
            bundle.activated[name] = rules
            bundle.matched_keywords[name] = list(keywords)

    if manifest.commands.enabled:
        for command in activation.star_commands:
            definition = effective.commands.get(command)
            if definition is not None and definition.rules:
                bundle.commands[command] = list(definition.rules)

    if manifest.context.enabled:
        bundle.escalation_rules = list(escalation.instruction_lines)

    for name, group in manifest.groups.items():
        if not group.enabled or group.always_on:
            continue
        if name in activation.activated or name in activation.suppressed:
            continue
        if group.recall:
            bundle.available.append(AvailableGroup(name=name, recall=list(group.recall)))

    logger.debug(
        "Aggregated %d rules (%d always-on groups, %d activated, %d commands, level %s)",
        bundle.rule_count(),
        len(bundle.always_on),
        len(bundle.activated),
        len(bundle.commands),
        bundle.escalation_level.value,
    )
    return bundle


def estimate_baseline(
    config: StewardConfig,
    *,
    reader: RuleReader = read_instruction_lines,
) -> int:
    """Estimate the tokens of injecting every rule on every turn.

    Sums every enabled group's rules regardless of activation, every
    defined command and the longest escalation rule set.

    Args:
        config: Effective configuration (overrides already applied).
        reader: Reads instruction lines from a rule document.

    Returns:
        Baseline token estimate per turn.
    """
    manifest = config.manifest
    lines: list[str] = []

    for name, group in manifest.groups.items():
        if group.enabled:
            lines.extend(reader(config.group_document(name)))

    if manifest.commands.enabled:
        for definition in config.commands.values():
            lines.extend(definition.rules)

    if manifest.context.enabled:
        levels = config.escalation.levels
        rule_sets = [
            level.rules
            for level in (levels.nominal, levels.reinforced, levels.heavy)
            if level.enabled
        ]
        if rule_sets:
            lines.extend(max(rule_sets, key=lambda rules: sum(len(r) for r in rules)))

    return estimate_lines_tokens(lines)

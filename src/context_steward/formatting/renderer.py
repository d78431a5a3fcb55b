"""Render a rule bundle into the injectable text block."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined

from context_steward.context.transcript import RULE_BLOCK_END, RULE_BLOCK_START
from context_steward.engine.aggregator import RuleBundle
from context_steward.engine.escalation import EscalationLevel
from context_steward.session.models import RollupTotals
from context_steward.tokens.tracker import TokenStats

TEMPLATE_EXTENSION = ".jinja2"


@dataclass
class SavingsReport:
    """Savings figures shown in devmode output and the ``*stats`` report.

    Attributes:
        prompts_processed: Turns accounted for in the session.
        baseline_per_prompt: Cost of injecting every rule on one turn.
        tokens_injected: Tokens emitted in rule blocks this session.
        skipped_by_selection: Tokens saved by selective loading.
        trimmed_from_history: Tokens saved by tool-output compaction.
        trimmed_rule_blocks: Tokens saved by removing stale rule blocks.
        rules_this_prompt: Instruction lines in the current bundle.
        avg_rules_per_prompt: Average lines per turn this session.
        show_full_report: Render the full report section.
        rollup: Totals across sessions, when stats are enabled.
        rollup_days: Retention window the rollup was filtered to.
    """

    prompts_processed: int = 0
    baseline_per_prompt: int = 0
    tokens_injected: int = 0
    skipped_by_selection: int = 0
    trimmed_from_history: int = 0
    trimmed_rule_blocks: int = 0
    rules_this_prompt: int = 0
    avg_rules_per_prompt: float = 0.0
    show_full_report: bool = False
    rollup: RollupTotals | None = None
    rollup_days: int | None = None

    @classmethod
    def from_stats(
        cls,
        stats: TokenStats,
        *,
        baseline_per_prompt: int,
        rules_this_prompt: int = 0,
        show_full_report: bool = False,
        rollup: RollupTotals | None = None,
        rollup_days: int | None = None,
    ) -> SavingsReport:
        return cls(
            prompts_processed=stats.prompts_processed,
            baseline_per_prompt=baseline_per_prompt,
            tokens_injected=stats.tokens_injected,
            skipped_by_selection=stats.tokens_skipped_by_selection,
            trimmed_from_history=stats.tokens_trimmed_from_history,
            trimmed_rule_blocks=stats.tokens_trimmed_rule_blocks,
            rules_this_prompt=rules_this_prompt,
            avg_rules_per_prompt=stats.avg_rules_per_prompt,
            show_full_report=show_full_report,
            rollup=rollup,
            rollup_days=rollup_days,
        )

    @property
    def trimmed_total(self) -> int:
        return self.trimmed_from_history + self.trimmed_rule_blocks

    @property
    def total_saved(self) -> int:
        return self.skipped_by_selection + self.trimmed_total

    @property
    def percent_reduction(self) -> int:
        """Share of the unoptimised cost that was saved, as a whole percent."""
        total_baseline = self.baseline_per_prompt * self.prompts_processed
        if total_baseline <= 0:
            return 0
        return round(self.total_saved / (total_baseline + self.tokens_injected) * 100)


def _numbered(rules: Iterable[str]) -> str:
    return "\n".join(f"  {position}. {rule}" for position, rule in enumerate(rules, start=1))


def _quoted(values: Iterable[str]) -> str:
    return ", ".join(f'"{value}"' for value in values)


def _thousands(value: int) -> str:
    return f"{value:,}"


@lru_cache(maxsize=1)
def get_environment() -> Environment:
    """Jinja2 environment for the packaged section templates."""
    env = Environment(
        loader=PackageLoader("context_steward.formatting", "templates"),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=False,
        undefined=StrictUndefined,
    )
    env.filters["numbered"] = _numbered
    env.filters["quoted"] = _quoted
    env.filters["thousands"] = _thousands
    return env


def render_section(section: str, /, **variables: Any) -> str:
    """Render one section template, without surrounding blank lines.

    ``section`` is positional-only so that templates may use any variable
    name, including ``name``.
    """
    template = get_environment().get_template(f"{section}{TEMPLATE_EXTENSION}")
    return template.render(**variables).strip("\n")


def render_bundle(bundle: RuleBundle, savings: SavingsReport | None = None) -> str:
    """Render a bundle as a marker-delimited text block.

    Sections, in order: escalation status, escalation rules, active
    commands, devmode instruction, loaded groups summary, group rules,
    exclusion notices, available groups, savings report.

    Args:
        bundle: Aggregated rules for the turn.
        savings: Savings figures; the report section is only rendered when
            ``savings.show_full_report`` is set.

    Returns:
        Text block wrapped in rule-block markers.
    """
    sections: list[str] = []
    level_name = bundle.escalation_level.value

    if bundle.escalation_enabled:
        sections.append(
            render_section(
                "status",
                level=level_name,
                prompt_count=bundle.prompt_count,
                critical=bundle.escalation_level is EscalationLevel.CRITICAL,
            )
        )
        if bundle.escalation_rules:
            sections.append(
                render_section("escalation_rules", level=level_name, rules=bundle.escalation_rules)
            )

    if bundle.commands:
        sections.append(render_section("commands", commands=bundle.commands))

    sections.append(render_section("devmode", devmode=bundle.devmode, savings=savings))

    if bundle.always_on or bundle.activated:
        sections.append(
            render_section(
                "loaded_groups",
                always_on=bundle.always_on,
                activated=bundle.activated,
                matched_keywords=bundle.matched_keywords,
            )
        )

    for name, rules in [*bundle.always_on.items(), *bundle.activated.items()]:
        sections.append(render_section("group_rules", name=name, rules=rules))

    if bundle.global_suppressed or bundle.suppressed:
        sections.append(
            render_section(
                "exclusions",
                global_suppressed=bundle.global_suppressed,
                suppressed=bundle.suppressed,
            )
        )

    if bundle.available:
        sections.append(render_section("available", available=bundle.available))

    if savings is not None and savings.show_full_report:
        sections.append(
            render_section(
                "savings_report",
                savings=savings,
                rollup=savings.rollup,
                rollup_days=savings.rollup_days,
            )
        )

    body = "\n\n".join(section for section in sections if section)
    return f"{RULE_BLOCK_START}\n{body}\n{RULE_BLOCK_END}"

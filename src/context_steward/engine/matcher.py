"""Rule-group activation matching.

Decides, for one user turn, which rule groups are always on, activated or
suppressed, and which star-commands (``*brief``) the prompt contains.

Algorithm:
1. Lower-case the prompt once.
2. If any global exclusion keyword matches, skip all group matching but
   still detect star-commands.
3. For each enabled group in declaration order:
   a. always-on groups are collected without any keyword evaluation;
   b. suppression keywords exclude the group for this turn;
   c. path globs are tested against the active paths plus file-like
      tokens from the prompt; a hit activates the group;
   d. otherwise recall keywords are tested and every hit is recorded.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache

from context_steward.config.schema import RuleGroupConfig
from context_steward.engine.globs import match_any

STAR_COMMAND_PATTERN = re.compile(r"\*([a-zA-Z]\w*)")

# A token is treated as a path when it contains a separator or ends in a
# short extension that starts with a letter. Single-letter stems need a
# longer extension, so "e.g." and "i.e." stay words.
_EXTENSION_PATTERN = re.compile(
    r"(?:[^./]{2,}\.[A-Za-z][A-Za-z0-9]{0,4}|[^./]\.[A-Za-z][A-Za-z0-9]{1,4})$"
)
_TOKEN_STRIP = "\"'`()[]{}<>,;:!?"


@dataclass
class ActivationResult:
    """Outcome of matching one prompt against the rule groups.

    Attributes:
        always_on: Always-on group names, in declaration order.
        activated: Group name to the keywords (or paths) that activated it.
        path_activated: Groups activated by a path glob rather than a keyword.
        suppressed: Group name to the exclusion keywords that suppressed it.
        global_suppressed: Global exclusion keywords found in the prompt.
        star_commands: Star-command names (lower-case, de-duplicated).
    """

    always_on: list[str] = field(default_factory=list)
    activated: dict[str, list[str]] = field(default_factory=dict)
    path_activated: set[str] = field(default_factory=set)
    suppressed: dict[str, list[str]] = field(default_factory=dict)
    global_suppressed: list[str] = field(default_factory=list)
    star_commands: list[str] = field(default_factory=list)

    @property
    def is_globally_suppressed(self) -> bool:
        return bool(self.global_suppressed)

    def active_groups(self) -> list[str]:
        """Always-on groups followed by activated groups."""
        return [*self.always_on, *self.activated]


@lru_cache(maxsize=1024)
def _keyword_regex(keyword: str) -> re.Pattern[str]:
    return re.compile(r"(?:^|\W)" + re.escape(keyword) + r"(?:$|\W)")


def find_keywords(prompt_lower: str, keywords: Iterable[str]) -> list[str]:
    """Return every keyword that occurs on word boundaries in the prompt.

    Args:
        prompt_lower: Prompt text, already lower-cased.
        keywords: Keywords as configured (returned unchanged when they hit).

    Returns:
        Matching keywords in configuration order.
    """
    hits: list[str] = []
    for keyword in keywords:
        needle = keyword.lower().strip()
        if not needle:
            continue
        if _keyword_regex(needle).search(prompt_lower):
            hits.append(keyword)
    return hits


def detect_star_commands(prompt: str) -> list[str]:
    """Detect star-commands, e.g. ``"*brief *dev explain"`` -> ``["brief", "dev"]``."""
    commands: list[str] = []
    for match in STAR_COMMAND_PATTERN.finditer(prompt):
        name = match.group(1).lower()
        if name not in commands:
            commands.append(name)
    return commands


def extract_path_tokens(prompt: str) -> list[str]:
    """Pull file-like tokens out of free text."""
    tokens: list[str] = []
    for raw in prompt.split():
        token = raw.strip(_TOKEN_STRIP).rstrip(".")
        if not token or token.startswith("*"):
            continue
        if "/" in token or _EXTENSION_PATTERN.search(token):
            tokens.append(token)
    return tokens


def match_groups(
    prompt: str,
    groups: Mapping[str, RuleGroupConfig],
    *,
    active_paths: Iterable[str] = (),
    global_exclude: Iterable[str] = (),
) -> ActivationResult:
    """Match rule groups against a user prompt.

    Never raises: a prompt that matches nothing is a valid result.

    Args:
        prompt: Free-text user input for this turn.
        groups: Rule groups keyed by name, in declaration order.
        active_paths: Paths the host reports as open or recently edited.
        global_exclude: Keywords that suppress all group matching.

    Returns:
        ``ActivationResult`` for this turn.
    """
    prompt = prompt or ""
    prompt_lower = prompt.lower()
    result = ActivationResult()

    global_hits = find_keywords(prompt_lower, global_exclude)
    if global_hits:
        result.global_suppressed = global_hits
        result.star_commands = detect_star_commands(prompt)
        return result

    candidate_paths: list[str] | None = None

    for name, group in groups.items():
        if not group.enabled:
            continue

        if group.always_on:
            result.always_on.append(name)
            continue

        excluded_by = find_keywords(prompt_lower, group.exclude)
        if excluded_by:
            result.suppressed[name] = excluded_by
            continue

        if group.paths:
            if candidate_paths is None:
                candidate_paths = [*active_paths, *extract_path_tokens(prompt)]
            path_hits = match_any(group.paths, candidate_paths)
            if path_hits:
                result.activated[name] = path_hits
                result.path_activated.add(name)
                continue

        recall_hits = find_keywords(prompt_lower, group.recall)
        if recall_hits:
            result.activated[name] = recall_hits

    result.star_commands = detect_star_commands(prompt)
    return result

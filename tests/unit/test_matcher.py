"""Tests for rule-group activation matching."""

from __future__ import annotations

from context_steward.config.schema import RuleGroupConfig
from context_steward.engine.matcher import (
    detect_star_commands,
    extract_path_tokens,
    find_keywords,
    match_groups,
)


def _groups() -> dict[str, RuleGroupConfig]:
    return {
        "global": RuleGroupConfig(always_on=True, file="global.md"),
        "frontend": RuleGroupConfig(
            recall=["react", "css"],
            exclude=["backend only"],
            paths=["src/ui/**/*.tsx"],
            file="frontend.md",
        ),
        "docs": RuleGroupConfig(recall=["docs", "readme"], file="docs.md"),
        "legacy": RuleGroupConfig(state="inactive", recall=["legacy"], file="legacy.md"),
    }


class TestFindKeywords:
    """Tests for find_keywords()."""

    def test_matches_on_word_boundaries(self) -> None:
        """A keyword inside a longer word does not match."""
        assert find_keywords("the reactor is hot", ["react"]) == []
        assert find_keywords("fix the react form", ["react"]) == ["react"]

    def test_punctuation_counts_as_boundary(self) -> None:
        """Keywords adjacent to punctuation still match."""
        assert find_keywords("(react), css!", ["react", "css"]) == ["react", "css"]

    def test_keywords_are_case_insensitive(self) -> None:
        """Configured keywords are lower-cased before matching."""
        assert find_keywords("update the readme", ["README"]) == ["README"]

    def test_empty_keywords_are_ignored(self) -> None:
        """Blank keywords never match."""
        assert find_keywords("anything", ["", "   "]) == []

    def test_regex_characters_are_literal(self) -> None:
        """Keywords containing regex metacharacters are escaped."""
        assert find_keywords("upgrade c++ code", ["c++"]) == ["c++"]
        assert find_keywords("upgrade cpp code", ["c++"]) == []


class TestDetectStarCommands:
    """Tests for detect_star_commands()."""

    def test_detects_lower_cased_and_deduplicated(self) -> None:
        """Commands are lower-cased and returned once in first-seen order."""
        assert detect_star_commands("*Brief do it *dev and *brief") == ["brief", "dev"]

    def test_requires_leading_letter(self) -> None:
        """A star followed by a digit or space is not a command."""
        assert detect_star_commands("2 * 3 and *9lives") == []


class TestExtractPathTokens:
    """Tests for extract_path_tokens()."""

    def test_picks_paths_and_filenames(self) -> None:
        """Tokens with a slash or a short extension are treated as paths."""
        prompt = "look at src/ui/App.tsx and (README.md), not this sentence."

        assert extract_path_tokens(prompt) == ["src/ui/App.tsx", "README.md"]

    def test_skips_star_commands(self) -> None:
        """Star-command tokens are not paths."""
        assert extract_path_tokens("*brief.txt") == []

    def test_abbreviations_and_versions_are_not_paths(self) -> None:
        """Dotted abbreviations and version numbers stay plain words."""
        prompt = "use a hook, e.g. useMemo, i.e. memoise it in v1.2 or 3.14"

        assert extract_path_tokens(prompt) == []

    def test_short_stems_with_real_extensions_are_paths(self) -> None:
        """A one-letter stem still counts with a longer extension."""
        assert extract_path_tokens("see a.py and x.tsx") == ["a.py", "x.tsx"]


class TestMatchGroups:
    """Tests for match_groups()."""

    def test_always_on_and_keyword_activation(self) -> None:
        """Always-on groups are collected and recall keywords activate groups."""
        result = match_groups("Fix the React form css", _groups())

        assert result.always_on == ["global"]
        assert result.activated == {"frontend": ["react", "css"]}
        assert result.suppressed == {}

    def test_exclusion_suppresses_group(self) -> None:
        """An exclusion keyword wins over recall keywords."""
        result = match_groups("react tweak, backend only please", _groups())

        assert "frontend" not in result.activated
        assert result.suppressed == {"frontend": ["backend only"]}

    def test_global_exclusion_skips_everything_but_commands(self) -> None:
        """Global exclusion suppresses all groups, even always-on ones."""
        result = match_groups(
            "steward off *brief react docs",
            _groups(),
            global_exclude=["steward off"],
        )

        assert result.global_suppressed == ["steward off"]
        assert result.always_on == []
        assert result.activated == {}
        assert result.star_commands == ["brief"]

    def test_inactive_group_never_matches(self) -> None:
        """Groups in the inactive state are skipped."""
        result = match_groups("legacy cleanup", _groups())

        assert "legacy" not in result.activated

    def test_active_path_activates_group(self) -> None:
        """A matching active path activates the group without keywords."""
        result = match_groups("tidy this up", _groups(), active_paths=["src/ui/forms/Input.tsx"])

        assert result.activated["frontend"] == ["src/ui/forms/Input.tsx"]
        assert "frontend" in result.path_activated

    def test_path_mentioned_in_prompt_activates_group(self) -> None:
        """File-like prompt tokens are matched against path globs."""
        result = match_groups("rename props in src/ui/Button.tsx", _groups())

        assert result.activated["frontend"] == ["src/ui/Button.tsx"]

    def test_declaration_order_is_preserved(self) -> None:
        """Activated groups appear in manifest order."""
        result = match_groups("update docs for react", _groups())

        assert list(result.activated) == ["frontend", "docs"]
        assert result.active_groups() == ["global", "frontend", "docs"]

    def test_empty_prompt_only_yields_always_on(self) -> None:
        """An empty prompt is a valid input."""
        result = match_groups("", _groups())

        assert result.always_on == ["global"]
        assert result.activated == {}
        assert result.star_commands == []

    def test_always_on_ignores_exclude_and_recall_keywords(self) -> None:
        """An always-on group is neither suppressed nor keyword-activated."""
        groups = {
            "global": RuleGroupConfig(
                always_on=True,
                recall=["trap"],
                exclude=["trap"],
                file="global.md",
            ),
        }

        result = match_groups("walk into the trap", groups)

        assert result.always_on == ["global"]
        assert result.suppressed == {}
        assert result.activated == {}

    def test_keywords_and_star_commands_in_one_prompt(self) -> None:
        """Star commands are collected alongside keyword activation."""
        groups = {
            "docs": RuleGroupConfig(recall=["setup"], file="docs.md"),
        }

        result = match_groups("please *brief explain the *carly setup", groups)

        assert result.activated == {"docs": ["setup"]}
        assert result.star_commands == ["brief", "carly"]
        assert result.path_activated == set()

    def test_path_activation_skips_keyword_hits(self) -> None:
        """A group activated by path records the path, not its keywords."""
        result = match_groups("react tweak in src/ui/Button.tsx", _groups())

        assert result.activated["frontend"] == ["src/ui/Button.tsx"]
        assert "frontend" in result.path_activated

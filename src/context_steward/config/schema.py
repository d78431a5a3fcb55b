"""Configuration models.

Pydantic models for every configuration file in a ``.steward/`` directory:

- ``manifest.json`` -- rule-group registry and subsystem settings
- ``commands.json`` -- star-command definitions
- ``context.json`` -- escalation thresholds and per-level rules

Unknown keys are ignored so that newer config files keep loading in older
releases.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator

GroupState = Literal["active", "inactive"]


class TrimMode(str, Enum):
    """How eagerly stale tool outputs are compacted.

    Attributes:
        CONSERVATIVE: Only compact clearly dead outputs.
        BALANCED: Default trade-off.
        AGGRESSIVE: Compact anything not recently useful.
    """

    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"


# Records scoring strictly below the threshold are compacted.
TRIM_THRESHOLDS: dict[TrimMode, int] = {
    TrimMode.CONSERVATIVE: 20,
    TrimMode.BALANCED: 40,
    TrimMode.AGGRESSIVE: 60,
}


class RuleGroupConfig(BaseModel):
    """A named, independently toggleable set of instruction lines.

    Attributes:
        state: Whether the group takes part in matching at all.
        always_on: Inject on every turn without keyword evaluation.
        recall: Activation keywords (case-insensitive, word-boundary match).
        exclude: Suppression keywords; a hit excludes the group for the turn.
        paths: File-path glob patterns that activate the group.
        file: Rule document path, relative to the config directory.
    """

    model_config = ConfigDict(extra="ignore")

    state: GroupState = Field(default="active", description="Group lifecycle state")
    always_on: bool = Field(default=False, description="Inject on every turn")
    recall: list[str] = Field(default_factory=list, description="Activation keywords")
    exclude: list[str] = Field(default_factory=list, description="Suppression keywords")
    paths: list[str] = Field(default_factory=list, description="Activating path globs")
    file: str = Field(description="Rule document path relative to the config directory")

    @property
    def enabled(self) -> bool:
        return self.state == "active"


class SubsystemToggle(BaseModel):
    """On/off switch for an optional subsystem."""

    model_config = ConfigDict(extra="ignore")

    state: GroupState = Field(default="active", description="Subsystem state")

    @property
    def enabled(self) -> bool:
        return self.state == "active"


class TrimmingConfig(BaseModel):
    """Configuration for transcript compaction.

    Attributes:
        enabled: Whether compaction runs at all.
        mode: Scoring threshold preset.
        preserve_last_n: Trailing transcript records that are never compacted.
        strip_rule_blocks: Remove previously injected rule blocks from history.
    """

    model_config = ConfigDict(extra="ignore")

    enabled: bool = Field(default=True, description="Whether compaction runs")
    mode: TrimMode = Field(default=TrimMode.BALANCED, description="Threshold preset")
    preserve_last_n: int = Field(
        default=6,
        ge=0,
        description="Trailing records that are never compacted",
    )
    strip_rule_blocks: bool = Field(
        default=True,
        description="Remove stale injected rule blocks from history",
    )

    @property
    def threshold(self) -> int:
        return TRIM_THRESHOLDS[self.mode]


class StatsConfig(BaseModel):
    """Configuration for savings accounting.

    Attributes:
        enabled: Whether savings are recorded and rolled up.
        retention_days: Only roll up sessions started within this many days.
    """

    model_config = ConfigDict(extra="ignore")

    enabled: bool = Field(default=True, description="Record savings")
    retention_days: int | None = Field(
        default=None,
        gt=0,
        description="Rollup window in days; None keeps everything",
    )


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name for the ``context_steward`` logger.
        structured: Emit JSON lines instead of plain text.
        file: Optional log file; stderr when unset.
    """

    model_config = ConfigDict(extra="ignore")

    level: str = Field(default="WARNING", description="Log level name")
    structured: bool = Field(default=False, description="Emit JSON log lines")
    file: Path | None = Field(default=None, description="Optional log file path")

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value}")
        return level


class Manifest(BaseModel):
    """Root of ``manifest.json``.

    Attributes:
        version: Schema version.
        devmode: Ask the agent to append a debug block to responses.
        global_exclude: Keywords that suppress all group matching for a turn.
        groups: Rule groups keyed by identifier, in declaration order.
        commands: Star-command subsystem toggle.
        context: Escalation subsystem toggle.
        trimming: Transcript compaction settings.
        stats: Savings accounting settings.
        logging: Logging settings.
    """

    model_config = ConfigDict(extra="ignore")

    version: int = Field(default=1, description="Schema version")
    devmode: bool = Field(default=False, description="Enable debug output")
    global_exclude: list[str] = Field(
        default_factory=list,
        description="Keywords that skip all group matching",
    )
    groups: dict[str, RuleGroupConfig] = Field(
        default_factory=dict,
        description="Rule groups keyed by identifier",
    )
    commands: SubsystemToggle = Field(default_factory=SubsystemToggle)
    context: SubsystemToggle = Field(default_factory=SubsystemToggle)
    trimming: TrimmingConfig = Field(default_factory=TrimmingConfig)
    stats: StatsConfig = Field(default_factory=StatsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class CommandDefinition(BaseModel):
    """A star-command, e.g. ``*brief``.

    Attributes:
        description: What the command does.
        rules: Instruction lines injected when the command is used.
    """

    model_config = ConfigDict(extra="ignore")

    description: str | None = Field(default=None, description="Command description")
    rules: list[str] = Field(default_factory=list, description="Injected rules")


class CommandsFile(RootModel[dict[str, CommandDefinition]]):
    """Root of ``commands.json``: command name to definition."""

    root: dict[str, CommandDefinition] = Field(default_factory=dict)


class EscalationThresholds(BaseModel):
    """Prompt-count thresholds, expected to be strictly ascending."""

    model_config = ConfigDict(extra="ignore")

    moderate: int = Field(default=15, ge=0)
    heavy: int = Field(default=35, ge=0)
    critical: int = Field(default=50, ge=0)

    def is_ascending(self) -> bool:
        return self.moderate < self.heavy < self.critical


class EscalationLevelConfig(BaseModel):
    """Rules for one escalation level."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool = Field(default=True, description="Whether the level injects rules")
    rules: list[str] = Field(default_factory=list, description="Level rules")


class EscalationLevels(BaseModel):
    """Per-level rule sets. The critical level reuses ``heavy``."""

    model_config = ConfigDict(extra="ignore")

    nominal: EscalationLevelConfig = Field(default_factory=EscalationLevelConfig)
    reinforced: EscalationLevelConfig = Field(default_factory=EscalationLevelConfig)
    heavy: EscalationLevelConfig = Field(default_factory=EscalationLevelConfig)


class EscalationConfig(BaseModel):
    """Root of ``context.json``."""

    model_config = ConfigDict(extra="ignore")

    thresholds: EscalationThresholds = Field(default_factory=EscalationThresholds)
    levels: EscalationLevels = Field(default_factory=EscalationLevels)


class StewardConfig(BaseModel):
    """Fully loaded configuration handed to the engine.

    Attributes:
        manifest: Validated manifest.
        commands: Star-command definitions (empty when ``commands.json`` is absent).
        escalation: Escalation settings (defaults when ``context.json`` is absent).
        config_path: The ``.steward/`` directory the files were read from.
        warnings: Non-fatal problems found while loading.
    """

    manifest: Manifest
    commands: dict[str, CommandDefinition] = Field(default_factory=dict)
    escalation: EscalationConfig = Field(default_factory=EscalationConfig)
    config_path: Path
    warnings: list[str] = Field(default_factory=list)

    def group_document(self, name: str) -> Path:
        """Absolute path of a group's rule document."""
        return self.config_path / self.manifest.groups[name].file

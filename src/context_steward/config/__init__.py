"""Configuration system for context-steward.

Main exports:
- load_config / discover_config: locate and load a ``.steward/`` directory
- StewardConfig: fully loaded configuration
- Manifest, RuleGroupConfig, CommandDefinition, EscalationConfig: file schemas
- TrimmingConfig, StatsConfig, LoggingConfig: subsystem settings
- SessionOverrides, apply_overrides: per-session layering
"""

from context_steward.config.discovery import ConfigScope, DiscoveryResult, discover_config
from context_steward.config.loader import (
    RuleDocument,
    load_config,
    load_rule_document,
    read_instruction_lines,
)
from context_steward.config.overrides import SessionOverrides, apply_overrides
from context_steward.config.schema import (
    TRIM_THRESHOLDS,
    CommandDefinition,
    EscalationConfig,
    EscalationLevelConfig,
    EscalationLevels,
    EscalationThresholds,
    LoggingConfig,
    Manifest,
    RuleGroupConfig,
    StatsConfig,
    StewardConfig,
    TrimmingConfig,
    TrimMode,
)

__all__ = [
    "TRIM_THRESHOLDS",
    "CommandDefinition",
    "ConfigScope",
    "DiscoveryResult",
    "EscalationConfig",
    "EscalationLevelConfig",
    "EscalationLevels",
    "EscalationThresholds",
    "LoggingConfig",
    "Manifest",
    "RuleDocument",
    "RuleGroupConfig",
    "SessionOverrides",
    "StatsConfig",
    "StewardConfig",
    "TrimMode",
    "TrimmingConfig",
    "apply_overrides",
    "discover_config",
    "load_config",
    "load_rule_document",
    "read_instruction_lines",
]

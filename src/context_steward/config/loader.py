"""Configuration loader for ``.steward/`` directories.

Parses and validates the manifest, command definitions and escalation
settings. Only a missing or invalid manifest is fatal; every other defect
degrades to defaults and is recorded as a warning on the returned
``StewardConfig``.

Rule documents are markdown files whose instruction lines are bullets::

    ---
    description: Python conventions
    ---

    # Python

    - Use type hints on public functions.
    - Prefer pathlib over os.path.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from context_steward.config.schema import (
    CommandDefinition,
    CommandsFile,
    EscalationConfig,
    EscalationThresholds,
    Manifest,
    StewardConfig,
)
from context_steward.errors import ConfigNotFoundError, ConfigurationError

logger = logging.getLogger(__name__)

# Data files are looked up in this order of extensions.
DATA_EXTENSIONS = (".json", ".yaml", ".yml")

MANIFEST_NAME = "manifest"
COMMANDS_NAME = "commands"
CONTEXT_NAME = "context"

# Match YAML frontmatter delimited by ---
FRONTMATTER_PATTERN = re.compile(r"^---\s*\n(.*?)^---\s*\n?(.*)$", re.DOTALL | re.MULTILINE)


@dataclass
class RuleDocument:
    """Parsed rule document.

    Attributes:
        lines: Instruction lines, in document order.
        metadata: Frontmatter mapping (empty when absent or malformed).
    """

    lines: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


def find_data_file(config_path: Path, name: str) -> Path | None:
    """Locate ``name`` with any supported extension inside ``config_path``."""
    for extension in DATA_EXTENSIONS:
        candidate = config_path / f"{name}{extension}"
        if candidate.is_file():
            return candidate
    return None


def _read_data_file(path: Path) -> Any:
    """Read a JSON or YAML file.

    Raises:
        ValueError: If the content cannot be parsed.
        OSError: If the file cannot be read.
    """
    content = path.read_text(encoding="utf-8")
    if path.suffix == ".json":
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid JSON: {e}") from e
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"invalid YAML: {e}") from e


def _format_validation_error(error: ValidationError) -> str:
    lines = []
    for issue in error.errors():
        location = ".".join(str(part) for part in issue["loc"]) or "(root)"
        lines.append(f"  {location}: {issue['msg']}")
    return "\n".join(lines)


def _load_manifest(config_path: Path) -> Manifest:
    manifest_path = find_data_file(config_path, MANIFEST_NAME)
    if manifest_path is None:
        raise ConfigNotFoundError(
            f"No manifest found in {config_path}",
            config_path=config_path,
        )

    try:
        raw = _read_data_file(manifest_path)
    except (OSError, ValueError) as e:
        raise ConfigurationError(
            f"Cannot read {manifest_path.name}",
            cause=e,
            config_path=config_path,
            file_name=manifest_path.name,
        ) from e

    try:
        return Manifest.model_validate(raw or {})
    except ValidationError as e:
        raise ConfigurationError(
            f"{manifest_path.name} validation failed:\n{_format_validation_error(e)}",
            cause=e,
            config_path=config_path,
            file_name=manifest_path.name,
        ) from e


def _load_commands(config_path: Path, warnings: list[str]) -> dict[str, CommandDefinition]:
    commands_path = find_data_file(config_path, COMMANDS_NAME)
    if commands_path is None:
        return {}

    try:
        raw = _read_data_file(commands_path)
        return CommandsFile.model_validate(raw or {}).root
    except (OSError, ValueError) as e:
        # ValidationError is a ValueError subclass.
        warnings.append(f"{commands_path.name} could not be loaded (using no commands): {e}")
        return {}


def _load_escalation(config_path: Path, warnings: list[str]) -> EscalationConfig:
    context_path = find_data_file(config_path, CONTEXT_NAME)
    escalation = EscalationConfig()

    if context_path is not None:
        try:
            raw = _read_data_file(context_path)
            escalation = EscalationConfig.model_validate(raw or {})
        except (OSError, ValueError) as e:
            warnings.append(f"{context_path.name} could not be loaded (using defaults): {e}")

    thresholds = escalation.thresholds
    if not thresholds.is_ascending():
        warnings.append(
            "Escalation thresholds must be ascending "
            f"(moderate={thresholds.moderate}, heavy={thresholds.heavy}, "
            f"critical={thresholds.critical}); using defaults"
        )
        escalation.thresholds = EscalationThresholds()

    return escalation


def load_config(config_path: str | Path) -> StewardConfig:
    """Load all configuration from a ``.steward/`` directory.

    Args:
        config_path: Directory containing the manifest.

    Returns:
        Validated ``StewardConfig``; non-fatal problems are in ``warnings``.

    Raises:
        ConfigNotFoundError: If no manifest exists in the directory.
        ConfigurationError: If the manifest cannot be parsed or validated.
    """
    path = Path(config_path).expanduser()
    warnings: list[str] = []

    manifest = _load_manifest(path)

    for name, group in manifest.groups.items():
        if not (path / group.file).is_file():
            warnings.append(f"Group '{name}' references missing document '{group.file}'")

    commands = _load_commands(path, warnings)
    escalation = _load_escalation(path, warnings)

    for warning in warnings:
        logger.warning("Configuration warning: %s", warning)

    return StewardConfig(
        manifest=manifest,
        commands=commands,
        escalation=escalation,
        config_path=path,
        warnings=warnings,
    )


def _split_frontmatter(content: str, path: Path) -> tuple[dict[str, Any], str]:
    match = FRONTMATTER_PATTERN.match(content)
    if not match:
        return {}, content

    frontmatter_yaml, body = match.groups()
    try:
        metadata = yaml.safe_load(frontmatter_yaml) or {}
    except yaml.YAMLError as e:
        logger.warning("Ignoring malformed frontmatter in %s: %s", path, e)
        return {}, body

    if not isinstance(metadata, dict):
        logger.warning("Ignoring non-mapping frontmatter in %s", path)
        return {}, body
    return metadata, body


def load_rule_document(path: str | Path) -> RuleDocument:
    """Read a rule document.

    A missing or unreadable document yields an empty ``RuleDocument``; the
    loader has already reported it as a configuration warning.

    Args:
        path: Markdown document path.

    Returns:
        Parsed ``RuleDocument``.
    """
    file_path = Path(path)
    if not file_path.is_file():
        return RuleDocument()

    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read rule document %s: %s", file_path, e)
        return RuleDocument()

    metadata, body = _split_frontmatter(content, file_path)

    lines: list[str] = []
    for line in body.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if not stripped.startswith("-") or stripped.startswith("---"):
            continue
        rule = stripped[1:].strip()
        if rule:
            lines.append(rule)

    return RuleDocument(lines=lines, metadata=metadata)


def read_instruction_lines(path: str | Path) -> list[str]:
    """Extract bullet-point instruction lines from a rule document."""
    return load_rule_document(path).lines

"""Configuration directory discovery.

Priority (highest to lowest):
1. Local: the nearest ``.steward/`` with a manifest, walking up from the
   working directory (at most ``MAX_WALK_DEPTH`` levels).
2. Global: ``~/.config/context-steward/``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from context_steward.config.loader import MANIFEST_NAME, find_data_file

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".steward"
MAX_WALK_DEPTH = 10


def global_config_dir() -> Path:
    return Path.home() / ".config" / "context-steward"


class ConfigScope(str, Enum):
    """Where a configuration directory was found."""

    LOCAL = "local"
    GLOBAL = "global"


@dataclass
class DiscoveryResult:
    """A discovered configuration directory.

    Attributes:
        config_path: Absolute path of the directory holding the manifest.
        scope: Local (project) or global (user) configuration.
    """

    config_path: Path
    scope: ConfigScope


def discover_config(
    start_dir: str | Path,
    *,
    global_dir: Path | None = None,
) -> DiscoveryResult | None:
    """Find the configuration directory for ``start_dir``.

    Args:
        start_dir: Directory to start walking up from.
        global_dir: Override for the global fallback directory.

    Returns:
        ``DiscoveryResult`` or None if no manifest exists anywhere.
    """
    current = Path(start_dir).expanduser().resolve()

    for _ in range(MAX_WALK_DEPTH):
        candidate = current / CONFIG_DIR_NAME
        if find_data_file(candidate, MANIFEST_NAME) is not None:
            logger.debug("Using local configuration at %s", candidate)
            return DiscoveryResult(config_path=candidate, scope=ConfigScope.LOCAL)

        parent = current.parent
        if parent == current:
            break
        current = parent

    fallback = global_dir if global_dir is not None else global_config_dir()
    if find_data_file(fallback, MANIFEST_NAME) is not None:
        logger.debug("Using global configuration at %s", fallback)
        return DiscoveryResult(config_path=fallback, scope=ConfigScope.GLOBAL)

    return None

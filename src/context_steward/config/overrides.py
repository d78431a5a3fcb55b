"""Per-session overrides layered on top of the loaded configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from context_steward.config.schema import StewardConfig


class SessionOverrides(BaseModel):
    """Nullable toggles stored with a session.

    ``None`` on any field means "inherit from the configuration".

    Attributes:
        devmode: Force debug output on or off.
        escalation: Force the escalation subsystem on or off.
        commands: Force the star-command subsystem on or off.
        trimming: Force transcript compaction on or off.
        group_states: Force individual rule groups on or off.
    """

    model_config = ConfigDict(extra="allow")

    devmode: bool | None = Field(default=None)
    escalation: bool | None = Field(default=None)
    commands: bool | None = Field(default=None)
    trimming: bool | None = Field(default=None)
    group_states: dict[str, bool | None] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        """Whether every override inherits."""
        return (
            self.devmode is None
            and self.escalation is None
            and self.commands is None
            and self.trimming is None
            and all(value is None for value in self.group_states.values())
        )


def _state(flag: bool) -> str:
    return "active" if flag else "inactive"


def apply_overrides(
    config: StewardConfig,
    overrides: SessionOverrides | None,
) -> StewardConfig:
    """Return the effective configuration for a session.

    The base configuration is never mutated; overrides are applied to a
    deep copy. Group overrides naming unknown groups are ignored.

    Args:
        config: Loaded configuration.
        overrides: Session overrides, or None to inherit everything.

    Returns:
        A new ``StewardConfig`` with overrides applied.
    """
    effective = config.model_copy(deep=True)
    if overrides is None:
        return effective

    manifest = effective.manifest
    if overrides.devmode is not None:
        manifest.devmode = overrides.devmode
    if overrides.escalation is not None:
        manifest.context.state = _state(overrides.escalation)
    if overrides.commands is not None:
        manifest.commands.state = _state(overrides.commands)
    if overrides.trimming is not None:
        manifest.trimming.enabled = overrides.trimming

    for name, flag in overrides.group_states.items():
        if flag is None or name not in manifest.groups:
            continue
        manifest.groups[name].state = _state(flag)

    return effective

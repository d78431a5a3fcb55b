"""Terminal reports for token savings."""

from context_steward.display.report import (
    render_rollup,
    render_session,
    rollup_renderables,
    session_renderables,
)

__all__ = [
    "render_rollup",
    "render_session",
    "rollup_renderables",
    "session_renderables",
]

"""Rule block rendering.

Sections are Jinja2 templates packaged under ``templates/``; the rendered
block is wrapped in rule-block markers so that later compaction passes can
find and remove it.
"""

from context_steward.formatting.renderer import (
    SavingsReport,
    get_environment,
    render_bundle,
    render_section,
)

__all__ = [
    "SavingsReport",
    "get_environment",
    "render_bundle",
    "render_section",
]

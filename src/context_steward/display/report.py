"""Rich terminal reports for session and rollup savings.

Each render function accepts an optional ``console``. Output is always
captured through a recording console so the rendered text is returned as
well as printed.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from context_steward.session.models import RollupTotals, Session


def _ensure_console(console: Console | None) -> Console:
    """Return a recording console matching the caller's width."""
    if console is not None:
        return Console(record=True, width=console.width)
    return Console(record=True)


def _savings_table(
    title: str,
    selection: int,
    history: int,
    rule_blocks: int,
    injected: int,
    total: int,
) -> Table:
    table = Table(title=title)
    table.add_column("Source", style="bold cyan")
    table.add_column("Tokens", justify="right")

    table.add_row("Selective injection", f"{selection:,}")
    table.add_row("History trimming (tool outputs)", f"{history:,}")
    table.add_row("History trimming (rule blocks)", f"{rule_blocks:,}")
    table.add_section()
    table.add_row("Total saved", f"{total:,}", style="bold")
    table.add_row("Injected", f"{injected:,}", style="dim")
    return table


def rollup_renderables(totals: RollupTotals) -> list[Table | Panel | Text]:
    """Build Rich renderables for cross-session totals."""
    if totals.session_count == 0:
        return [Panel("No sessions recorded", title="Token Savings", expand=False)]

    table = _savings_table(
        "Token Savings (all sessions)",
        totals.tokens_skipped_by_selection,
        totals.tokens_trimmed_from_history,
        totals.tokens_trimmed_rule_blocks,
        totals.tokens_injected,
        totals.total_tokens_saved,
    )
    summary = Text(
        f"{totals.session_count} sessions, {totals.prompts_processed:,} prompts, "
        f"avg {totals.avg_rules_per_prompt:,.1f} rules/prompt",
        style="dim",
    )
    return [table, summary]


def session_renderables(session: Session) -> list[Table | Panel | Text]:
    """Build Rich renderables for one session."""
    stats = session.token_stats
    title = session.title or session.label
    if stats.prompts_processed == 0:
        return [Panel("No prompts processed", title=title, expand=False)]

    table = _savings_table(
        f"Token Savings: {title}",
        stats.tokens_skipped_by_selection,
        stats.tokens_trimmed_from_history,
        stats.tokens_trimmed_rule_blocks,
        stats.tokens_injected,
        stats.total_saved,
    )
    summary = Text(
        f"{session.prompt_count} prompts since {session.started:%Y-%m-%d %H:%M}, "
        f"avg {stats.avg_rules_per_prompt:,.1f} rules/prompt",
        style="dim",
    )
    return [table, summary]


def render_rollup(totals: RollupTotals, console: Console | None = None) -> str:
    """Render cross-session totals as a Rich table.

    Args:
        totals: Totals from ``RollupStore.rollup()``.
        console: Optional Rich Console whose width is reused.

    Returns:
        The rendered string captured from the console.
    """
    console = _ensure_console(console)
    for renderable in rollup_renderables(totals):
        console.print(renderable)
    return console.export_text()


def render_session(session: Session, console: Console | None = None) -> str:
    """Render one session's savings as a Rich table."""
    console = _ensure_console(console)
    for renderable in session_renderables(session):
        console.print(renderable)
    return console.export_text()

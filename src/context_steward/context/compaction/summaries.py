"""Replacement text for compacted tool outputs."""

from __future__ import annotations

from typing import Any

from context_steward.context import transcript as tx

SUMMARY_PREFIX = "[Compacted by context-steward]"
MAX_COMMAND_CHARS = 80


def shorten(text: str, limit: int = MAX_COMMAND_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def build_summary(part: dict[str, Any], tokens_removed: int) -> str:
    """Describe a compacted tool output and how to regenerate it.

    Args:
        part: Tool part being compacted (not yet mutated).
        tokens_removed: Estimated tokens of the original output.

    Returns:
        Two-line summary naming the file, command or pattern.
    """
    name = tx.tool_name(part)
    output = tx.tool_output(part) or ""

    if name == "read":
        path = tx.file_path_of(part) or "unknown file"
        line_count = len(output.split("\n"))
        return (
            f"{SUMMARY_PREFIX} Read {path} ({line_count} lines, ~{tokens_removed} tokens removed)\n"
            "Re-read this file if its contents are needed."
        )

    if name == "bash":
        command = shorten(tx.input_text(part, "command") or "unknown command")
        return (
            f"{SUMMARY_PREFIX} Ran: {command} (~{tokens_removed} tokens removed)\n"
            "Re-run this command if its output is needed."
        )

    if name in ("glob", "grep"):
        pattern = tx.input_text(part, "pattern") or ""
        return (
            f"{SUMMARY_PREFIX} {name}: {pattern} (~{tokens_removed} tokens removed)\n"
            "Re-run this search if its results are needed."
        )

    title = tx.tool_state(part).get("title")
    label = title if isinstance(title, str) and title else (name or "tool")
    return (
        f"{SUMMARY_PREFIX} {label} (~{tokens_removed} tokens removed)\n"
        "Tool output removed from history; re-run the tool if it is needed."
    )

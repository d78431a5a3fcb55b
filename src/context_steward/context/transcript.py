"""Accessors for host transcript records.

Records are plain dictionaries supplied by the host::

    {"role": "assistant", "timestamp": 1718000000000, "parts": [
        {"type": "text", "text": "..."},
        {"type": "tool", "tool": "read", "state": {
            "status": "completed",
            "input": {"filePath": "src/app.py"},
            "output": "...",
            "title": "src/app.py",
            "time": {"start": 1718000000000, "end": 1718000000100},
        }},
    ]}

Every accessor tolerates missing or mistyped fields and returns None (or
an empty value) instead of raising, so a malformed part is simply treated
as ineligible.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

RULE_BLOCK_START = "<steward-rules>"
RULE_BLOCK_END = "</steward-rules>"

# Input keys that may carry a file path, in lookup order.
FILE_PATH_KEYS = ("filePath", "file_path", "path")

STATUS_COMPLETED = "completed"
STATUS_ERROR = "error"


def record_parts(record: Any) -> list[Any]:
    """Parts of a record, or an empty list when malformed."""
    if not isinstance(record, dict):
        return []
    parts = record.get("parts")
    return parts if isinstance(parts, list) else []


def iter_parts(transcript: Any) -> Iterator[tuple[int, int, dict[str, Any]]]:
    """Yield ``(record_index, part_index, part)`` for every well-formed part."""
    if not isinstance(transcript, list):
        return
    for record_index, record in enumerate(transcript):
        for part_index, part in enumerate(record_parts(record)):
            if isinstance(part, dict):
                yield record_index, part_index, part


def is_tool_part(part: dict[str, Any]) -> bool:
    return part.get("type") == "tool" and isinstance(part.get("state"), dict)


def is_text_part(part: dict[str, Any]) -> bool:
    return part.get("type") == "text" and isinstance(part.get("text"), str)


def tool_name(part: dict[str, Any]) -> str:
    name = part.get("tool")
    return name.lower() if isinstance(name, str) else ""


def tool_state(part: dict[str, Any]) -> dict[str, Any]:
    state = part.get("state")
    return state if isinstance(state, dict) else {}


def tool_status(part: dict[str, Any]) -> str | None:
    status = tool_state(part).get("status")
    return status if isinstance(status, str) else None


def tool_input(part: dict[str, Any]) -> dict[str, Any]:
    value = tool_state(part).get("input")
    return value if isinstance(value, dict) else {}


def input_text(part: dict[str, Any], key: str) -> str | None:
    value = tool_input(part).get(key)
    return value if isinstance(value, str) and value else None


def file_path_of(part: dict[str, Any]) -> str | None:
    """File path input of a tool part, if any."""
    for key in FILE_PATH_KEYS:
        value = input_text(part, key)
        if value:
            return value
    return None


def tool_output(part: dict[str, Any]) -> str | None:
    output = tool_state(part).get("output")
    return output if isinstance(output, str) else None


def compacted_at(part: dict[str, Any]) -> Any:
    """The compacted marker, or None when the part was never compacted."""
    time_info = tool_state(part).get("time")
    if not isinstance(time_info, dict):
        return None
    return time_info.get("compacted")


def mark_compacted(part: dict[str, Any], output: str, timestamp: int) -> None:
    """Replace a tool part's output and stamp the compacted marker."""
    state = part["state"]
    state["output"] = output
    time_info = state.get("time")
    if not isinstance(time_info, dict):
        time_info = {}
        state["time"] = time_info
    time_info["compacted"] = timestamp

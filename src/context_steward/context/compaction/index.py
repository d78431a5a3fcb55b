"""Index of file operations across a transcript."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from context_steward.context import transcript as tx

READ_TOOLS = frozenset({"read"})
WRITE_TOOLS = frozenset({"edit", "write"})

_INDEXED_STATUSES = frozenset({tx.STATUS_COMPLETED, tx.STATUS_ERROR})


@dataclass
class FileOperationIndex:
    """Latest read and latest edit/write record index per file path.

    Only the latest indices are needed to answer "is there a later
    operation of this kind", so lookups are O(1).
    """

    last_read: dict[str, int] = field(default_factory=dict)
    last_write: dict[str, int] = field(default_factory=dict)

    @classmethod
    def build(cls, transcript: list[dict[str, Any]]) -> FileOperationIndex:
        """Index every completed or errored read/edit/write tool part."""
        index = cls()
        for record_index, _, part in tx.iter_parts(transcript):
            if not tx.is_tool_part(part):
                continue
            if tx.tool_status(part) not in _INDEXED_STATUSES:
                continue
            path = tx.file_path_of(part)
            if not path:
                continue

            name = tx.tool_name(part)
            if name in READ_TOOLS:
                index.last_read[path] = max(record_index, index.last_read.get(path, -1))
            elif name in WRITE_TOOLS:
                index.last_write[path] = max(record_index, index.last_write.get(path, -1))
        return index

    def has_later_read(self, path: str, record_index: int) -> bool:
        return self.last_read.get(path, -1) > record_index

    def has_later_write(self, path: str, record_index: int) -> bool:
        return self.last_write.get(path, -1) > record_index

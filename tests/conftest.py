"""Shared test fixtures and configuration for context-steward tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from context_steward.config import StewardConfig, load_config

MANIFEST: dict[str, Any] = {
    "version": 1,
    "devmode": False,
    "global_exclude": ["steward off"],
    "groups": {
        "global": {"always_on": True, "file": "global.md"},
        "frontend": {
            "recall": ["react", "css"],
            "exclude": ["backend only"],
            "paths": ["src/ui/**/*.tsx"],
            "file": "frontend.md",
        },
        "docs": {"recall": ["docs", "readme"], "file": "docs.md"},
        "legacy": {"state": "inactive", "recall": ["legacy"], "file": "legacy.md"},
    },
}

COMMANDS: dict[str, Any] = {
    "brief": {"description": "Short answers", "rules": ["Answer in one line."]},
    "stats": {"description": "Savings report", "rules": ["Present the savings report."]},
}

CONTEXT_YAML = """\
thresholds:
  moderate: 3
  heavy: 5
  critical: 8
levels:
  nominal:
    rules:
      - Stay focused on the task.
  reinforced:
    rules:
      - Re-read the task before answering.
  heavy:
    rules:
      - Summarise progress before continuing.
      - Prefer small, verifiable steps.
"""

DOCUMENTS: dict[str, str] = {
    "global.md": "# Global\n\n- Keep answers short.\n- Never invent APIs.\n",
    "frontend.md": (
        "---\ndescription: Frontend conventions\n---\n\n"
        "# Frontend\n\n- Use function components.\n- Co-locate styles.\n"
    ),
    "docs.md": "# Docs\n\n- Write in the present tense.\n",
    "legacy.md": "- Do not touch the legacy module.\n",
}


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Create a populated ``.steward/`` directory inside a project folder.

    Layout:
    - project/.steward/manifest.json
    - project/.steward/commands.json
    - project/.steward/context.yaml
    - project/.steward/{global,frontend,docs,legacy}.md
    """
    steward_dir = tmp_path / "project" / ".steward"
    steward_dir.mkdir(parents=True)

    (steward_dir / "manifest.json").write_text(json.dumps(MANIFEST), encoding="utf-8")
    (steward_dir / "commands.json").write_text(json.dumps(COMMANDS), encoding="utf-8")
    (steward_dir / "context.yaml").write_text(CONTEXT_YAML, encoding="utf-8")
    for name, content in DOCUMENTS.items():
        (steward_dir / name).write_text(content, encoding="utf-8")

    return steward_dir


@pytest.fixture
def project_dir(config_dir: Path) -> Path:
    """The project directory holding ``.steward/``."""
    return config_dir.parent


@pytest.fixture
def steward_config(config_dir: Path) -> StewardConfig:
    """Loaded configuration for the sample directory."""
    return load_config(config_dir)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def tool_part() -> Callable[..., dict[str, Any]]:
    """Factory for host tool parts.

    Usage:
        part = tool_part("read", output="x" * 800, filePath="src/app.py")
    """

    def make(
        tool: str,
        *,
        output: str = "",
        status: str = "completed",
        title: str = "",
        compacted: int | None = None,
        **tool_input: Any,
    ) -> dict[str, Any]:
        time_info: dict[str, Any] = {"start": 1, "end": 2}
        if compacted is not None:
            time_info["compacted"] = compacted
        return {
            "type": "tool",
            "tool": tool,
            "state": {
                "status": status,
                "input": dict(tool_input),
                "output": output,
                "title": title,
                "time": time_info,
            },
        }

    return make


@pytest.fixture
def record() -> Callable[..., dict[str, Any]]:
    """Factory for transcript records holding the given parts."""

    def make(*parts: dict[str, Any], role: str = "assistant") -> dict[str, Any]:
        return {"role": role, "timestamp": 0, "parts": list(parts)}

    return make


@pytest.fixture
def text_part() -> Callable[[str], dict[str, Any]]:
    def make(text: str) -> dict[str, Any]:
        return {"type": "text", "text": text}

    return make

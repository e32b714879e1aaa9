"""Shared fixtures for diagnose tests."""

from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path

import pytest

from clawdiag.core.conversations import mangle_workspace_path

FIXED_NOW = datetime(2026, 10, 18, 10, 0, 0)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def status_blob() -> str:
    """Sample `openclaw status --deep` output."""
    return """OpenClaw status
Gateway: reachable (ws://127.0.0.1:18789, 12ms)
Discord: OK (bot @helper)

Sessions
  agent:main:discord:channel:1234    direct   5m ago   claude-opus   45k/200k (22%)
  agent:support:discord:channel:99   direct   2h ago   claude-opus   184k/200k (92%)
"""


@pytest.fixture
def logs_blob() -> str:
    """Sample `openclaw logs` tail for a healthy run of the main agent."""
    return """2026-10-18T09:50:00 [gateway] listening
2026-10-18T09:58:00 [agent] cli exec: claude -p --session abc lane=session:agent:main:discord
2026-10-18T09:59:30 [agent] run done sessionKey=agent:main:discord:channel:1234 durationMs=4200 aborted=false
2026-10-18T09:59:31 [session] agent:main:discord:channel:1234 state processing -> idle reason=run_completed
"""


@pytest.fixture
def openclaw_home(tmp_path: Path) -> Path:
    home = tmp_path / ".openclaw"
    home.mkdir()
    return home


@pytest.fixture
def projects_dir(tmp_path: Path) -> Path:
    projects = tmp_path / "projects"
    projects.mkdir()
    return projects


def _write_conversation(
    projects_dir: Path,
    workspace: Path,
    name: str,
    messages: list[tuple[str, object]],
    mtime: float,
) -> Path:
    """Write one JSONL conversation for a workspace and set its mtime."""
    conv_dir = projects_dir / mangle_workspace_path(workspace)
    conv_dir.mkdir(parents=True, exist_ok=True)
    path = conv_dir / f"{name}.jsonl"
    lines = []
    for i, (role, content) in enumerate(messages):
        lines.append(json.dumps({
            "type": role,
            "timestamp": f"2026-10-18T09:{i:02d}:00",
            "message": {"role": role, "content": content},
        }))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def write_conversation():
    """Factory: write_conversation(projects_dir, workspace, name, messages, mtime)."""
    return _write_conversation

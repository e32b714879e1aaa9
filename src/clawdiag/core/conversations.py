"""Conversation store access: archived JSONL sessions and persisted session flags.

The CLI backend stores one JSONL file per conversation under
``<projects_dir>/<mangled workspace path>/``. Each line is a JSON record whose
``message`` (or the record itself) carries ``role`` and ``content``.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..models.report import ConversationRecord

DEFAULT_WINDOW = 5
DEFAULT_TRUNCATE = 60


@dataclass
class ConversationWindow:
    records: list[ConversationRecord] = field(default_factory=list)
    selected_index: Optional[int] = None

    @property
    def selected(self) -> Optional[ConversationRecord]:
        if self.selected_index is None:
            return None
        return self.records[self.selected_index - 1]

    @property
    def selected_user_text(self) -> str:
        return self.selected.user_text if self.selected else ""

    @property
    def selected_assistant_text(self) -> str:
        return self.selected.assistant_text if self.selected else ""


def clamp_index(requested: int, size: int) -> Optional[int]:
    """Clamp a 1-based index into [1, size]; None for an empty window."""
    if size <= 0:
        return None
    return min(max(requested, 1), size)


def workspace_for(agent_name: str, openclaw_home: Path, openclaw_config: Optional[dict] = None) -> Path:
    """Resolve an agent's workspace directory."""
    agents = ((openclaw_config or {}).get("agents") or {}).get("list") or []
    for entry in agents:
        if isinstance(entry, dict) and entry.get("id") == agent_name and entry.get("workspace"):
            return Path(entry["workspace"]).expanduser()
    if agent_name == "main":
        return openclaw_home / "workspace"
    return openclaw_home / f"workspace-{agent_name}"


def mangle_workspace_path(path: Path) -> str:
    """`/home/u/.openclaw/workspace-a` -> `-home-u--openclaw-workspace-a`."""
    return re.sub(r"[^A-Za-z0-9-]", "-", str(path))


def _truncate(text: str, limit: int) -> str:
    return " ".join(text.split())[:limit]


def _message_text(content: object) -> Optional[str]:
    """Text of a message: the string itself or its first text block."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                return str(block.get("text", ""))
    return None


def _scan_conversation(path: Path, truncate: int) -> tuple[str, str, str]:
    """Return (timestamp, last user text, last assistant text) for one file."""
    last_user = ""
    last_assistant = ""
    timestamp = ""
    try:
        handle = path.open(encoding="utf-8", errors="replace")
    except OSError:
        return timestamp, last_user, last_assistant
    with handle:
        for raw in handle:
            raw = raw.strip()
            if not raw:
                continue
            try:
                record = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if not isinstance(record, dict):
                continue
            message = record.get("message", record)
            if not isinstance(message, dict):
                continue
            role = message.get("role")
            if role not in ("user", "assistant"):
                continue
            text = _message_text(message.get("content"))
            if text is None:
                continue
            if role == "user":
                last_user = text
            else:
                last_assistant = text
            if record.get("timestamp"):
                timestamp = str(record["timestamp"])
    if not timestamp:
        try:
            timestamp = datetime.fromtimestamp(path.stat().st_mtime).strftime("%Y-%m-%dT%H:%M:%S")
        except OSError:
            pass
    return timestamp, _truncate(last_user, truncate), _truncate(last_assistant, truncate)


def list_conversation_files(conversation_dir: Path, window: int = DEFAULT_WINDOW) -> list[Path]:
    """Most recently modified JSONL files, excluding subagent transcripts."""
    if not conversation_dir.is_dir():
        return []
    files: list[tuple[float, Path]] = []
    for path in conversation_dir.rglob("*.jsonl"):
        if "subagents" in path.relative_to(conversation_dir).parts:
            continue
        try:
            files.append((path.stat().st_mtime, path))
        except OSError:
            continue
    files.sort(key=lambda item: item[0], reverse=True)
    return [path for _, path in files[:window]]


def extract_last_conversation_texts(
    projects_dir: Path,
    workspace: Path,
    selected_index: int = 1,
    window: int = DEFAULT_WINDOW,
    truncate: int = DEFAULT_TRUNCATE,
) -> ConversationWindow:
    """Build the agent's conversation window and pick the selected entry."""
    conversation_dir = projects_dir / mangle_workspace_path(workspace)
    records: list[ConversationRecord] = []
    for i, path in enumerate(list_conversation_files(conversation_dir, window), start=1):
        timestamp, user_text, assistant_text = _scan_conversation(path, truncate)
        records.append(
            ConversationRecord(
                index=i,
                timestamp=timestamp,
                user_text=user_text,
                assistant_text=assistant_text,
                path=str(path),
            )
        )
    return ConversationWindow(records=records, selected_index=clamp_index(selected_index, len(records)))


def read_session_flags(openclaw_home: Path, agent_name: str) -> dict:
    """Persisted session record for the agent, or {} when unavailable.

    Picks the most recently updated entry keyed ``agent:<name>:...``.
    """
    sessions_path = openclaw_home / "agents" / agent_name / "sessions" / "sessions.json"
    if not sessions_path.exists():
        return {}
    try:
        data = json.loads(sessions_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    if not isinstance(data, dict):
        return {}
    prefix = f"agent:{agent_name}:"
    entries = [
        value for key, value in data.items()
        if key.startswith(prefix) and isinstance(value, dict)
    ]
    if not entries:
        return {}
    return max(entries, key=_updated_at)


def _updated_at(entry: dict) -> float:
    value = entry.get("updatedAt")
    return float(value) if isinstance(value, (int, float)) else 0.0

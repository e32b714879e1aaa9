"""Shell out to the OpenClaw CLI and read its on-disk config.

Fetch failures never abort a run: the output is treated as empty text and
the checks fall back to their no-data verdicts.
"""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Optional

from rich.console import Console

from .config import config_int, config_value

console = Console(stderr=True)


def run_openclaw(args: list[str], binary: str = "openclaw", timeout: int = 60) -> str:
    """Run `openclaw <args>` and return combined stdout/stderr, or "" on failure."""
    try:
        result = subprocess.run(
            [binary, *args],
            capture_output=True, text=True, timeout=timeout,
            encoding="utf-8", errors="replace",
        )
    except FileNotFoundError:
        console.print(f"  [yellow]WARN[/yellow] `{binary}` not found on PATH; continuing without its output")
        return ""
    except subprocess.TimeoutExpired:
        console.print(f"  [yellow]WARN[/yellow] `{binary} {' '.join(args)}` timed out after {timeout}s")
        return ""
    except OSError as e:
        console.print(f"  [yellow]WARN[/yellow] `{binary} {' '.join(args)}` failed: {e}")
        return ""

    if result.returncode != 0:
        console.print(
            f"  [yellow]WARN[/yellow] `{binary} {' '.join(args)}` exited with {result.returncode}"
        )
    return (result.stdout or "") + (result.stderr or "")


def tail_bytes(text: str, max_bytes: int) -> str:
    """Keep at most the last `max_bytes` bytes of text, starting on a line boundary."""
    data = text.encode("utf-8")
    if len(data) <= max_bytes:
        return text
    tail = data[-max_bytes:].decode("utf-8", errors="ignore")
    newline = tail.find("\n")
    return tail[newline + 1:] if newline >= 0 else tail


def fetch_status(config: dict) -> str:
    return run_openclaw(
        ["status", "--deep"],
        str(config_value(config, "openclaw", "binary")),
        config_int(config, "openclaw", "timeout_seconds"),
    )


def fetch_logs(config: dict) -> str:
    max_bytes = config_int(config, "logs", "max_bytes")
    text = run_openclaw(
        ["logs", "--max-bytes", str(max_bytes)],
        str(config_value(config, "openclaw", "binary")),
        config_int(config, "openclaw", "timeout_seconds"),
    )
    return tail_bytes(text, max_bytes)


def load_openclaw_config(openclaw_home: Path) -> Optional[dict]:
    """Parse ~/.openclaw/openclaw.json; None when missing or unreadable."""
    path = openclaw_home / "openclaw.json"
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None
    return data if isinstance(data, dict) else None


def serialize_values(openclaw_config: Optional[dict]) -> Optional[list[tuple[str, bool]]]:
    """`serialize` per CLI backend; an unset flag means serialized."""
    if openclaw_config is None:
        return None
    agents = openclaw_config.get("agents") or {}
    defaults = agents.get("defaults") or {} if isinstance(agents, dict) else {}
    backends = defaults.get("cliBackends") or {} if isinstance(defaults, dict) else {}
    if not isinstance(backends, dict):
        return None
    return [
        (name, bool(backend.get("serialize", True)) if isinstance(backend, dict) else True)
        for name, backend in backends.items()
    ]

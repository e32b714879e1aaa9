"""Text extractors: pull typed facts out of `openclaw status` / `openclaw logs` text.

Every extractor is total. A pattern that does not match yields a typed
fallback (None, 0, "?", an empty list), never an exception.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from ..models.check import Cause, Verdict
from ..models.report import GlobalSignal

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

AGE_RE = re.compile(r"(\d+[smhd]) ago")
TOKENS_RE = re.compile(r"(\d+)k/(\d+)k\s*\((\d+)%\)")
TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")
AGENT_NAME_RE = re.compile(r"agent:([^:\s]+):")
RUN_DONE_RE = re.compile(r"run done.*aborted=(true|false)", re.IGNORECASE)
DURATION_RE = re.compile(r"durationMs=(\d+)")
CLI_ERROR_RE = re.compile(
    r"embedded agent failed|cli failed|failover error|cli.*(error|timeout|EPIPE)",
    re.IGNORECASE,
)
DELIVERY_ERROR_RE = re.compile(r"deliver.*(error|fail)|discord.*(error|rate)", re.IGNORECASE)
IDLE_RE = re.compile(r"\bidle\b.*run_completed", re.IGNORECASE)
DISCORD_OK_RE = re.compile(r"Discord.*\bOK\b")
GATEWAY_OK_RE = re.compile(r"Gateway.*\breachable\b")

MAX_EVIDENCE_LINES = 10

# (keyword pattern, tag, explanation). Each rule is evaluated on its own;
# several causes may apply to the same text.
CAUSE_RULES: list[tuple[re.Pattern[str], str, str]] = [
    (
        re.compile(r"\b1005\b"),
        "websocket-disconnect(1005)",
        "The Discord websocket closed with code 1005 (no status); the gateway dropped the connection mid-run.",
    ),
    (
        re.compile(r"EPIPE|broken pipe", re.IGNORECASE),
        "broken-pipe",
        "The CLI process closed its stdin/stdout early, usually because it crashed or was killed.",
    ),
    (
        re.compile(r"timeout|timed out", re.IGNORECASE),
        "timeout",
        "The CLI call did not finish within the configured timeout.",
    ),
    (
        re.compile(r"rate.?limit|\b429\b", re.IGNORECASE),
        "rate-limit",
        "The upstream API or Discord rejected the request with a rate limit.",
    ),
    (
        re.compile(r"socket hang up", re.IGNORECASE),
        "connection-reset",
        "The remote side reset the connection (socket hang up); this is a network fault, not an agent fault.",
    ),
]

NETWORK_CAUSE_TAG = "connection-reset"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TokenUsage:
    age: str = "?"
    used_k: int = 0
    total_k: int = 0
    percent: int = 0


@dataclass(frozen=True)
class CliCall:
    line: str
    timestamp: Optional[str] = None
    minutes_ago: Optional[int] = None


class CompletionState(str, Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RunCompletion:
    state: CompletionState = CompletionState.UNKNOWN
    duration_ms: Optional[int] = None


# ---------------------------------------------------------------------------
# Status text
# ---------------------------------------------------------------------------

def _lines(blob: str) -> list[str]:
    return (blob or "").splitlines()


def extract_session_line(status_blob: str, agent_name: str) -> Optional[str]:
    """Return the first status line for the agent's session, or None."""
    marker = f"agent:{agent_name}:"
    for line in _lines(status_blob):
        if marker in line:
            return line
    return None


def extract_token_usage(line: Optional[str]) -> TokenUsage:
    """Parse `5m ago ... 45k/200k (22%)` out of a session line."""
    if not line:
        return TokenUsage()
    age_match = AGE_RE.search(line)
    tokens_match = TOKENS_RE.search(line)
    age = age_match.group(1) + " ago" if age_match else "?"
    if not tokens_match:
        return TokenUsage(age=age)
    return TokenUsage(
        age=age,
        used_k=int(tokens_match.group(1)),
        total_k=int(tokens_match.group(2)),
        percent=int(tokens_match.group(3)),
    )


def extract_agent_names(status_blob: str) -> list[str]:
    """Distinct agent names from `agent:<name>:` keys, in order of appearance."""
    names: list[str] = []
    for match in AGENT_NAME_RE.finditer(status_blob or ""):
        name = match.group(1)
        if name not in names:
            names.append(name)
    return names


def parse_global_signals(
    status_blob: str,
    serialize_values: Optional[list[tuple[str, bool]]],
    slow_listeners: int = 0,
) -> list[GlobalSignal]:
    """Compute the Discord, Gateway and serialization signals for the run."""
    lines = _lines(status_blob)
    discord_ok = any(DISCORD_OK_RE.search(line) for line in lines)
    gateway_ok = any(GATEWAY_OK_RE.search(line) for line in lines)

    if serialize_values is None:
        serialize_verdict = Verdict.WARN
        serialize_display = "unknown (could not read openclaw.json)"
    elif any(value for _, value in serialize_values):
        serialize_verdict = Verdict.WARN
        serialized = ", ".join(name for name, value in serialize_values if value)
        serialize_display = f"serialize=true ({serialized}): agents run one at a time"
    else:
        serialize_verdict = Verdict.PASS
        serialize_display = "serialize=false: agents run concurrently"
    if slow_listeners:
        serialize_display += f"; {slow_listeners} slow listener warning(s)"

    return [
        GlobalSignal(
            key="discord",
            name="Discord",
            verdict=Verdict.PASS if discord_ok else Verdict.FAIL,
            display="OK" if discord_ok else "unknown",
        ),
        GlobalSignal(
            key="gateway",
            name="Gateway",
            verdict=Verdict.PASS if gateway_ok else Verdict.FAIL,
            display="reachable" if gateway_ok else "unknown",
        ),
        GlobalSignal(
            key="serialize",
            name="Serialization",
            verdict=serialize_verdict,
            display=serialize_display,
        ),
    ]


# ---------------------------------------------------------------------------
# Log text
# ---------------------------------------------------------------------------

def extract_cli_exec_lines(logs_blob: str) -> list[str]:
    return [line for line in _lines(logs_blob) if "cli exec" in line][-MAX_EVIDENCE_LINES:]


def extract_last_cli_call(logs_blob: str, now: datetime) -> Optional[CliCall]:
    """Find the most recent `cli exec` line and how long ago it happened.

    A line without a parseable timestamp still counts as found.
    """
    exec_lines = extract_cli_exec_lines(logs_blob)
    if not exec_lines:
        return None
    line = exec_lines[-1]
    ts_match = TIMESTAMP_RE.search(line)
    if not ts_match:
        return CliCall(line=line)
    try:
        ts = datetime.strptime(ts_match.group(0), "%Y-%m-%dT%H:%M:%S")
    except ValueError:
        return CliCall(line=line)
    minutes = int((now.replace(tzinfo=None) - ts).total_seconds() // 60)
    return CliCall(line=line, timestamp=ts_match.group(0), minutes_ago=max(minutes, 0))


def extract_run_completion(logs_blob: str) -> RunCompletion:
    """aborted=true anywhere wins over any number of aborted=false lines."""
    completed: Optional[str] = None
    for line in _lines(logs_blob):
        match = RUN_DONE_RE.search(line)
        if not match:
            continue
        if match.group(1).lower() == "true":
            return RunCompletion(state=CompletionState.ABORTED)
        completed = line
    if completed is None:
        return RunCompletion()
    duration = DURATION_RE.search(completed)
    return RunCompletion(
        state=CompletionState.COMPLETED,
        duration_ms=int(duration.group(1)) if duration else None,
    )


def extract_cli_errors(logs_blob: str) -> list[str]:
    return [line for line in _lines(logs_blob) if CLI_ERROR_RE.search(line)][-MAX_EVIDENCE_LINES:]


def extract_delivery_errors(logs_blob: str) -> list[str]:
    return [line for line in _lines(logs_blob) if DELIVERY_ERROR_RE.search(line)][-MAX_EVIDENCE_LINES:]


def extract_idle_transitions(logs_blob: str, agent_name: str) -> list[str]:
    """Lines where this agent's session went idle because its run completed."""
    marker = f"agent:{agent_name}:"
    return [
        line for line in _lines(logs_blob)
        if marker in line and IDLE_RE.search(line)
    ]


def count_slow_listeners(logs_blob: str) -> int:
    return sum(1 for line in _lines(logs_blob) if "Slow listener" in line)


def classify_error_causes(context_blob: str) -> list[Cause]:
    """Tag the likely causes found in a block of error text, in rule order."""
    if not context_blob:
        return []
    return [
        Cause(tag=tag, explanation=explanation)
        for pattern, tag, explanation in CAUSE_RULES
        if pattern.search(context_blob)
    ]


def is_network_attributed(error_line: str) -> bool:
    return any(c.tag == NETWORK_CAUSE_TAG for c in classify_error_causes(error_line))

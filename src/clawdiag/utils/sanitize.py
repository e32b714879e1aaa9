"""Redact credentials and home paths from log text before it goes into a report."""

from __future__ import annotations

import os
import re

# (pattern, replacement), applied in order. Header forms go first so the
# bare-token rule only sees tokens that appear on their own.
REDACTION_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"sk-ant-[A-Za-z0-9_-]+"), "[REDACTED_KEY]"),
    (re.compile(r"sk-[A-Za-z0-9_-]{20,}"), "[REDACTED_KEY]"),
    (re.compile(r"\bBearer\s+[^\s\"']+"), "Bearer [REDACTED]"),
    (re.compile(r"\bBot\s+[\w-]{20,}\.[\w-]+\.[\w-]+"), "Bot [REDACTED]"),
    (re.compile(r"(Authorization[\"']?\s*[:=]\s*[\"']?)[^\s\"',}]+"), r"\1[REDACTED]"),
    # Discord bot token: base64 user id, timestamp, HMAC
    (re.compile(r"\b[MNO][\w-]{23,25}\.[\w-]{6}\.[\w-]{27,38}\b"), "[REDACTED_TOKEN]"),
    # webhook URLs embed their own token
    (re.compile(r"(discord(?:app)?\.com/api/webhooks/\d+/)[\w-]+"), r"\1[REDACTED]"),
]


def _home_dir() -> str:
    home = os.environ.get("HOME") or os.environ.get("USERPROFILE") or ""
    return "" if home in ("", "/") else home.rstrip("/\\")


def sanitize_text(text: str) -> str:
    """Apply REDACTION_RULES, then shorten the home directory to ~."""
    if not text:
        return text
    for pattern, replacement in REDACTION_RULES:
        text = pattern.sub(replacement, text)
    home = _home_dir()
    if home:
        text = text.replace(home, "~")
    return text

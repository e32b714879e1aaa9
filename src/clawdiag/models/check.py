"""Check result data models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Verdict(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


VERDICT_RANK = {Verdict.PASS: 0, Verdict.WARN: 1, Verdict.FAIL: 2}


class CheckId(str, Enum):
    SESSION = "session"
    CLI_ACTIVITY = "cli_activity"
    CLI_COMPLETION = "cli_completion"
    SILENCE_FILTER = "silence_filter"
    DELIVERY = "delivery"
    CONNECTIVITY = "connectivity"


CHECK_ORDER: list[CheckId] = [
    CheckId.SESSION,
    CheckId.CLI_ACTIVITY,
    CheckId.CLI_COMPLETION,
    CheckId.SILENCE_FILTER,
    CheckId.DELIVERY,
    CheckId.CONNECTIVITY,
]

CHECK_TITLES: dict[CheckId, str] = {
    CheckId.SESSION: "Session & token usage",
    CheckId.CLI_ACTIVITY: "CLI activity (cli exec)",
    CheckId.CLI_COMPLETION: "CLI run completion",
    CheckId.SILENCE_FILTER: "Silence filter (NO_REPLY / HEARTBEAT_OK)",
    CheckId.DELIVERY: "Reply delivery",
    CheckId.CONNECTIVITY: "Gateway & Discord connectivity",
}


class Cause(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: str
    explanation: str


class CheckResult(BaseModel):
    """Outcome of one check for one agent."""

    model_config = ConfigDict(frozen=True)

    check_id: CheckId
    verdict: Verdict
    detail: str
    evidence: Optional[str] = None
    causes: tuple[Cause, ...] = ()

    @property
    def title(self) -> str:
        return CHECK_TITLES[self.check_id]

    @property
    def number(self) -> int:
        return CHECK_ORDER.index(self.check_id) + 1

"""Agent and run report data models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field, model_validator

from .check import CHECK_ORDER, VERDICT_RANK, CheckResult, Verdict


class GlobalSignal(BaseModel):
    """A cross-agent signal parsed once per run from the shared status text."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    verdict: Verdict
    display: str

    @property
    def healthy(self) -> bool:
        return self.verdict == Verdict.PASS


class ConversationRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    timestamp: str = ""
    user_text: str = ""
    assistant_text: str = ""
    path: str = ""


class VerdictCounts(BaseModel):
    passed: int = 0
    warned: int = 0
    failed: int = 0

    def __add__(self, other: VerdictCounts) -> VerdictCounts:
        return VerdictCounts(
            passed=self.passed + other.passed,
            warned=self.warned + other.warned,
            failed=self.failed + other.failed,
        )


def worst_verdict(verdicts: list[Verdict]) -> Verdict:
    """fail > warn > pass; an empty list is a pass."""
    return max(verdicts, key=lambda v: VERDICT_RANK[v], default=Verdict.PASS)


class AgentReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    session_age: str = "?"
    token_usage_percent: int = 0
    tokens_used_k: int = 0
    tokens_total_k: int = 0
    conversation_window: list[ConversationRecord] = []
    selected_conversation_index: Optional[int] = None
    checks: list[CheckResult]

    @model_validator(mode="after")
    def _check_invariants(self) -> AgentReport:
        if [c.check_id for c in self.checks] != CHECK_ORDER:
            raise ValueError("an agent report needs exactly one result per check, in order")
        if self.conversation_window:
            idx = self.selected_conversation_index
            if idx is None or not 1 <= idx <= len(self.conversation_window):
                raise ValueError(f"selected conversation {idx} outside the window")
        elif self.selected_conversation_index is not None:
            raise ValueError("no conversation can be selected from an empty window")
        return self

    @computed_field
    @property
    def counts(self) -> VerdictCounts:
        return VerdictCounts(
            passed=sum(1 for c in self.checks if c.verdict == Verdict.PASS),
            warned=sum(1 for c in self.checks if c.verdict == Verdict.WARN),
            failed=sum(1 for c in self.checks if c.verdict == Verdict.FAIL),
        )

    @property
    def pass_count(self) -> int:
        return self.counts.passed

    @property
    def warn_count(self) -> int:
        return self.counts.warned

    @property
    def fail_count(self) -> int:
        return self.counts.failed

    @computed_field
    @property
    def overall_status(self) -> Verdict:
        return worst_verdict([c.verdict for c in self.checks])

    @property
    def selected_conversation(self) -> Optional[ConversationRecord]:
        if self.selected_conversation_index is None:
            return None
        return self.conversation_window[self.selected_conversation_index - 1]


class DiagnosticRun(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    hostname: str = ""
    global_signals: list[GlobalSignal] = []
    agents: list[AgentReport] = []

    @computed_field
    @property
    def totals(self) -> VerdictCounts:
        total = VerdictCounts()
        for agent in self.agents:
            total = total + agent.counts
        return total

    def signal(self, key: str) -> Optional[GlobalSignal]:
        return next((s for s in self.global_signals if s.key == key), None)

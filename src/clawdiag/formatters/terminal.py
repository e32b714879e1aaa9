"""Terminal summary of a diagnostics run."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape

from ..core.checks import cause_explanations
from ..models.check import Verdict
from ..models.report import DiagnosticRun

VERDICT_STYLES = {Verdict.PASS: "green", Verdict.WARN: "yellow", Verdict.FAIL: "red"}


def _label(verdict: Verdict) -> str:
    color = VERDICT_STYLES[verdict]
    return f"[{color}]{verdict.value.upper()}[/{color}]"


def print_summary(run: DiagnosticRun, console: Optional[Console] = None) -> None:
    console = console or Console()

    signals = "  ".join(
        f"{s.name}: {_label(s.verdict)} {escape(s.display)}" for s in run.global_signals
    )
    console.print(f"  {signals}")

    for agent in run.agents:
        console.print()
        console.print(f"  [bold cyan]{escape(agent.name)}[/bold cyan]  {_label(agent.overall_status)}")
        for check in agent.checks:
            console.print(f"    {_label(check.verdict)} {check.number}. {check.title}: {escape(check.detail)}")
            if check.verdict != Verdict.PASS:
                for line in cause_explanations(check.causes):
                    console.print(f"         [dim]{escape(line)}[/dim]")

    totals = run.totals
    console.print()
    console.print("  " + "─" * 36)
    console.print(
        f"  Results: [green]{totals.passed} PASS[/green]  "
        f"[yellow]{totals.warned} WARN[/yellow]  [red]{totals.failed} FAIL[/red]"
    )

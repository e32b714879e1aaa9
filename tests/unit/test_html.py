"""Tests for formatters/html.py and formatters/terminal.py."""

from __future__ import annotations

from datetime import datetime
from io import StringIO
from pathlib import Path

from rich.console import Console

from clawdiag.core.aggregator import build_run
from clawdiag.core.checks import check_cli_completion, check_delivery
from clawdiag.core.extractors import RunCompletion, parse_global_signals
from clawdiag.formatters.html import render, write_report
from clawdiag.formatters.terminal import print_summary
from clawdiag.models.check import CHECK_ORDER, CheckId, CheckResult, Verdict
from clawdiag.models.report import AgentReport, ConversationRecord, DiagnosticRun

SCRIPT = "<script>alert(1)</script>"


def _agent(name: str, overrides: dict[CheckId, CheckResult] | None = None, **kwargs) -> AgentReport:
    overrides = overrides or {}
    checks = [
        overrides.get(check_id, CheckResult(check_id=check_id, verdict=Verdict.PASS, detail="fine"))
        for check_id in CHECK_ORDER
    ]
    return AgentReport(name=name, checks=checks, **kwargs)


def _run(agents: list[AgentReport], now: datetime) -> DiagnosticRun:
    signals = parse_global_signals("Discord: OK\nGateway: reachable\n", [("claude-cli", True)])
    return build_run(agents, signals, now, "test-host")


class TestRender:
    def test_escapes_log_evidence(self, now: datetime):
        failing = check_cli_completion(RunCompletion(), [f"cli failed {SCRIPT}"])
        html = render(_run([_agent("main", {CheckId.CLI_COMPLETION: failing})], now))
        assert SCRIPT not in html
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html

    def test_escapes_message_text(self, now: datetime):
        agent = _agent(
            "main",
            conversation_window=[ConversationRecord(index=1, user_text=SCRIPT, assistant_text="<b>hi</b>")],
            selected_conversation_index=1,
        )
        html = render(_run([agent], now))
        assert SCRIPT not in html
        assert "<b>hi</b>" not in html
        assert "&lt;b&gt;hi&lt;/b&gt;" in html

    def test_escapes_agent_name(self, now: datetime):
        html = render(_run([_agent('x"><img src=y>')], now))
        assert "<img src=y>" not in html

    def test_summary_counts_and_meta(self, now: datetime):
        warn = CheckResult(check_id=CheckId.DELIVERY, verdict=Verdict.WARN, detail="insufficient")
        html = render(_run([_agent("main", {CheckId.DELIVERY: warn}), _agent("other")], now))
        assert "test-host" in html
        assert "2026-10-18 10:00:00" in html
        assert '<div class="summary-num">11</div>' in html
        assert '<div class="summary-num">1</div>' in html
        assert 'data-status="warn"' in html
        assert 'data-status="pass"' in html

    def test_global_signals_strip(self, now: datetime):
        html = render(_run([_agent("main")], now))
        assert "Discord:</strong> OK" in html
        assert "Gateway:</strong> reachable" in html
        assert "serialize=true (claude-cli)" in html

    def test_evidence_only_for_failing_completion_and_delivery(self, now: datetime):
        failing_delivery = check_delivery(["[discord] deliver error: Missing Permissions"], [], False)
        failing_session = CheckResult(
            check_id=CheckId.SESSION, verdict=Verdict.FAIL, detail="full", evidence="SESSION-EVIDENCE"
        )
        html = render(
            _run([_agent("main", {CheckId.DELIVERY: failing_delivery, CheckId.SESSION: failing_session})], now)
        )
        assert "Missing Permissions" in html
        assert "SESSION-EVIDENCE" not in html
        assert html.count("Raw log evidence") == 1

    def test_cause_explanations_rendered(self, now: datetime):
        failing = check_cli_completion(RunCompletion(), ["cli write EPIPE", "cli call timed out"])
        html = render(_run([_agent("main", {CheckId.CLI_COMPLETION: failing})], now))
        assert "broken-pipe" in html
        assert "timeout" in html

    def test_selected_conversation_highlighted(self, now: datetime):
        agent = _agent(
            "main",
            conversation_window=[
                ConversationRecord(index=1, assistant_text="first"),
                ConversationRecord(index=2, assistant_text="second"),
            ],
            selected_conversation_index=2,
        )
        html = render(_run([agent], now))
        assert html.count('class="selected"') == 1

    def test_empty_conversation_window(self, now: datetime):
        html = render(_run([_agent("main")], now))
        assert "No conversation history found." in html

    def test_redacts_tokens_in_evidence(self, now: datetime):
        failing = check_cli_completion(RunCompletion(), ["cli failed Authorization: Bearer abc.def.ghi"])
        html = render(_run([_agent("main", {CheckId.CLI_COMPLETION: failing})], now))
        assert "abc.def.ghi" not in html

    def test_render_is_deterministic(self, now: datetime):
        run = _run([_agent("main")], now)
        assert render(run) == render(run)


class TestWriteReport:
    def test_writes_and_overwrites(self, tmp_path: Path, now: datetime):
        out = tmp_path / "sub" / "report.html"
        out.parent.mkdir()
        out.write_text("old", encoding="utf-8")
        write_report(_run([_agent("main")], now), out)
        content = out.read_text(encoding="utf-8")
        assert content.startswith("<!DOCTYPE html>")
        assert content != "old"


class TestPrintSummary:
    def test_prints_checks_and_totals(self, now: datetime):
        buffer = StringIO()
        console = Console(file=buffer, width=200, force_terminal=False)
        failing = check_cli_completion(RunCompletion(), ["cli write EPIPE"])
        print_summary(_run([_agent("main", {CheckId.CLI_COMPLETION: failing})], now), console)
        output = buffer.getvalue()
        assert "main" in output
        assert "FAIL" in output
        assert "broken-pipe" in output
        assert "5 PASS" in output
        assert "1 FAIL" in output

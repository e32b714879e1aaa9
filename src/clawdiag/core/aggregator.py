"""Per-agent evaluation and run roll-up."""

from __future__ import annotations

from datetime import datetime

from ..models.report import AgentReport, DiagnosticRun, GlobalSignal
from . import checks
from .config import config_int, sentinel_replies
from .conversations import ConversationWindow
from .extractors import (
    extract_cli_errors,
    extract_cli_exec_lines,
    extract_delivery_errors,
    extract_idle_transitions,
    extract_last_cli_call,
    extract_run_completion,
    extract_session_line,
    extract_token_usage,
)


def evaluate_agent(
    name: str,
    status_blob: str,
    logs_blob: str,
    conversations: ConversationWindow,
    session_flags: dict,
    global_signals: list[GlobalSignal],
    config: dict,
    now: datetime,
) -> AgentReport:
    """Run the extractors once, then all six checks, for one agent.

    Missing data never raises; every check has a defined fallback verdict.
    """
    session_line = extract_session_line(status_blob, name)
    usage = extract_token_usage(session_line)
    exec_lines = extract_cli_exec_lines(logs_blob)
    last_call = extract_last_cli_call(logs_blob, now)
    completion = extract_run_completion(logs_blob)
    cli_errors = extract_cli_errors(logs_blob)
    delivery_errors = extract_delivery_errors(logs_blob)
    idle_transitions = extract_idle_transitions(logs_blob, name)

    results = [
        checks.check_session(
            session_line,
            usage,
            warn_percent=config_int(config, "checks", "token_warn_percent"),
            fail_percent=config_int(config, "checks", "token_fail_percent"),
        ),
        checks.check_cli_activity(last_call, exec_lines),
        checks.check_cli_completion(completion, cli_errors),
        checks.check_silence_filter(
            conversations.selected_assistant_text,
            sentinel_replies(config),
        ),
        checks.check_delivery(
            delivery_errors,
            idle_transitions,
            system_sent=session_flags.get("systemSent") is True,
        ),
        checks.check_connectivity(global_signals),
    ]

    return AgentReport(
        name=name,
        session_age=usage.age,
        token_usage_percent=usage.percent,
        tokens_used_k=usage.used_k,
        tokens_total_k=usage.total_k,
        conversation_window=conversations.records,
        selected_conversation_index=conversations.selected_index,
        checks=results,
    )


def build_run(
    agents: list[AgentReport],
    global_signals: list[GlobalSignal],
    now: datetime,
    hostname: str,
) -> DiagnosticRun:
    return DiagnosticRun(
        timestamp=now,
        hostname=hostname,
        global_signals=global_signals,
        agents=agents,
    )

"""The six per-agent checks.

Each check is a pure function of already-extracted facts and returns one
immutable CheckResult. None of them reads files, the clock or the network.
"""

from __future__ import annotations

from typing import Optional

from ..models.check import Cause, CheckId, CheckResult, Verdict
from ..models.report import GlobalSignal
from .extractors import (
    CliCall,
    CompletionState,
    RunCompletion,
    TokenUsage,
    classify_error_causes,
    is_network_attributed,
)

DEFAULT_TOKEN_WARN_PERCENT = 75
DEFAULT_TOKEN_FAIL_PERCENT = 90
DEFAULT_SENTINEL_REPLIES = ("HEARTBEAT_OK", "NO_REPLY")


def _evidence(lines: list[str]) -> Optional[str]:
    return "\n".join(lines) if lines else None


def check_session(
    session_line: Optional[str],
    usage: TokenUsage,
    warn_percent: int = DEFAULT_TOKEN_WARN_PERCENT,
    fail_percent: int = DEFAULT_TOKEN_FAIL_PERCENT,
) -> CheckResult:
    """Session present and token budget not (nearly) exhausted."""
    if session_line is None:
        return CheckResult(
            check_id=CheckId.SESSION,
            verdict=Verdict.FAIL,
            detail="No active session found in `openclaw status --deep`",
        )

    usage_text = f"{usage.used_k}k/{usage.total_k}k ({usage.percent}%), last active {usage.age}"
    if usage.percent >= fail_percent:
        verdict = Verdict.FAIL
        detail = f"Context nearly full: {usage_text}. Reset or compact the session."
    elif usage.percent >= warn_percent:
        verdict = Verdict.WARN
        detail = f"Context filling up: {usage_text}"
    else:
        verdict = Verdict.PASS
        detail = f"Session active: {usage_text}"
    return CheckResult(check_id=CheckId.SESSION, verdict=verdict, detail=detail, evidence=session_line)


def check_cli_activity(last_call: Optional[CliCall], exec_lines: list[str]) -> CheckResult:
    """The gateway routed at least one message to the CLI in the log window.

    The log window is shared, so any agent's `cli exec` counts.
    """
    if last_call is None or not exec_lines:
        return CheckResult(
            check_id=CheckId.CLI_ACTIVITY,
            verdict=Verdict.FAIL,
            detail="No `cli exec` entries in the log window; messages are not reaching the CLI",
        )

    detail = f"{len(exec_lines)} recent `cli exec` entries"
    if last_call.timestamp:
        detail += f", last at {last_call.timestamp}"
        if last_call.minutes_ago is not None:
            detail += f" ({last_call.minutes_ago} min ago)"
    return CheckResult(
        check_id=CheckId.CLI_ACTIVITY,
        verdict=Verdict.PASS,
        detail=detail,
        evidence=_evidence(exec_lines),
    )


def check_cli_completion(completion: RunCompletion, cli_errors: list[str]) -> CheckResult:
    """Runs finish cleanly; errors outrank a simultaneous completion signal."""
    if completion.state == CompletionState.ABORTED:
        return CheckResult(
            check_id=CheckId.CLI_COMPLETION,
            verdict=Verdict.FAIL,
            detail="A CLI run was aborted (`run done ... aborted=true`)",
            evidence=_evidence(cli_errors),
            causes=tuple(classify_error_causes("\n".join(cli_errors))),
        )
    if cli_errors:
        return CheckResult(
            check_id=CheckId.CLI_COMPLETION,
            verdict=Verdict.FAIL,
            detail=f"{len(cli_errors)} CLI error line(s) in the log window",
            evidence=_evidence(cli_errors),
            causes=tuple(classify_error_causes("\n".join(cli_errors))),
        )
    if completion.state == CompletionState.UNKNOWN:
        return CheckResult(
            check_id=CheckId.CLI_COMPLETION,
            verdict=Verdict.WARN,
            detail="No completion or error signal; the log window may be too short",
        )
    detail = "Last run completed without errors"
    if completion.duration_ms is not None:
        detail += f" in {completion.duration_ms / 1000:.1f}s"
    return CheckResult(check_id=CheckId.CLI_COMPLETION, verdict=Verdict.PASS, detail=detail)


def check_silence_filter(
    assistant_text: Optional[str],
    sentinels: tuple[str, ...] = DEFAULT_SENTINEL_REPLIES,
) -> CheckResult:
    """A sentinel reply means the agent chose not to answer; exact match only."""
    if not assistant_text:
        return CheckResult(
            check_id=CheckId.SILENCE_FILTER,
            verdict=Verdict.WARN,
            detail="No assistant message found in the conversation store",
        )
    if assistant_text in sentinels:
        return CheckResult(
            check_id=CheckId.SILENCE_FILTER,
            verdict=Verdict.FAIL,
            detail=f"Last reply was `{assistant_text}`; it was filtered and never sent",
        )
    return CheckResult(
        check_id=CheckId.SILENCE_FILTER,
        verdict=Verdict.PASS,
        detail=f"Last reply: {assistant_text}",
    )


def check_delivery(
    delivery_errors: list[str],
    idle_transitions: list[str],
    system_sent: bool,
) -> CheckResult:
    """Reply reached Discord.

    Positive signals: the session went idle with reason run_completed, or the
    persisted session has systemSent=true.
    """
    positives: list[str] = []
    if idle_transitions:
        positives.append("session idle after run_completed")
    if system_sent:
        positives.append("systemSent=true")

    if delivery_errors:
        causes = tuple(classify_error_causes("\n".join(delivery_errors)))
        count = len(delivery_errors)
        if positives:
            return CheckResult(
                check_id=CheckId.DELIVERY,
                verdict=Verdict.WARN,
                detail=f"{count} delivery error(s), but delivery recovered ({', '.join(positives)})",
                evidence=_evidence(delivery_errors),
                causes=causes,
            )
        if all(is_network_attributed(line) for line in delivery_errors):
            return CheckResult(
                check_id=CheckId.DELIVERY,
                verdict=Verdict.WARN,
                detail=f"{count} delivery error(s), all network resets (socket hang up)",
                evidence=_evidence(delivery_errors),
                causes=causes,
            )
        return CheckResult(
            check_id=CheckId.DELIVERY,
            verdict=Verdict.FAIL,
            detail=f"{count} delivery error(s) and no sign the reply was delivered",
            evidence=_evidence(delivery_errors),
            causes=causes,
        )

    if positives:
        return CheckResult(
            check_id=CheckId.DELIVERY,
            verdict=Verdict.PASS,
            detail=f"No delivery errors; {', '.join(positives)}",
            evidence=_evidence(idle_transitions[-3:]),
        )
    return CheckResult(
        check_id=CheckId.DELIVERY,
        verdict=Verdict.WARN,
        detail="Insufficient data: no delivery errors, but no delivery confirmation either",
    )


def check_connectivity(signals: list[GlobalSignal]) -> CheckResult:
    """Both Discord and the Gateway must be healthy."""
    by_key = {s.key: s for s in signals}
    discord = by_key.get("discord")
    gateway = by_key.get("gateway")
    discord_text = discord.display if discord else "unknown"
    gateway_text = gateway.display if gateway else "unknown"
    healthy = bool(discord and discord.healthy and gateway and gateway.healthy)
    return CheckResult(
        check_id=CheckId.CONNECTIVITY,
        verdict=Verdict.PASS if healthy else Verdict.FAIL,
        detail=f"Discord: {discord_text}, Gateway: {gateway_text}",
    )


def cause_explanations(causes: tuple[Cause, ...]) -> list[str]:
    return [f"{c.tag}: {c.explanation}" for c in causes]

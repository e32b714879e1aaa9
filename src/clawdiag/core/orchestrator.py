"""Main diagnostics orchestrator.

Fetches the shared status and log text exactly once, evaluates each agent
against that same text, prints the terminal summary and writes the report.
"""

from __future__ import annotations

import socket
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from .. import __version__
from ..formatters.html import write_report
from ..formatters.terminal import print_summary
from ..models.report import AgentReport
from .aggregator import build_run, evaluate_agent
from .config import config_int, config_path_value, get_effective_config
from .conversations import extract_last_conversation_texts, read_session_flags, workspace_for
from .extractors import count_slow_listeners, extract_agent_names, parse_global_signals
from .fetch import fetch_logs, fetch_status, load_openclaw_config, serialize_values

console = Console()
err_console = Console(stderr=True)

EXIT_OK = 0
EXIT_NO_AGENTS = 11
EXIT_REPORT_WRITE = 12


def resolve_agents(names: list[str], include_all: bool, status_blob: str) -> list[str]:
    """Positional names first, then discovered names, without duplicates."""
    resolved: list[str] = []
    candidates = list(names) + (extract_agent_names(status_blob) if include_all else [])
    for name in candidates:
        if name and name not in resolved:
            resolved.append(name)
    return resolved


def run_diagnosis(
    agents: Optional[list[str]] = None,
    include_all: bool = False,
    conversation: int = 1,
    open_report: bool = False,
    output: Optional[Path] = None,
    config_path: Optional[Path] = None,
    log_bytes: Optional[int] = None,
    now: Optional[datetime] = None,
    hostname: Optional[str] = None,
) -> int:
    """Run every check for the requested agents. Returns exit code."""
    start_time = time.time()

    cli_overrides: dict = {}
    if log_bytes:
        cli_overrides.setdefault("logs", {})["max_bytes"] = log_bytes
    if output:
        cli_overrides.setdefault("report", {})["path"] = str(output)
    config = get_effective_config(config_path, cli_overrides=cli_overrides or None)

    now = now or datetime.now()
    hostname = hostname or socket.gethostname()
    openclaw_home = config_path_value(config, "openclaw", "home")
    projects_dir = config_path_value(config, "claude", "projects_dir")

    console.print()
    console.print(f"  [bold cyan]OPENCLAW DIAGNOSE[/bold cyan] v{__version__}")
    console.print(f"  {now.strftime('%Y-%m-%d %H:%M:%S')} · {hostname}")
    console.print()

    console.print("  [cyan]Fetching status...[/cyan]")
    status_blob = fetch_status(config)

    agent_names = resolve_agents(agents or [], include_all, status_blob)
    if not agent_names:
        available = extract_agent_names(status_blob)
        err_console.print("  [red]ERROR[/red] No agents given. Pass agent names or --all.")
        err_console.print(f"  Available agents: {', '.join(available) if available else '(none found)'}")
        return EXIT_NO_AGENTS

    console.print("  [cyan]Fetching logs...[/cyan]")
    logs_blob = fetch_logs(config)

    openclaw_config = load_openclaw_config(openclaw_home)
    global_signals = parse_global_signals(
        status_blob,
        serialize_values(openclaw_config),
        count_slow_listeners(logs_blob),
    )

    reports: list[AgentReport] = []
    for name in agent_names:
        window = extract_last_conversation_texts(
            projects_dir,
            workspace_for(name, openclaw_home, openclaw_config),
            selected_index=conversation,
            window=config_int(config, "conversations", "window"),
            truncate=config_int(config, "conversations", "truncate"),
        )
        reports.append(
            evaluate_agent(
                name,
                status_blob,
                logs_blob,
                window,
                read_session_flags(openclaw_home, name),
                global_signals,
                config,
                now,
            )
        )

    run = build_run(reports, global_signals, now, hostname)
    print_summary(run, console)

    report_path = config_path_value(config, "report", "path")
    try:
        write_report(
            run,
            report_path,
            warn_percent=config_int(config, "checks", "token_warn_percent"),
            fail_percent=config_int(config, "checks", "token_fail_percent"),
        )
    except OSError as e:
        err_console.print(f"  [red]ERROR[/red] Could not write report to {report_path}: {e}")
        return EXIT_REPORT_WRITE

    console.print(f"\n  [green]Report:[/green] {report_path.resolve()}")
    console.print(f"  Finished in {round(time.time() - start_time, 1)}s")

    if open_report:
        if click.launch(str(report_path.resolve())) != 0:
            console.print(f"  [yellow]WARN[/yellow] Could not open a viewer; open {report_path} manually")

    return EXIT_OK

"""diagnose - OpenClaw agent health check.

Runs six checks per agent and writes a self-contained HTML report.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click


@click.command(name="diagnose")
@click.pass_context
@click.argument("agents", nargs=-1)
@click.option("--all", "include_all", is_flag=True, help="Also check every agent found in `openclaw status`")
@click.option("--open", "open_report", is_flag=True, help="Open the report when done")
@click.option(
    "--conv",
    type=click.IntRange(1, 5, clamp=True),
    default=1,
    show_default=True,
    help="Which recent conversation to feature (1 = most recent)",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Report path")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), help="Config YAML")
@click.option("--log-bytes", type=click.IntRange(min=1), help="How much of the log tail to scan")
def diagnose_cli(
    ctx: click.Context,
    agents: tuple[str, ...],
    include_all: bool,
    open_report: bool,
    conv: int,
    output: Path | None,
    config_path: Path | None,
    log_bytes: int | None,
) -> None:
    """Diagnose OpenClaw agents.

    Example: diagnose main support --conv 2 --open
    """
    from ..core.orchestrator import EXIT_NO_AGENTS, run_diagnosis

    exit_code = run_diagnosis(
        agents=list(agents),
        include_all=include_all,
        conversation=conv,
        open_report=open_report,
        output=output,
        config_path=config_path,
        log_bytes=log_bytes,
    )
    if exit_code == EXIT_NO_AGENTS:
        click.echo(ctx.get_usage(), err=True)
    if exit_code:
        sys.exit(exit_code)


def main() -> None:
    diagnose_cli()


if __name__ == "__main__":
    main()

"""Self-contained HTML report.

Rendering is a pure function of the DiagnosticRun. Autoescaping is on for
the whole template: log lines and message text are untrusted.
"""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, PackageLoader, select_autoescape

from .. import __version__
from ..models.check import CheckId, CheckResult, Verdict
from ..models.report import DiagnosticRun
from ..utils.sanitize import sanitize_text

# Checks whose failures carry raw log evidence and cause tags in the report.
EVIDENCE_CHECKS = {CheckId.CLI_COMPLETION, CheckId.DELIVERY}

VERDICT_ICONS = {
    Verdict.PASS: "✓",
    Verdict.WARN: "!",
    Verdict.FAIL: "✗",
}


def _show_evidence(check: CheckResult) -> bool:
    return check.check_id in EVIDENCE_CHECKS and check.verdict == Verdict.FAIL and bool(check.evidence)


def _token_class(percent: int, warn_percent: int, fail_percent: int) -> str:
    if percent >= fail_percent:
        return "fail"
    if percent >= warn_percent:
        return "warn"
    return "pass"


def _environment() -> Environment:
    env = Environment(
        loader=PackageLoader("clawdiag", "templates"),
        autoescape=select_autoescape(["html", "j2"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["sanitize"] = sanitize_text
    env.globals["show_evidence"] = _show_evidence
    env.globals["icon"] = lambda verdict: VERDICT_ICONS[verdict]
    return env


def render(run: DiagnosticRun, warn_percent: int = 75, fail_percent: int = 90) -> str:
    """Render the run as a single HTML document."""
    template = _environment().get_template("report.html.j2")
    return template.render(
        run=run,
        totals=run.totals,
        version=__version__,
        generated=run.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
        token_class=lambda p: _token_class(p, warn_percent, fail_percent),
    )


def write_report(run: DiagnosticRun, output_path: Path, warn_percent: int = 75, fail_percent: int = 90) -> Path:
    """Write the report, overwriting any previous one."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render(run, warn_percent, fail_percent), encoding="utf-8")
    return output_path

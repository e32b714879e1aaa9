"""Tests for core/orchestrator.py: one full run against canned OpenClaw output."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from clawdiag.core.orchestrator import (
    EXIT_NO_AGENTS,
    EXIT_OK,
    EXIT_REPORT_WRITE,
    resolve_agents,
    run_diagnosis,
)


@pytest.fixture
def config_file(tmp_path: Path, openclaw_home: Path, projects_dir: Path) -> Path:
    path = tmp_path / "diagnose.yaml"
    path.write_text(
        f"openclaw:\n"
        f"  home: {openclaw_home}\n"
        f"claude:\n"
        f"  projects_dir: {projects_dir}\n"
        f"report:\n"
        f"  path: {tmp_path / 'report.html'}\n",
        encoding="utf-8",
    )
    return path


class TestResolveAgents:
    def test_positional_only(self, status_blob: str):
        assert resolve_agents(["main"], False, status_blob) == ["main"]

    def test_all_appends_discovered_without_duplicates(self, status_blob: str):
        assert resolve_agents(["support"], True, status_blob) == ["support", "main"]

    def test_nothing(self, status_blob: str):
        assert resolve_agents([], False, status_blob) == []


class TestRunDiagnosis:
    @patch("clawdiag.core.orchestrator.fetch_logs")
    @patch("clawdiag.core.orchestrator.fetch_status")
    def test_no_agents_is_usage_error(self, mock_status, mock_logs, status_blob, config_file, now):
        mock_status.return_value = status_blob
        code = run_diagnosis(agents=[], config_path=config_file, now=now, hostname="h")
        assert code == EXIT_NO_AGENTS
        mock_logs.assert_not_called()

    @patch("clawdiag.core.orchestrator.fetch_logs")
    @patch("clawdiag.core.orchestrator.fetch_status")
    def test_writes_report(
        self, mock_status, mock_logs, status_blob, logs_blob, config_file, tmp_path, now,
        projects_dir, openclaw_home, write_conversation,
    ):
        mock_status.return_value = status_blob
        mock_logs.return_value = logs_blob
        write_conversation(
            projects_dir, openclaw_home / "workspace", "c",
            [("user", "status?"), ("assistant", "All systems nominal")],
            mtime=1_700_000_000,
        )

        code = run_diagnosis(include_all=True, config_path=config_file, now=now, hostname="box")

        assert code == EXIT_OK
        mock_status.assert_called_once()
        mock_logs.assert_called_once()
        html = (tmp_path / "report.html").read_text(encoding="utf-8")
        assert "main" in html
        assert "support" in html
        assert "All systems nominal" in html
        assert "box" in html

    @patch("clawdiag.core.orchestrator.fetch_logs", return_value="")
    @patch("clawdiag.core.orchestrator.fetch_status", return_value="")
    def test_missing_openclaw_still_reports(self, _status, _logs, config_file, tmp_path, now):
        code = run_diagnosis(agents=["ghost"], config_path=config_file, now=now, hostname="h")
        assert code == EXIT_OK
        html = (tmp_path / "report.html").read_text(encoding="utf-8")
        assert "No active session" in html

    @patch("clawdiag.core.orchestrator.fetch_logs", return_value="")
    @patch("clawdiag.core.orchestrator.fetch_status", return_value="")
    def test_output_override(self, _status, _logs, config_file, tmp_path, now):
        out = tmp_path / "elsewhere" / "r.html"
        code = run_diagnosis(agents=["main"], output=out, config_path=config_file, now=now, hostname="h")
        assert code == EXIT_OK
        assert out.exists()
        assert not (tmp_path / "report.html").exists()

    @patch("clawdiag.core.orchestrator.fetch_logs", return_value="")
    @patch("clawdiag.core.orchestrator.fetch_status", return_value="")
    def test_unwritable_report(self, _status, _logs, config_file, tmp_path, now):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        code = run_diagnosis(
            agents=["main"], output=blocker / "r.html", config_path=config_file, now=now, hostname="h"
        )
        assert code == EXIT_REPORT_WRITE

    @patch("click.launch", return_value=0)
    @patch("clawdiag.core.orchestrator.fetch_logs", return_value="")
    @patch("clawdiag.core.orchestrator.fetch_status", return_value="")
    def test_open_launches_viewer(self, _status, _logs, mock_launch, config_file, tmp_path, now):
        run_diagnosis(agents=["main"], open_report=True, config_path=config_file, now=now, hostname="h")
        mock_launch.assert_called_once()
        assert mock_launch.call_args.args[0].endswith("report.html")

    @patch("click.launch", return_value=1)
    @patch("clawdiag.core.orchestrator.fetch_logs", return_value="")
    @patch("clawdiag.core.orchestrator.fetch_status", return_value="")
    def test_viewer_failure_is_not_fatal(self, _status, _logs, mock_launch, config_file, tmp_path, now):
        code = run_diagnosis(agents=["main"], open_report=True, config_path=config_file, now=now, hostname="h")
        assert code == EXIT_OK
        mock_launch.assert_called_once()
        assert (tmp_path / "report.html").exists()

    @patch("clawdiag.core.orchestrator.fetch_logs", return_value="")
    @patch("clawdiag.core.orchestrator.fetch_status", return_value="")
    def test_empty_and_bad_config_sections_still_report(
        self, _status, _logs, config_file, tmp_path, now,
    ):
        with config_file.open("a", encoding="utf-8") as fh:
            fh.write("checks:\nconversations:\n  window: lots\nlogs: 5\n")
        code = run_diagnosis(agents=["main"], config_path=config_file, now=now, hostname="h")
        assert code == EXIT_OK
        assert (tmp_path / "report.html").exists()

    @patch("clawdiag.core.orchestrator.fetch_logs")
    @patch("clawdiag.core.orchestrator.fetch_status")
    def test_serialize_signal_from_openclaw_json(
        self, mock_status, mock_logs, status_blob, config_file, openclaw_home, tmp_path, now,
    ):
        mock_status.return_value = status_blob
        mock_logs.return_value = ""
        (openclaw_home / "openclaw.json").write_text(
            '{"agents": {"defaults": {"cliBackends": {"claude-cli": {"serialize": false}}}}}',
            encoding="utf-8",
        )
        run_diagnosis(agents=["main"], config_path=config_file, now=now, hostname="h")
        html = (tmp_path / "report.html").read_text(encoding="utf-8")
        assert "serialize=false" in html

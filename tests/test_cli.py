import subprocess
from unittest import mock

import pytest

from pylon import cli


def test_version_output(capsys):
    assert cli.main(["version"]) == 0
    assert capsys.readouterr().out == f"pylon {cli.VERSION}\n"


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "usage: pylon" in capsys.readouterr().out


def test_retry_message(capsys):
    assert cli.main(["retry", "abc"]) == 0
    assert "Retry is available when the daemon is running" in capsys.readouterr().out


def test_logs_requires_job_id():
    with pytest.raises(SystemExit) as excinfo:
        cli.build_parser().parse_args(["logs"])
    assert excinfo.value.code == 2


def test_parser_reads_job_id():
    args = cli.build_parser().parse_args(["kill", "job-7"])
    assert args.job_id == "job-7"
    assert args.command == "kill"


def test_kill_failure_returns_one(capsys):
    failed = subprocess.CompletedProcess([], 1)
    with mock.patch("pylon.jobs.subprocess.run", return_value=failed):
        assert cli.main(["kill", "job-1"]) == 1
    assert capsys.readouterr().err.startswith("Error: ")


def test_service_without_subcommand_prints_help(capsys):
    assert cli.main(["service"]) == 0
    assert "install" in capsys.readouterr().out


def test_doctor_reports_issues(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("HOME", str(tmp_path))
    failed = subprocess.CompletedProcess([], 1, stdout="")
    with mock.patch("pylon.doctor.subprocess.run", return_value=failed):
        assert cli.main(["doctor"]) == 0
    out = capsys.readouterr().out
    assert "1 issue(s) found." in out
    assert "Docker" in out and "FAIL" in out


def test_doctor_all_ok(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("HOME", str(tmp_path))
    (tmp_path / ".claude").mkdir()

    def fake_run(args, **kwargs):
        stdout = "latest\n" if "{{.Tag}}" in args else "24.0\n"
        return subprocess.CompletedProcess(args, 0, stdout=stdout)

    with mock.patch("pylon.doctor.subprocess.run", side_effect=fake_run):
        assert cli.main(["doctor"]) == 0
    out = capsys.readouterr().out
    assert "All checks passed.\n" in out
    assert "running (v24.0)" in out
import subprocess
from datetime import datetime, timedelta, timezone
from unittest import mock

import pytest

from pylon import jobs


NOW = datetime(2024, 5, 1, 12, 0, 0)


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(seconds=30), "30 sec ago"),
        (timedelta(minutes=5), "5 min ago"),
        (timedelta(hours=3), "3 hours ago"),
        (timedelta(hours=48), "2 days ago"),
    ],
)
def test_time_ago(delta, expected):
    assert jobs.time_ago(NOW - delta, NOW) == expected


def test_time_ago_default_now_with_aware_datetime():
    when = datetime.now(timezone.utc) - timedelta(minutes=5, seconds=1)
    assert jobs.time_ago(when) == "5 min ago"


def _completed(args, code=0, stdout=""):
    return subprocess.CompletedProcess(args, code, stdout=stdout)


def test_find_job_container_returns_id():
    with mock.patch("pylon.jobs.subprocess.run") as run:
        run.return_value = _completed([], stdout="abc123\n")
        assert jobs.find_job_container("job-1") == "abc123"
        args = run.call_args.args[0]
        assert "label=pylon.job=job-1" in args


def test_find_job_container_none_when_empty():
    with mock.patch("pylon.jobs.subprocess.run", return_value=_completed([], stdout="  \n")):
        assert jobs.find_job_container("job-1") is None


def test_find_job_container_raises_on_failure():
    with mock.patch("pylon.jobs.subprocess.run", return_value=_completed([], code=1)):
        with pytest.raises(jobs.DockerCommandError, match="finding container"):
            jobs.find_job_container("job-1")


def test_docker_logs_without_container(capsys):
    with mock.patch("pylon.jobs.subprocess.run", return_value=_completed([], stdout="")):
        assert jobs.docker_logs("job-9") is None
    assert "job-9" in capsys.readouterr().out


def test_docker_logs_follows_container():
    calls = []

    def fake_run(args, **kwargs):
        calls.append(args)
        if args[:2] == ["docker", "ps"]:
            return _completed(args, stdout="cid42\n")
        return _completed(args)

    with mock.patch("pylon.jobs.subprocess.run", side_effect=fake_run):
        assert jobs.docker_logs("job-1") == "cid42"
    assert calls[-1] == ["docker", "logs", "-f", "cid42"]


def test_kill_raises_on_nonzero_exit():
    with mock.patch("pylon.jobs.subprocess.run", return_value=_completed([], code=1)) as run:
        with pytest.raises(jobs.DockerCommandError):
            jobs.kill("job-1")
        assert run.call_args.args[0] == ["docker", "kill", "job-1"]


def test_attach_runs_shell():
    with mock.patch("pylon.jobs.subprocess.run", return_value=_completed([])) as run:
        result = jobs.attach("job-1")
        assert result is None
        assert run.call_args.args[0] == ["docker", "exec", "-it", "job-1", "/bin/sh"]


def test_attach_missing_docker():
    with mock.patch("pylon.jobs.subprocess.run", side_effect=FileNotFoundError("docker")):
        with pytest.raises(jobs.DockerCommandError):
            jobs.attach("job-1")
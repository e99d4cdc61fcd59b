"""Inspecting and controlling the containers that run jobs."""

from __future__ import annotations

import subprocess
from datetime import datetime, timezone
from typing import Optional


class DockerCommandError(RuntimeError):
    """Raised when a docker command for a job fails."""


def time_ago(when: datetime, now: Optional[datetime] = None) -> str:
    """Describe how long ago ``when`` was, in whole seconds, minutes, hours or days."""
    if now is None:
        now = datetime.now(timezone.utc) if when.tzinfo else datetime.now()
    seconds = (now - when).total_seconds()
    if seconds < 60:
        return f"{int(seconds)} sec ago"
    if seconds < 3600:
        return f"{int(seconds / 60)} min ago"
    if seconds < 24 * 3600:
        return f"{int(seconds / 3600)} hours ago"
    return f"{int(seconds / 3600 / 24)} days ago"


def find_job_container(job_id: str) -> Optional[str]:
    """Return the id of the container labelled with ``job_id``, or None if there is none."""
    args = [
        "docker", "ps", "-a",
        "--filter", f"label=pylon.job={job_id}",
        "--format", "{{.ID}}",
    ]
    try:
        result = subprocess.run(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise DockerCommandError(f"finding container: {exc}") from exc
    if result.returncode != 0:
        raise DockerCommandError(
            f"finding container: exit status {result.returncode}"
        )
    container_id = (result.stdout or "").strip()
    return container_id or None


def _run_attached(args: list, action: str) -> None:
    try:
        result = subprocess.run(args, check=False)
    except OSError as exc:
        raise DockerCommandError(f"{action}: {exc}") from exc
    if result.returncode != 0:
        raise DockerCommandError(f"{action}: exit status {result.returncode}")


def docker_logs(job_id: str) -> Optional[str]:
    """Follow the logs of the job's container; return its id, or None if none exists."""
    container_id = find_job_container(job_id)
    if container_id is None:
        print(f"No running container found for job {job_id}.")
        return None
    _run_attached(["docker", "logs", "-f", container_id], "docker logs")
    return container_id


def attach(job_id: str) -> None:
    """Open an interactive shell in the running agent container."""
    _run_attached(["docker", "exec", "-it", job_id, "/bin/sh"], "docker exec")


def kill(job_id: str) -> None:
    """Kill the container of a running job."""
    _run_attached(["docker", "kill", job_id], "docker kill")
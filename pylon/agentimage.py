"""Locate, pull and build the Docker images that agents run in."""

from __future__ import annotations

import logging
import subprocess
import sys
import tempfile
from pathlib import Path

REGISTRY = "ghcr.io/pylonto"

# Agent types whose images are refreshed by rebuild().
REBUILD_AGENT_TYPES = ("claude", "opencode")

log = logging.getLogger(__name__)


class AgentImageError(RuntimeError):
    """Raised when an agent image cannot be built."""


def image_name(agent_type: str) -> str:
    """Return the fully qualified image name for an agent type."""
    return f"{REGISTRY}/agent-{agent_type}"


def image_exists(image: str) -> bool:
    """Return True if the Docker image is present locally."""
    try:
        result = subprocess.run(
            ["docker", "images", image, "-q"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError:
        return False
    return result.returncode == 0 and bool(result.stdout.strip())


def pull(image: str) -> bool:
    """Run ``docker pull`` for the image, streaming its output; True on success."""
    try:
        result = subprocess.run(["docker", "pull", image], check=False)
    except OSError:
        return False
    return result.returncode == 0


def build(agent_type: str, agent_root: str | Path | None = None) -> None:
    """Build the image for ``agent_type`` from the files in ``agent_root/<agent_type>``.

    The files are copied to a temporary build context; shell scripts are made
    executable. Raises AgentImageError if there is no such agent directory or
    the build fails.
    """
    source = Path(agent_root) / agent_type if agent_root is not None else None
    if source is None or not source.is_dir():
        raise AgentImageError(f"no embedded agent {agent_type!r}")

    with tempfile.TemporaryDirectory(prefix=f"pylon-agent-{agent_type}-") as context:
        context_dir = Path(context)
        for entry in sorted(source.iterdir()):
            if not entry.is_file():
                continue
            target = context_dir / entry.name
            target.write_bytes(entry.read_bytes())
            target.chmod(0o755 if entry.name.endswith(".sh") else 0o644)

        try:
            result = subprocess.run(
                ["docker", "build", "-t", image_name(agent_type), str(context_dir)],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except OSError as exc:
            raise AgentImageError(f"docker build failed: {exc}") from exc

        if result.returncode != 0:
            if result.stdout:
                sys.stderr.write(result.stdout.decode(errors="replace"))
            raise AgentImageError(
                f"docker build failed: exit status {result.returncode}"
            )


def rebuild(agent_root: str | Path | None = None) -> None:
    """Refresh the agent images already present locally.

    Each is pulled from the registry; if the pull fails it is rebuilt from
    the agent files under ``agent_root``.
    """
    for agent_type in REBUILD_AGENT_TYPES:
        image = image_name(agent_type)
        if not image_exists(image):
            continue
        print(f"Updating {image}...")
        if pull(image):
            continue
        print("  Pull failed, rebuilding from embedded Dockerfile...")
        try:
            build(agent_type, agent_root)
        except AgentImageError as exc:
            log.warning("Warning: failed to rebuild %s: %s", image, exc)


def ensure_image(image: str, agent_type: str, agent_root: str | Path | None = None) -> None:
    """Make sure ``image`` is available locally.

    Pulls it if missing. Falls back to a local build only when ``image`` is
    the default image for ``agent_type``, since builds are always tagged
    with that name.
    """
    if image_exists(image):
        return
    print(f"Pulling agent image {image}...")
    if pull(image):
        return
    if image == image_name(agent_type):
        print("  Pull failed, building from embedded Dockerfile...")
        try:
            build(agent_type, agent_root)
        except AgentImageError as exc:
            print(f"  Warning: {exc}")
            print(f"  Run manually: docker pull {image}")
        return
    print(f"  Warning: could not pull custom image {image}")
    print(
        "  This image must be available locally or pullable. "
        f"Run: docker pull {image}"
    )
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from pylon import agentimage
from pylon.agentimage import (
    AgentImageError,
    build,
    ensure_image,
    image_exists,
    image_name,
    pull,
    rebuild,
)


class FakeDocker:
    """Stands in for subprocess.run, answering docker commands."""

    def __init__(self, existing=(), pull_ok=False, build_rc=0, build_output=b""):
        self.existing = set(existing)
        self.pull_ok = pull_ok
        self.build_rc = build_rc
        self.build_output = build_output
        self.calls = []
        self.built_files = {}

    def __call__(self, args, **kwargs):
        args = list(args)
        self.calls.append(args)
        command = args[1]
        if command == "images":
            out = b"abc123\n" if args[2] in self.existing else b""
            return subprocess.CompletedProcess(args, 0, out, b"")
        if command == "pull":
            return subprocess.CompletedProcess(args, 0 if self.pull_ok else 1)
        if command == "build":
            context = Path(args[-1])
            for path in context.iterdir():
                self.built_files[path.name] = (
                    path.read_bytes(),
                    path.stat().st_mode & 0o777,
                )
            return subprocess.CompletedProcess(args, self.build_rc, self.build_output)
        raise AssertionError(f"unexpected command {args}")

    def commands(self):
        return [call[1] for call in self.calls]


@pytest.fixture
def agent_root(tmp_path):
    claude = tmp_path / "claude"
    claude.mkdir()
    (claude / "Dockerfile").write_text("FROM scratch\n")
    (claude / "entrypoint.sh").write_text("#!/bin/sh\necho hi\n")
    return tmp_path


@pytest.mark.parametrize(
    "agent_type, want",
    [
        ("claude", "ghcr.io/pylonto/agent-claude"),
        ("opencode", "ghcr.io/pylonto/agent-opencode"),
        ("custom", "ghcr.io/pylonto/agent-custom"),
    ],
)
def test_image_name(agent_type, want):
    assert image_name(agent_type) == want


def test_image_exists_true_when_listed():
    fake = FakeDocker(existing={"img:1"})
    with patch.object(agentimage.subprocess, "run", fake):
        assert image_exists("img:1") is True
        assert image_exists("other") is False
    assert fake.calls[0] == ["docker", "images", "img:1", "-q"]


def test_image_exists_false_without_docker():
    with patch.object(agentimage.subprocess, "run", side_effect=FileNotFoundError):
        assert image_exists("img") is False


def test_pull_reports_success():
    with patch.object(agentimage.subprocess, "run", FakeDocker(pull_ok=True)):
        assert pull("img") is True
    with patch.object(agentimage.subprocess, "run", FakeDocker(pull_ok=False)):
        assert pull("img") is False


def test_build_missing_agent_raises(tmp_path):
    with pytest.raises(AgentImageError, match="no embedded agent 'ghost'"):
        build("ghost", tmp_path)


def test_build_without_root_raises():
    with pytest.raises(AgentImageError, match="no embedded agent"):
        build("claude")


def test_build_copies_files_and_sets_modes(agent_root):
    fake = FakeDocker()
    with patch.object(agentimage.subprocess, "run", fake):
        result = build("claude", agent_root)
    assert result is None
    assert fake.calls[0][:4] == ["docker", "build", "-t", "ghcr.io/pylonto/agent-claude"]
    assert fake.built_files["Dockerfile"] == (b"FROM scratch\n", 0o644)
    assert fake.built_files["entrypoint.sh"][1] == 0o755
    # The temporary build context is removed afterwards.
    assert not Path(fake.calls[0][-1]).exists()


def test_build_failure_raises_and_echoes_output(agent_root, capsys):
    fake = FakeDocker(build_rc=1, build_output=b"step 3 failed\n")
    with patch.object(agentimage.subprocess, "run", fake):
        with pytest.raises(AgentImageError, match="docker build failed: exit status 1"):
            build("claude", agent_root)
    assert "step 3 failed" in capsys.readouterr().err


def test_ensure_image_present_does_nothing():
    image = image_name("claude")
    fake = FakeDocker(existing={image})
    with patch.object(agentimage.subprocess, "run", fake):
        ensure_image(image, "claude")
    assert fake.commands() == ["images"]


def test_ensure_image_builds_default_when_pull_fails(agent_root, capsys):
    fake = FakeDocker(pull_ok=False)
    with patch.object(agentimage.subprocess, "run", fake):
        result = ensure_image(image_name("claude"), "claude", agent_root)
    assert result is None
    assert fake.commands() == ["images", "pull", "build"]
    assert "Warning" not in capsys.readouterr().out


def test_ensure_image_custom_image_is_not_built(capsys):
    fake = FakeDocker(pull_ok=False)
    with patch.object(agentimage.subprocess, "run", fake):
        ensure_image("example/custom:1", "claude")
    assert fake.commands() == ["images", "pull"]
    assert "could not pull custom image example/custom:1" in capsys.readouterr().out


def test_ensure_image_reports_build_failure(capsys):
    fake = FakeDocker(pull_ok=False)
    with patch.object(agentimage.subprocess, "run", fake):
        ensure_image(image_name("claude"), "claude")
    out = capsys.readouterr().out
    assert "Warning: no embedded agent 'claude'" in out
    assert "Run manually: docker pull ghcr.io/pylonto/agent-claude" in out


def test_rebuild_only_touches_existing_images(agent_root):
    fake = FakeDocker(existing={image_name("claude")}, pull_ok=True)
    with patch.object(agentimage.subprocess, "run", fake):
        rebuild(agent_root)
    assert fake.calls == [
        ["docker", "images", "ghcr.io/pylonto/agent-claude", "-q"],
        ["docker", "pull", "ghcr.io/pylonto/agent-claude"],
        ["docker", "images", "ghcr.io/pylonto/agent-opencode", "-q"],
    ]


def test_rebuild_falls_back_to_build(agent_root):
    fake = FakeDocker(existing={image_name("claude")}, pull_ok=False)
    with patch.object(agentimage.subprocess, "run", fake):
        rebuild(agent_root)
    assert fake.commands() == ["images", "pull", "build", "images"]
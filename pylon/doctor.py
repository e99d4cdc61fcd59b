"""Health checks for the local installation and for per-pylon channels."""

from __future__ import annotations

import http.client
import os
import re
import socket
import subprocess
import urllib.error
import urllib.request
from dataclasses import dataclass
from enum import Enum
from http import HTTPStatus
from pathlib import Path
from typing import Mapping, Optional, Protocol, Union

from pylon.agentimage import image_name

LINE_WIDTH = 22
SUB_WIDTH = 18
MIN_DOTS = 3

_ENV_REF = re.compile(r"\$\{([^}]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")

# Liveness requests go straight to the local port, never through a proxy.
_OPENER = urllib.request.build_opener(urllib.request.ProxyHandler({}))


class Status(str, Enum):
    """Outcome of a single check as shown in the report."""

    OK = "ok"
    WARN = "WARN"
    FAIL = "FAIL"
    SKIPPED = "--"


@dataclass(frozen=True)
class CheckResult:
    """A row of the report. A ``status`` of None means no row is printed."""

    status: Optional[Status] = None
    detail: str = ""
    label: str = ""


@dataclass
class TelegramChannel:
    """Telegram channel settings of a pylon; tokens may hold ``${VAR}`` references."""

    bot_token: str = ""
    chat_id: int = 0


@dataclass
class SlackChannel:
    """Slack channel settings of a pylon; tokens may hold ``${VAR}`` references."""

    bot_token: str = ""
    app_token: str = ""
    channel_id: str = ""


Channel = Union[TelegramChannel, SlackChannel]


class ChannelProbes(Protocol):
    """Live calls against chat services; each raises an exception on failure."""

    def telegram_get_bot_username(self, token: str) -> str: ...

    def telegram_check_chat_access(self, token: str, chat_id: int) -> None: ...

    def slack_validate_token(self, bot_token: str) -> str: ...

    def slack_check_access(self, bot_token: str, channel_id: str) -> str: ...


def expand_with_env(value: str, env: Optional[Mapping[str, str]] = None) -> str:
    """Expand ``$VAR`` and ``${VAR}`` from ``env``, then the process environment.

    Unknown variables expand to the empty string.
    """
    env = env or {}

    def replace(match: re.Match) -> str:
        name = match.group(1) if match.group(1) is not None else match.group(2)
        if name in env:
            return env[name]
        return os.environ.get(name, "")

    return _ENV_REF.sub(replace, value)


def _unresolved(expanded: str, raw: str) -> bool:
    return expanded == "" or expanded == raw


def _check_telegram(tg: TelegramChannel, env, probes: ChannelProbes) -> CheckResult:
    token = expand_with_env(tg.bot_token, env)
    if _unresolved(token, tg.bot_token):
        return CheckResult(Status.FAIL, "bot token not set", "channel")
    try:
        username = probes.telegram_get_bot_username(token)
    except Exception:  # any probe failure means the token is unusable
        return CheckResult(Status.FAIL, "bot token invalid", "channel")
    if tg.chat_id == -1:
        return CheckResult(
            Status.FAIL, f"telegram @{username}, chat_id not configured", "channel"
        )
    if tg.chat_id == 0:
        return CheckResult(
            Status.WARN,
            f"telegram @{username}, chat_id not set -- will auto-detect on start; "
            f"send /start to @{username}",
            "channel",
        )
    try:
        probes.telegram_check_chat_access(token, tg.chat_id)
    except Exception as exc:
        return CheckResult(
            Status.FAIL, f"telegram @{username}, chat {tg.chat_id}: {exc}", "channel"
        )
    return CheckResult(Status.OK, f"telegram @{username}, chat {tg.chat_id}", "channel")


def _check_slack(sl: SlackChannel, env, probes: ChannelProbes) -> CheckResult:
    bot_token = expand_with_env(sl.bot_token, env)
    if _unresolved(bot_token, sl.bot_token):
        return CheckResult(Status.FAIL, "bot token not set", "channel")
    # Both tokens are needed at runtime; without the app token the channel
    # is dropped and notifications are silently lost.
    app_token = expand_with_env(sl.app_token, env)
    if _unresolved(app_token, sl.app_token):
        return CheckResult(Status.FAIL, "app token not set", "channel")
    try:
        username = probes.slack_validate_token(bot_token)
    except Exception:
        return CheckResult(Status.FAIL, "bot token invalid", "channel")
    try:
        channel_name = probes.slack_check_access(bot_token, sl.channel_id)
    except Exception as exc:
        return CheckResult(
            Status.FAIL, f"slack @{username}, {sl.channel_id}: {exc}", "channel"
        )
    return CheckResult(Status.OK, f"slack @{username}, #{channel_name}", "channel")


def check_channel(
    channel: Optional[Channel],
    env: Optional[Mapping[str, str]],
    probes: ChannelProbes,
) -> CheckResult:
    """Check a pylon's channel against the live service; no channel gives no row."""
    if isinstance(channel, TelegramChannel):
        return _check_telegram(channel, env, probes)
    if isinstance(channel, SlackChannel):
        return _check_slack(channel, env, probes)
    return CheckResult()


def _format(indent: str, width: int, label: str, status, detail: str) -> str:
    status_text = status.value if isinstance(status, Status) else str(status)
    dots = max(width - len(label), MIN_DOTS)
    return f"{indent}{label} {'.' * dots} {status_text:<4}  {detail}"


def format_line(label: str, status, detail: str) -> str:
    """Format a top-level check with a dot leader."""
    return _format("  ", LINE_WIDTH, label, status, detail)


def format_sub(label: str, status, detail: str) -> str:
    """Format a per-pylon sub-check with a dot leader."""
    return _format("    ", SUB_WIDTH, label, status, detail)


def first_non_empty_line(text: str) -> str:
    """Return the first line that is neither blank nor ``<none>``."""
    for line in text.split("\n"):
        line = line.strip()
        if line and line != "<none>":
            return line
    return ""


def _run(args: list, combine: bool = False) -> tuple:
    """Run a command; return (exit code or None if it cannot start, output)."""
    try:
        result = subprocess.run(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if combine else subprocess.DEVNULL,
            text=True,
            check=False,
        )
    except OSError:
        return None, ""
    return result.returncode, result.stdout or ""


def check_docker() -> CheckResult:
    """Check that the Docker daemon answers."""
    code, out = _run(["docker", "version", "--format", "{{.Server.Version}}"])
    if code == 0:
        return CheckResult(Status.OK, f"running (v{out.strip()})", "Docker")
    return CheckResult(Status.FAIL, "not found -- install Docker Engine", "Docker")


def check_agent_image(agent_type: str) -> CheckResult:
    """Check that the default image for ``agent_type`` has been pulled."""
    image = image_name(agent_type)
    code, out = _run(["docker", "images", image, "--format", "{{.Tag}}"])
    if code == 0:
        tag = first_non_empty_line(out)
        if tag and tag != "<none>":
            return CheckResult(Status.OK, f"{image}:{tag}", "Agent image")
    return CheckResult(Status.SKIPPED, f"{image} not pulled", "Agent image")


def check_service() -> CheckResult:
    """Check that the user systemd unit is active."""
    code, _ = _run(["systemctl", "--user", "is-active", "pylon"])
    if code == 0:
        return CheckResult(Status.OK, "systemd unit active", "Service")
    return CheckResult(
        Status.SKIPPED, "not installed (run pylon service install)", "Service"
    )


def check_git_auth() -> CheckResult:
    """Check for a GitHub SSH key or an authenticated gh CLI."""
    code, out = _run(["ssh", "-T", "-l", "git", "github.com"], combine=True)
    if code == 0 or "successfully authenticated" in out:
        return CheckResult(Status.OK, "GitHub SSH key configured", "Git")
    gh_code, _ = _run(["gh", "auth", "status"], combine=True)
    if gh_code == 0:
        return CheckResult(Status.OK, "gh CLI authenticated", "Git")
    return CheckResult(Status.WARN, "no SSH key or gh CLI auth found", "Git")


def check_claude_session(home: Union[str, Path, None] = None) -> CheckResult:
    """Check for a Claude OAuth session directory under ``home``."""
    base = Path(home) if home is not None else Path.home()
    claude_dir = base / ".claude"
    if claude_dir.exists():
        return CheckResult(Status.OK, f"{claude_dir} found", "OAuth session")
    return CheckResult(Status.SKIPPED, "~/.claude not found", "OAuth session")


def _ping_status(port: int) -> Optional[int]:
    url = f"http://localhost:{port}/callback/doctor-ping"
    try:
        with _OPENER.open(url, timeout=5) as response:
            return response.status
    except urllib.error.HTTPError as exc:
        exc.close()
        return exc.code
    except (OSError, http.client.HTTPException):
        return None


def check_port(port: int) -> CheckResult:
    """Check whether the daemon port is free, held by pylon, or held by something else."""
    label = f"Port {port}"
    try:
        listener = socket.create_server(("", port))
    except OSError:
        pass
    else:
        listener.close()
        return CheckResult(Status.OK, "available", label)
    code = _ping_status(port)
    if code is None:
        return CheckResult(Status.WARN, "in use", label)
    if code == HTTPStatus.METHOD_NOT_ALLOWED:
        return CheckResult(Status.OK, "pylon is running", label)
    return CheckResult(Status.WARN, "in use (not by pylon)", label)
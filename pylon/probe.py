"""Probing and controlling a running daemon: liveness checks, listeners, systemd."""

from __future__ import annotations

import http.client
import socket
import subprocess
import time
import urllib.error
import urllib.request
from http import HTTPStatus

DEFAULT_TIMEOUT = 2.0
PING_PATH = "/callback/doctor-ping"

# Probes talk to the local daemon directly, never through a proxy.
_OPENER = urllib.request.build_opener(urllib.request.ProxyHandler({}))


class DaemonControlError(RuntimeError):
    """Raised when the daemon cannot be controlled through systemd."""


def loopback_host(host: str) -> str:
    """Rewrite a bind-only address (empty or 0.0.0.0) to the loopback IP."""
    if host in ("", "0.0.0.0"):
        return "127.0.0.1"
    return host


def _url_host(host: str) -> str:
    host = loopback_host(host)
    if ":" in host and not host.startswith("["):
        return f"[{host}]"
    return host


def daemon_running(host: str, port: int, timeout: float = DEFAULT_TIMEOUT) -> bool:
    """Return True if a daemon answers on host:port.

    The daemon's callback endpoint accepts only POST, so a GET is answered
    with 405 -- a reply an unrelated server is unlikely to give.
    """
    url = f"http://{_url_host(host)}:{port}{PING_PATH}"
    try:
        with _OPENER.open(url, timeout=timeout) as response:
            return response.status == HTTPStatus.METHOD_NOT_ALLOWED
    except urllib.error.HTTPError as exc:
        exc.close()
        return exc.code == HTTPStatus.METHOD_NOT_ALLOWED
    except (OSError, http.client.HTTPException):
        return False


def open_listener(addr: str) -> socket.socket:
    """Bind and listen on a ``host:port`` TCP address; raises OSError if it is taken."""
    host, sep, port_text = addr.rpartition(":")
    if not sep or not (port_text.isascii() and port_text.isdigit()):
        raise ValueError(f"invalid listen address {addr!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    return socket.create_server((host, int(port_text)), family=family)


def _systemctl(*args: str) -> subprocess.CompletedProcess | None:
    try:
        return subprocess.run(
            ["systemctl", *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
        )
    except OSError:
        return None


def _succeeded(result: subprocess.CompletedProcess | None) -> bool:
    return result is not None and result.returncode == 0


def systemd_unit_active() -> bool:
    """Return True if the ``pylon`` unit is active in user or system scope."""
    if _succeeded(_systemctl("--user", "is-active", "--quiet", "pylon")):
        return True
    return _succeeded(_systemctl("is-active", "--quiet", "pylon"))


def _failure(command: str, result: subprocess.CompletedProcess | None) -> DaemonControlError:
    if result is None:
        return DaemonControlError(f"{command}: systemctl not found")
    output = (result.stdout or "").strip()
    return DaemonControlError(f"{command}: exit status {result.returncode}: {output}")


def systemctl_restart() -> None:
    """Restart the ``pylon`` unit.

    The user unit is tried first; the system unit is used only when the user
    unit is not installed. Any other user-scope failure is raised as is.
    """
    user = _systemctl("--user", "restart", "pylon")
    if _succeeded(user):
        return
    output = user.stdout or "" if user is not None else ""
    if "not loaded" not in output and "could not be found" not in output:
        raise _failure("systemctl --user restart pylon", user)
    system = _systemctl("restart", "pylon")
    if not _succeeded(system):
        raise _failure("systemctl restart pylon", system)


def wait_for_daemon(
    host: str, port: int, deadline: float = 10.0, interval: float = 0.2
) -> bool:
    """Poll until the daemon answers or ``deadline`` seconds pass."""
    end = time.monotonic() + deadline
    while True:
        remaining = end - time.monotonic()
        if remaining <= 0:
            return False
        if daemon_running(host, port, timeout=min(DEFAULT_TIMEOUT, remaining)):
            return True
        time.sleep(min(interval, max(end - time.monotonic(), 0)))
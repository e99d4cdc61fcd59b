"""Installing and managing the systemd unit that runs the daemon."""

from __future__ import annotations

import getpass
import os
import shutil
import subprocess
from pathlib import Path
from typing import Optional

DEFAULT_BIN_PATH = "/usr/local/bin/pylon"
SYSTEM_UNIT_PATH = Path("/etc/systemd/system/pylon.service")
UNIT_NAME = "pylon.service"


class ServiceError(RuntimeError):
    """Raised when the unit file cannot be written."""


def render_user_unit(bin_path: str, home: str) -> str:
    """Return the unit file for a user-level service."""
    return (
        "[Unit]\n"
        "Description=Pylon Agent Daemon\n"
        "After=network-online.target\n"
        "\n"
        "[Service]\n"
        "Type=simple\n"
        f"ExecStart={bin_path} start\n"
        "Restart=on-failure\n"
        "RestartSec=5\n"
        f"Environment=HOME={home}\n"
        "\n"
        "[Install]\n"
        "WantedBy=default.target\n"
    )


def render_system_unit(bin_path: str, home: str, username: str) -> str:
    """Return the unit file for a system-level service run as ``username``."""
    return (
        "[Unit]\n"
        "Description=Pylon Agent Daemon\n"
        "After=network-online.target\n"
        "\n"
        "[Service]\n"
        "Type=simple\n"
        f"User={username}\n"
        f"ExecStart={bin_path} start\n"
        "Restart=on-failure\n"
        "RestartSec=5\n"
        f"Environment=HOME={home}\n"
        "\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
    )


def _user_unit_path() -> Path:
    return Path.home() / ".config" / "systemd" / "user" / UNIT_NAME


def _systemctl(*args: str) -> int:
    try:
        return subprocess.run(["systemctl", *args], check=False).returncode
    except OSError:
        return -1


def _write_unit(path: Path, text: str) -> None:
    try:
        path.write_text(text)
        path.chmod(0o644)
    except OSError as exc:
        raise ServiceError(f"writing unit file: {exc}") from exc


def install() -> Path:
    """Write and enable the unit file; user-level unless running as root.

    Returns the path of the unit file written.
    """
    bin_path = shutil.which("pylon") or DEFAULT_BIN_PATH
    home = str(Path.home())

    if os.geteuid() != 0:
        unit_path = _user_unit_path()
        unit_path.parent.mkdir(parents=True, exist_ok=True)
        _write_unit(unit_path, render_user_unit(bin_path, home))
        _systemctl("--user", "daemon-reload")
        _systemctl("--user", "enable", "pylon")
        print(f"Installed user service: {unit_path}")
        print("Start with: systemctl --user start pylon")
        return unit_path

    unit_path = SYSTEM_UNIT_PATH
    _write_unit(unit_path, render_system_unit(bin_path, home, getpass.getuser()))
    _systemctl("daemon-reload")
    _systemctl("enable", "pylon")
    print(f"Installed system service: {unit_path}")
    print("Start with: systemctl start pylon")
    return unit_path


def uninstall() -> Optional[Path]:
    """Stop, disable and remove the first unit file found; return its path."""
    for path in (SYSTEM_UNIT_PATH, _user_unit_path()):
        if path.exists():
            _systemctl("stop", "pylon")
            _systemctl("disable", "pylon")
            try:
                path.unlink()
            except OSError:
                pass
            _systemctl("daemon-reload")
            print(f"Removed: {path}")
            return path
    print("No pylon service found.")
    return None


def status() -> int:
    """Show the unit status, trying system scope then user scope; return the exit code."""
    code = _systemctl("status", "pylon")
    if code != 0:
        code = _systemctl("--user", "status", "pylon")
    return code
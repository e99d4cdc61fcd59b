"""Command-line entry point."""

from __future__ import annotations

import argparse
import os
import sys
from importlib.metadata import PackageNotFoundError, version as _dist_version
from typing import Callable, Iterable, Optional, Sequence

from pylon import agentimage, doctor, jobs, service, upgrade
from pylon.doctor import CheckResult, Status

try:
    VERSION = _dist_version("pylon")
except PackageNotFoundError:
    VERSION = "dev"

_HANDLED_ERRORS = (
    jobs.DockerCommandError,
    service.ServiceError,
    upgrade.UpgradeError,
    agentimage.AgentImageError,
    OSError,
)

_MESSAGES = {
    "version": f"pylon {VERSION}",
    "retry": (
        "Retry is available when the daemon is running. "
        "Use the Telegram UI or re-trigger the webhook."
    ),
    "stop": "Send SIGTERM to the running pylon process.",
    "restart": "Stop and re-run `pylon start`.",
}


def _cmd_message(args: argparse.Namespace) -> int:
    """Print the fixed message attached to an informational command."""
    message = _MESSAGES.get(args.command)
    if message is None:
        raise ValueError(f"no message for command {args.command!r}")
    print(message)
    return 0


def _cmd_logs(args: argparse.Namespace) -> int:
    jobs.docker_logs(args.job_id)
    return 0


def _cmd_attach(args: argparse.Namespace) -> int:
    jobs.attach(args.job_id)
    return 0


def _cmd_kill(args: argparse.Namespace) -> int:
    jobs.kill(args.job_id)
    return 0


def _cmd_service_install(args: argparse.Namespace) -> int:
    service.install()
    return 0


def _cmd_service_uninstall(args: argparse.Namespace) -> int:
    service.uninstall()
    return 0


def _cmd_service_status(args: argparse.Namespace) -> int:
    service.status()
    return 0


def _cmd_upgrade(args: argparse.Namespace) -> int:
    upgrade.upgrade(VERSION)
    return 0


def _cmd_rebuild_images(args: argparse.Namespace) -> int:
    agentimage.rebuild(args.agent_root)
    return 0


def _cmd_doctor(args: argparse.Namespace) -> int:
    print("\nPylon Doctor")
    sections: list[tuple[str, Iterable[Callable[[], CheckResult]]]] = [
        (
            "System",
            (
                doctor.check_docker,
                lambda: doctor.check_agent_image(args.agent),
                doctor.check_service,
            ),
        ),
        (
            "Auth",
            (doctor.check_git_auth,)
            + ((doctor.check_claude_session,) if args.agent == "claude" else ()),
        ),
    ]
    if args.port is not None:
        sections.append(("Network", (lambda: doctor.check_port(args.port),)))

    issues = recommendations = 0
    for title, checks in sections:
        print(f"\n{title}")
        for check in checks:
            result = check()
            print(doctor.format_line(result.label, result.status, result.detail))
            if result.status is Status.FAIL:
                issues += 1
            elif result.status in (Status.WARN, Status.SKIPPED):
                recommendations += 1

    print()
    if issues:
        print(f"{issues} issue(s) found.")
    elif recommendations:
        print(f"All checks passed. ({recommendations} recommendation(s))")
    else:
        print("All checks passed.")
    print()
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all commands."""
    parser = argparse.ArgumentParser(
        prog="pylon",
        description=(
            "Pylon -- power your AI coding agents. Self-hosted daemon that listens "
            "for events, spins up sandboxed agents, and reports results back to chat."
        ),
    )
    commands = parser.add_subparsers(dest="command", metavar="<command>")

    def add(name: str, help_text: str, handler) -> argparse.ArgumentParser:
        sub = commands.add_parser(name, help=help_text, description=help_text)
        sub.set_defaults(handler=handler)
        return sub

    add("version", "Print the version", _cmd_message)

    for name, help_text, handler in (
        ("logs", "Show logs for a job", _cmd_logs),
        ("attach", "Exec into a running agent container", _cmd_attach),
        ("retry", "Re-run a failed job", _cmd_message),
        ("kill", "Kill a running job", _cmd_kill),
    ):
        add(name, help_text, handler).add_argument("job_id", metavar="job-id")

    add("stop", "Stop the Pylon daemon", _cmd_message)
    add("restart", "Restart the Pylon daemon", _cmd_message)

    doctor_parser = add("doctor", "Check dependencies and health", _cmd_doctor)
    doctor_parser.add_argument(
        "--agent", default="claude", help="agent type whose image and auth to check"
    )
    doctor_parser.add_argument("--port", type=int, help="daemon port to check")

    service_parser = commands.add_parser("service", help="Manage systemd service")
    service_parser.set_defaults(handler=None, parser=service_parser)
    service_commands = service_parser.add_subparsers(dest="service_command")
    for name, help_text, handler in (
        ("install", "Install systemd unit file", _cmd_service_install),
        ("uninstall", "Remove systemd unit file", _cmd_service_uninstall),
        ("status", "Check systemd service status", _cmd_service_status),
    ):
        service_commands.add_parser(name, help=help_text).set_defaults(handler=handler)

    add("upgrade", "Upgrade pylon to the latest version", _cmd_upgrade)

    rebuild_parser = commands.add_parser("rebuild-images")
    rebuild_parser.set_defaults(handler=_cmd_rebuild_images)
    rebuild_parser.add_argument(
        "--agent-root",
        default=os.environ.get("PYLON_AGENT_DIR"),
        help="directory holding one build context per agent type",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line; return the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    handler = getattr(args, "handler", None)
    if handler is None:
        getattr(args, "parser", parser).print_help()
        return 0
    try:
        return handler(args)
    except _HANDLED_ERRORS as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
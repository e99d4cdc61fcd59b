# pylon

Command-line tools for maintaining a self-hosted setup in which coding
agents run in Docker containers: health checks, agent image management,
job container control, a systemd unit, and self-upgrade. It uses only the
Python standard library, plus the `docker`, `systemctl`, `ssh`, `gh` and
`curl` programs where a command needs them.

## Installation

```
pip install .
```

## Commands

Everything goes through the `pylon` command:

```
pylon version                 # print the installed version
pylon doctor                  # check Docker, the agent image, the service and git auth
pylon doctor --agent opencode # check the image for another agent type
pylon doctor --port 8080      # also check whether the daemon port is free or held by pylon
pylon logs <job-id>           # follow the logs of the container labelled with the job id
pylon attach <job-id>         # open /bin/sh in a running agent container
pylon kill <job-id>           # docker kill the container
pylon service install         # write and enable a systemd unit (user-level unless root)
pylon service uninstall       # stop, disable and remove the unit
pylon service status          # show the unit's status (system scope, then user scope)
pylon upgrade                 # download the latest release, verify it and replace this binary
pylon rebuild-images          # refresh agent images already present locally
```

`pylon doctor` prints one dotted line per check, then either the number of
issues found or "All checks passed." with a count of recommendations. The
Claude session check (`~/.claude`) runs only for `--agent claude`, the
default.

`pylon rebuild-images` pulls each of the `claude` and `opencode` images that
exists locally; when a pull fails it builds the image from
`<agent-root>/<agent-type>/`, where the agent root comes from
`--agent-root` or the `PYLON_AGENT_DIR` environment variable.

`pylon upgrade` downloads from the address in the `PYLON_RELEASE_URL`
environment variable; the built-in default is a placeholder, so set it to
wherever your release assets are published. The asset is named
`pylon-<os>-<arch>` (for example `pylon-linux-amd64`). After replacing the
binary it runs `rebuild-images` with the new one and restarts an active user
unit.

`pylon retry`, `pylon stop` and `pylon restart` only print how to do that
by other means.

## Library use

- `pylon.agentimage`: `image_name`, `image_exists`, `pull`, `build`,
  `rebuild` and `ensure_image`; `build` raises `AgentImageError`.
- `pylon.cron_describe.describe_cron` turns a five-field cron expression into
  English and returns the expression unchanged when it cannot be parsed.
- `pylon.probe`: `loopback_host`, `daemon_running` (a GET to
  `/callback/doctor-ping` answered with 405), `open_listener`,
  `systemd_unit_active`, `systemctl_restart` (raises `DaemonControlError`)
  and `wait_for_daemon`.
- `pylon.doctor`: the individual checks (`check_docker`,
  `check_agent_image`, `check_service`, `check_git_auth`,
  `check_claude_session`, `check_port`), each returning a `CheckResult` with
  a `Status`; `check_channel` checks a `TelegramChannel` or `SlackChannel`
  through any object providing the `ChannelProbes` methods; `expand_with_env`,
  `format_line`, `format_sub` and `first_non_empty_line`.
- `pylon.jobs`: `time_ago`, `find_job_container`, `docker_logs`, `attach`
  and `kill`; docker failures raise `DockerCommandError`.
- `pylon.service`: `render_user_unit`, `render_system_unit`, `install`,
  `uninstall` and `status`.
- `pylon.upgrade`: `release_binary_name`, `release_url` and `upgrade`.

```python
from pylon.cron_describe import describe_cron
from pylon.probe import loopback_host

describe_cron("*/5 * * * *")   # 'Every 5 minutes'
describe_cron("invalid")       # 'invalid'
loopback_host("0.0.0.0")       # '127.0.0.1'
```

## What this package does not do

It does not contain the daemon itself: there is no `start` command, no HTTP
server receiving webhooks, no cron scheduler and no chat bots. It has no
pylon configuration files or commands to create, list, edit, test or
destroy pylons, no job database and therefore no job listing, and no
interactive dashboard or setup wizard. `pylon doctor` checks the local
system only; channel checks are available through `check_channel` with
probes you supply, and no Telegram or Slack client is included.

## Running the tests

```
pip install ".[test]"
pytest
```
[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pylon"
version = "0.1.0"
description = "Command-line maintenance tools for a self-hosted daemon that runs sandboxed AI coding agents in Docker"
requires-python = ">=3.10"
keywords = ["agents", "docker", "systemd", "cron", "health-check"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
pylon = "pylon.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["pylon"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

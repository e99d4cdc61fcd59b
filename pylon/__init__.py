"""Maintenance tools for a daemon that runs coding agents in Docker: health checks, images, jobs, service, upgrade."""

__version__ = "0.1.0"
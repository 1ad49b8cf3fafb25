"""Exception hierarchy for the container telemetry collector."""

from __future__ import annotations


class TelemetryError(Exception):
    """Base class for all collector errors."""


class FilterConfigError(TelemetryError, ValueError):
    """A whitelist/blacklist pattern could not be compiled."""


class RuntimeUnavailableError(TelemetryError):
    """The container runtime is not available on this host."""


class CollectionError(TelemetryError):
    """A whole collection cycle failed (processes, containers or CPU times unreadable)."""


class CgroupReadError(TelemetryError, OSError):
    """Reading a single cgroup statistic failed."""

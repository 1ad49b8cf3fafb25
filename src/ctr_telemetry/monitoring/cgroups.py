"""cgroups v2 reader for per-container kernel accounting.

Maps host process ids to container cgroups and reads statistics directly from
the unified hierarchy, without going through the runtime API.

Metrics sourced:
- cpu.max: CPU quota (limit)
- memory.max: memory limit
- cpu.stat: user_usec, system_usec (CPU time)
- memory.current, memory.stat, memory.swap.current: memory usage
- io.stat: rbytes, wbytes, rios, wios (I/O bytes and operations)
- cgroup.procs: live pid set
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

import psutil

from ctr_telemetry.core.constants import (
    CLOCK_TICKS_PER_SECOND,
    DEFAULT_CGROUP_ROOT,
    DEFAULT_HOST_PROC,
)
from ctr_telemetry.core.errors import CgroupReadError
from ctr_telemetry.monitoring.base import CgroupIOStat, CgroupMemStat, CgroupTimesStat

logger = logging.getLogger(__name__)

# docker-<id>.scope (systemd driver) or docker/<id> (cgroupfs driver)
_CONTAINER_ID_RE = re.compile(r"(?:^|[/-])([0-9a-f]{64})(?:\.scope)?$")

_IO_FIELDS_RE = re.compile(r"(rbytes|wbytes|rios|wios)=(\d+)")


def parse_proc_cgroup(content: str) -> str | None:
    """Return the unified-hierarchy path from a ``/proc/<pid>/cgroup`` file.

    Format (cgroups v2):
        0::/system.slice/docker-<id>.scope
    """
    for line in content.splitlines():
        parts = line.split(":", 2)
        if len(parts) == 3 and parts[0] == "0":
            return parts[2]
    return None


def container_id_from_path(cgroup_path: str) -> str | None:
    """Extract a 64-hex container id from a cgroup path, if any."""
    match = _CONTAINER_ID_RE.search(cgroup_path.rstrip("/"))
    return match.group(1) if match else None


class ContainerCgroup:
    """Handle on one container's cgroup directory.

    Every read is independent and raises ``CgroupReadError`` on failure so the
    caller can drop just this container.
    """

    def __init__(self, container_id: str, path: Path, pids: list[int] | None = None) -> None:
        self.container_id = container_id
        self.path = path
        self.pids: list[int] = sorted(pids or [])

    def __repr__(self) -> str:
        return f"ContainerCgroup({self.container_id[:12]}, {self.path})"

    def _read(self, name: str) -> str:
        try:
            return (self.path / name).read_text()
        except OSError as e:
            raise CgroupReadError(f"{name} for {self.container_id[:12]}: {e}") from e

    def _read_keyed(self, name: str) -> dict[str, int]:
        """Read a flat ``key value`` file such as cpu.stat or memory.stat."""
        result: dict[str, int] = {}
        for line in self._read(name).strip().split("\n"):
            parts = line.split()
            if len(parts) == 2:
                try:
                    result[parts[0]] = int(parts[1])
                except ValueError:
                    continue
        return result

    def cpu_limit(self) -> float:
        """CPU limit as a percentage of one CPU (unlimited = 100 x logical CPUs).

        Format of cpu.max:
            max 100000
            50000 100000
        """
        fields = self._read("cpu.max").split()
        if not fields or fields[0] == "max":
            return 100.0 * (psutil.cpu_count(logical=True) or 1)
        try:
            quota = int(fields[0])
            period = int(fields[1]) if len(fields) > 1 else 100000
        except ValueError as e:
            raise CgroupReadError(f"cpu.max for {self.container_id[:12]}: {e}") from e
        if period <= 0:
            raise CgroupReadError(f"cpu.max for {self.container_id[:12]}: invalid period {period}")
        return quota / period * 100.0

    def mem_limit(self) -> int:
        """Memory limit in bytes (0 when unlimited)."""
        value = self._read("memory.max").strip()
        if value == "max":
            return 0
        try:
            return int(value)
        except ValueError as e:
            raise CgroupReadError(f"memory.max for {self.container_id[:12]}: {e}") from e

    def cpu(self) -> CgroupTimesStat:
        """Cumulative user/system CPU time in clock ticks.

        Format of cpu.stat:
            usage_usec 123456
            user_usec 100000
            system_usec 23456
        """
        stat = self._read_keyed("cpu.stat")
        return CgroupTimesStat(
            user=stat.get("user_usec", 0) * CLOCK_TICKS_PER_SECOND // 1_000_000,
            system=stat.get("system_usec", 0) * CLOCK_TICKS_PER_SECOND // 1_000_000,
        )

    def mem(self) -> CgroupMemStat:
        """Current memory usage."""
        try:
            usage = int(self._read("memory.current").strip())
        except ValueError as e:
            raise CgroupReadError(f"memory.current for {self.container_id[:12]}: {e}") from e
        stat = self._read_keyed("memory.stat")
        try:
            swap = int(self._read("memory.swap.current").strip())
        except (CgroupReadError, ValueError):
            # Swap accounting is frequently disabled
            swap = 0
        return CgroupMemStat(
            rss=stat.get("anon", 0),
            cache=stat.get("file", 0),
            swap=swap,
            usage=usage,
        )

    def io(self) -> CgroupIOStat:
        """Block I/O counters summed over devices.

        Format of io.stat (per device):
            8:0 rbytes=12345 wbytes=67890 rios=100 wios=50 dbytes=0 dios=0
        """
        totals = {"rbytes": 0, "wbytes": 0, "rios": 0, "wios": 0}
        for line in self._read("io.stat").strip().split("\n"):
            for key, value in _IO_FIELDS_RE.findall(line):
                totals[key] += int(value)
        return CgroupIOStat(
            read_bytes=totals["rbytes"],
            write_bytes=totals["wbytes"],
            read_ops=totals["rios"],
            write_ops=totals["wios"],
        )

    def start_time(self) -> int:
        """Container start time as a unix timestamp (earliest process creation)."""
        times: list[float] = []
        for pid in self.pids:
            try:
                times.append(psutil.Process(pid).create_time())
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        if not times:
            raise CgroupReadError(f"no live process for container {self.container_id[:12]}")
        return int(min(times))


class CgroupV2Reader:
    """Finds container cgroups for a set of host processes.

    Requires cgroups v2 mounted at ``cgroup_root`` (unified hierarchy).
    """

    def __init__(
        self,
        cgroup_root: Path = Path(DEFAULT_CGROUP_ROOT),
        host_proc: Path = Path(DEFAULT_HOST_PROC),
    ) -> None:
        self.cgroup_root = Path(cgroup_root)
        self.host_proc = Path(host_proc)

    def is_available(self) -> bool:
        """Check if cgroups v2 is available on this system."""
        controllers_file = self.cgroup_root / "cgroup.controllers"
        try:
            controllers_file.read_text()
            return True
        except OSError:
            return False

    def cgroups_for_pids(self, pids: Iterable[int]) -> dict[str, ContainerCgroup]:
        """Group processes by the container cgroup they belong to.

        Processes outside any container cgroup, or that exited while being
        inspected, are skipped.
        """
        by_container: dict[str, ContainerCgroup] = {}
        for pid in pids:
            try:
                content = (self.host_proc / str(pid) / "cgroup").read_text()
            except OSError:
                continue
            rel_path = parse_proc_cgroup(content)
            if rel_path is None:
                continue
            container_id = container_id_from_path(rel_path)
            if container_id is None:
                continue
            cgroup = by_container.get(container_id)
            if cgroup is None:
                cgroup = ContainerCgroup(container_id, self.cgroup_root / rel_path.lstrip("/"))
                by_container[container_id] = cgroup
            cgroup.pids.append(pid)

        for cgroup in by_container.values():
            cgroup.pids.sort()
        logger.debug(f"Found {len(by_container)} container cgroups")
        return by_container

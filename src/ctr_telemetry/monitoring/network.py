"""Per-container network topology and interface counters from procfs.

Docker reports logical networks (``bridge``, user-defined networks) with their
gateways, while the kernel only knows interface names inside the container's
network namespace. Interfaces are matched to networks by checking which
namespace routes cover each network gateway; counters are then read from the
namespace's ``net/dev`` table for the matched interfaces only.
"""

from __future__ import annotations

import ipaddress
import logging
import sys
from pathlib import Path
from typing import Any, NamedTuple

from ctr_telemetry.monitoring.base import NetworkStat, NetworkStatus

logger = logging.getLogger(__name__)


class NetworkInterfaceMapping(NamedTuple):
    """A kernel interface inside a container and the logical network it serves."""

    iface: str
    network: str


# Metrics for containers sharing the host namespace describe the whole host.
HOST_NETWORK = NetworkInterfaceMapping("eth0", "bridge")


def proc_path(host_proc: Path, pid: int, *parts: str) -> Path:
    """Build a path under the (possibly remapped) host proc mount."""
    return Path(host_proc, str(pid), *parts)


def parse_gateway(gateway: str) -> int:
    """Convert an IPv4 gateway (bare or CIDR form) to a big-endian integer.

    Raises:
        ValueError: If the gateway is not a valid IPv4 address
    """
    if "/" in gateway:
        ip = ipaddress.ip_interface(gateway).ip
    else:
        ip = ipaddress.ip_address(gateway)
    if ip.version != 4:
        raise ValueError(f"{gateway} is not an IPv4 address")
    return int(ip)


def parse_route_hex(field: str) -> int:
    """Decode a ``net/route`` address field to a big-endian integer.

    The kernel prints the raw network-order word in host byte order.
    """
    return int.from_bytes(bytes.fromhex(field), sys.byteorder)


def _counter(field: str) -> int:
    try:
        return int(field)
    except ValueError:
        return 0


def _read_lines(path: Path) -> list[str] | None:
    if not path.exists():
        return None
    try:
        return path.read_text().splitlines()
    except OSError as e:
        logger.debug(f"Unable to read {path}: {e}")
        return None


def find_networks(
    container_id: str,
    pid: int,
    network_settings: dict[str, Any] | None,
    host_proc: Path,
) -> list[NetworkInterfaceMapping]:
    """Map a container's kernel interfaces to its logical network names.

    Args:
        container_id: Container ID (for logging)
        pid: Any pid inside the container's network namespace
        network_settings: ``NetworkSettings`` from the container listing
        host_proc: Root of the proc filesystem

    Returns:
        Mappings sorted by network name; ``[HOST_NETWORK]`` for host-mode
        containers; empty if the route table cannot be read
    """
    networks = (network_settings or {}).get("Networks")
    if networks is None:
        logger.debug("No network settings available from docker, defaulting to host network")
        return [HOST_NETWORK]

    gateways: dict[str, int] = {}
    for name, conf in networks.items():
        gateway = (conf or {}).get("Gateway") or ""
        if name == "host" or gateway == "":
            logger.debug(
                f"Empty network gateway, container {container_id} is in network host mode, "
                "its network metrics are for the whole host"
            )
            return [HOST_NETWORK]
        try:
            gateways[name] = parse_gateway(gateway)
        except ValueError as e:
            logger.warning(f"Invalid gateway {gateway} for container id {container_id}: {e}, skipping")

    route_file = proc_path(host_proc, pid, "net", "route")
    lines = _read_lines(route_file)
    if lines is None:
        logger.debug(f"Missing {route_file} for container {container_id}")
        return []
    if not lines:
        logger.error(f"Empty network file, unable to get docker networks: {route_file}")
        return []

    # Iface Destination Gateway Flags RefCnt Use Metric Mask MTU Window IRTT
    mappings: list[NetworkInterfaceMapping] = []
    for line in lines[1:]:
        fields = line.split()
        if len(fields) < 8:
            continue
        if fields[1] == "00000000":
            continue
        try:
            dest = parse_route_hex(fields[1])
            mask = parse_route_hex(fields[7])
        except ValueError:
            continue
        for name, gateway in gateways.items():
            if gateway & mask == dest:
                mappings.append(NetworkInterfaceMapping(fields[0], name))

    mappings.sort(key=lambda m: m.network)
    return mappings


def collect_network_stats(
    container_id: str,
    pid: int,
    mappings: list[NetworkInterfaceMapping],
    host_proc: Path,
) -> NetworkStat:
    """Sum interface counters for the interfaces in ``mappings``.

    A missing or unreadable ``net/dev`` yields a zero ``NetworkStat`` with
    status ``UNAVAILABLE``. A counter that is not a number counts as 0.
    """
    dev_file = proc_path(host_proc, pid, "net", "dev")
    lines = _read_lines(dev_file)
    if lines is None:
        logger.debug(f"Unable to read {dev_file} for container {container_id}")
        return NetworkStat()
    if len(lines) < 2:
        logger.debug(f"Invalid format for {dev_file}")
        return NetworkStat()

    ifaces = {m.iface for m in mappings}

    # Inter-|   Receive                                                |  Transmit
    #  face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets ...
    #   eth0:    1296      16    0    0    0     0          0         0        0       0 ...
    stat = NetworkStat(status=NetworkStatus.AVAILABLE)
    for line in lines[2:]:
        # "eth0:1296" is valid when the counter is wide
        fields = line.replace(":", ": ", 1).split()
        if len(fields) < 11:
            continue
        iface = fields[0].rstrip(":")
        if iface not in ifaces:
            continue
        stat.bytes_rcvd += _counter(fields[1])
        stat.packets_rcvd += _counter(fields[2])
        stat.bytes_sent += _counter(fields[9])
        stat.packets_sent += _counter(fields[10])
    return stat

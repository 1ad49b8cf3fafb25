"""Docker runtime adapter.

Lists running containers through the Docker API and turns them into
``CorrelatedBase`` records:

- Image references are resolved to repository names (cached)
- Health is parsed from the free-text status string
- Whitelist/blacklist filtering is applied
- Network namespaces are resolved once per container (cached)

Stale cache entries are pruned on a fixed interval.
"""

from __future__ import annotations

import logging
import os
import re
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import docker
from docker.errors import NotFound

from ctr_telemetry.core.constants import (
    DEFAULT_DOCKER_SOCKET,
    DEFAULT_HOST_PROC,
    DEFAULT_INVALIDATION_INTERVAL,
    DOCKER_RUNTIME_TYPE,
)
from ctr_telemetry.core.errors import CollectionError, RuntimeUnavailableError
from ctr_telemetry.monitoring.base import CorrelatedBase
from ctr_telemetry.monitoring.filters import ContainerFilter
from ctr_telemetry.monitoring.images import DOCKER_API_ERRORS, ImageNameResolver
from ctr_telemetry.monitoring.network import NetworkInterfaceMapping, find_networks

logger = logging.getLogger(__name__)

_HEALTH_RE = re.compile(r"\(health: (\w+)\)")


def parse_health(status: str) -> str:
    """Parse the health out of a container status.

    The format is either:
        - 'Up 5 seconds (health: starting)'
        - 'Up about an hour'
    """
    # Most statuses carry no health check at all
    if "(" not in status:
        return ""
    match = _HEALTH_RE.search(status)
    return match.group(1) if match else ""


def connect_to_docker(
    socket_path: Path | str = DEFAULT_DOCKER_SOCKET,
    mounts_file: Path | str = "/proc/mounts",
) -> Any:
    """Connect to the local Docker daemon.

    Returns:
        Low-level ``docker.APIClient`` negotiated to the server API version

    Raises:
        RuntimeUnavailableError: If the socket or mounts file is missing, or
            the daemon does not answer
    """
    if not os.environ.get("DOCKER_HOST") and not Path(socket_path).exists():
        raise RuntimeUnavailableError(f"docker not available: no socket at {socket_path}")
    # /proc/mounts is missing on non-Linux systems, which are not supported
    if not Path(mounts_file).exists():
        raise RuntimeUnavailableError(f"docker not available: missing {mounts_file}")

    try:
        if os.environ.get("DOCKER_HOST"):
            client = docker.from_env(version="auto")
        else:
            client = docker.DockerClient(base_url=f"unix://{socket_path}", version="auto")
        client.ping()
    except DOCKER_API_ERRORS as e:
        raise RuntimeUnavailableError(f"unable to connect to docker: {e}") from e
    return client.api


class DockerRuntimeAdapter:
    """Discovers containers from the Docker API.

    Example:
        ```python
        adapter = DockerRuntimeAdapter(
            connect_to_docker(),
            ContainerFilter.from_lists(["name:keep"], ["image:nginx.*"]),
        )
        for base in adapter.list_containers():
            print(base.name, base.image, adapter.network_mappings(base.id))
        ```
    """

    def __init__(
        self,
        client: Any,
        container_filter: ContainerFilter | None = None,
        collect_network: bool = True,
        host_proc: Path = Path(DEFAULT_HOST_PROC),
        invalidation_interval: float = DEFAULT_INVALIDATION_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the adapter.

        Args:
            client: Docker low-level API client
            container_filter: Whitelist/blacklist filter (default: include everything)
            collect_network: Resolve network interface mappings for new containers
            host_proc: Root of the proc filesystem
            invalidation_interval: Seconds between cache prunes
            clock: Monotonic time source
        """
        self._client = client
        self._filter = container_filter or ContainerFilter()
        self._collect_network = collect_network
        self._host_proc = Path(host_proc)
        self._invalidation_interval = invalidation_interval
        self._clock = clock
        self._last_invalidate = clock()
        self.images = ImageNameResolver(client)
        self._network_mappings: dict[str, list[NetworkInterfaceMapping]] = {}
        self._network_lock = threading.Lock()

    @property
    def collect_network(self) -> bool:
        return self._collect_network

    def hostname(self) -> str:
        """Name of the Docker host as reported by the daemon."""
        try:
            return self._client.info()["Name"]
        except DOCKER_API_ERRORS as e:
            raise RuntimeUnavailableError(f"unable to get Docker info: {e}") from e

    def network_mappings(self, container_id: str) -> list[NetworkInterfaceMapping] | None:
        """Cached interface mappings for a container, or None if never resolved."""
        with self._network_lock:
            return self._network_mappings.get(container_id)

    def list_containers(self) -> list[CorrelatedBase]:
        """List running containers as base records.

        Raises:
            CollectionError: If the Docker API cannot list containers
        """
        try:
            containers = self._client.containers()
        except DOCKER_API_ERRORS as e:
            raise CollectionError(f"error listing containers: {e}") from e

        if self._clock() - self._last_invalidate >= self._invalidation_interval:
            self.invalidate_caches(containers)

        result: list[CorrelatedBase] = []
        for c in containers:
            container_id = c["Id"]
            names = c.get("Names") or [""]
            base = CorrelatedBase(
                id=container_id,
                name=names[0],
                image=self.images.resolve(c.get("Image", "")),
                image_id=c.get("ImageID", ""),
                runtime_type=DOCKER_RUNTIME_TYPE,
                created=int(c.get("Created", 0)),
                state=c.get("State", ""),
                health=parse_health(c.get("Status", "")),
            )
            if self._filter.is_excluded(base):
                continue
            if self._collect_network and not self._resolve_network(container_id, c):
                continue
            result.append(base)
        return result

    def _resolve_network(self, container_id: str, summary: dict[str, Any]) -> bool:
        """Resolve and cache interface mappings for a new container.

        Returns:
            False if the container could not be inspected and must be skipped
        """
        with self._network_lock:
            if container_id in self._network_mappings:
                return True

        try:
            inspect = self._client.inspect_container(container_id)
        except NotFound as e:
            logger.debug(f"Error inspecting container {container_id}: {e}")
            return False
        except DOCKER_API_ERRORS as e:
            logger.warning(f"Error inspecting container {container_id}: {e}")
            return False

        pid = int((inspect.get("State") or {}).get("Pid") or 0)
        mappings = find_networks(
            container_id, pid, summary.get("NetworkSettings"), self._host_proc
        )
        with self._network_lock:
            self._network_mappings[container_id] = mappings
        return True

    def invalidate_caches(self, containers: list[dict[str, Any]]) -> None:
        """Drop cached mappings and image names not used by ``containers``."""
        live_containers = {c["Id"] for c in containers}
        live_images = {c.get("Image", "") for c in containers}

        with self._network_lock:
            stale = [cid for cid in self._network_mappings if cid not in live_containers]
            for cid in stale:
                del self._network_mappings[cid]
        pruned_images = self.images.prune(live_images)

        self._last_invalidate = self._clock()
        logger.debug(
            f"Invalidated {len(stale)} network mappings and {pruned_images} image names"
        )

"""Best-effort orchestrator metadata lookups.

Both lookups are independent and return None when the host is not managed
by that orchestrator or the metadata source does not answer.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any
from urllib.error import URLError
from urllib.request import Request, urlopen

logger = logging.getLogger(__name__)

DEFAULT_ECS_AGENT_URL = "http://localhost:51678/v1/metadata"

# Downward API variables commonly injected into the collector's own pod
_KUBERNETES_ENV = {
    "node_name": "KUBERNETES_NODE_NAME",
    "pod_name": "KUBERNETES_POD_NAME",
    "namespace": "KUBERNETES_NAMESPACE",
    "cluster_name": "KUBERNETES_CLUSTER_NAME",
}


def ecs_metadata(url: str | None = None, timeout: float = 1.0) -> dict[str, Any] | None:
    """Fetch container instance metadata from the local ECS agent."""
    url = url or os.environ.get("ECS_AGENT_URL", DEFAULT_ECS_AGENT_URL)
    req = Request(url, headers={"Accept": "application/json"})
    try:
        with urlopen(req, timeout=timeout) as response:
            data = json.load(response)
    except (URLError, OSError, ValueError) as e:
        logger.debug(f"No ECS metadata from {url}: {e}")
        return None

    if not isinstance(data, dict):
        return None
    return {
        "cluster": data.get("Cluster", ""),
        "container_instance_arn": data.get("ContainerInstanceArn", ""),
        "version": data.get("Version", ""),
    }


def kubernetes_metadata() -> dict[str, Any] | None:
    """Describe the Kubernetes node this collector runs on, from its environment."""
    if not os.environ.get("KUBERNETES_SERVICE_HOST"):
        return None
    return {key: os.environ.get(var, "") for key, var in _KUBERNETES_ENV.items()}

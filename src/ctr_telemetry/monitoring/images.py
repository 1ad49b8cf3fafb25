"""Resolution of content-hash image references to repository names."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Any

from docker.errors import DockerException, NotFound
from requests.exceptions import RequestException

logger = logging.getLogger(__name__)

# The low-level client lets transport failures (socket gone, daemon hung up)
# through as requests errors rather than DockerException.
DOCKER_API_ERRORS = (DockerException, RequestException)

CONTENT_HASH_PREFIX = "sha256:"


def image_name_from_inspect(image_ref: str, inspect: dict[str, Any]) -> str:
    """Pick a human-readable name from an image inspection result.

    RepoTags win; otherwise the first RepoDigest without its ``@sha256:...``
    suffix (digests look like ``quay.io/foo/bar@sha256:hash``); otherwise the
    reference itself.
    """
    repo_tags = inspect.get("RepoTags") or []
    if repo_tags:
        return repo_tags[0]
    repo_digests = inspect.get("RepoDigests") or []
    if repo_digests:
        return repo_digests[0].split("@", 1)[0]
    return image_ref


class ImageNameResolver:
    """Memoizing resolver for ``sha256:`` image references.

    Each content-hash reference is inspected at most once; failures degrade to
    the literal reference and are cached too so a broken image does not cost
    an API call per cycle.
    """

    def __init__(self, client: Any) -> None:
        """Initialize the resolver.

        Args:
            client: Docker low-level API client (``docker.APIClient``)
        """
        self._client = client
        self._names: dict[str, str] = {}
        self._lock = threading.Lock()

    def resolve(self, image_ref: str) -> str:
        """Return the human-readable name for an image reference."""
        if not image_ref.startswith(CONTENT_HASH_PREFIX):
            return image_ref

        with self._lock:
            cached = self._names.get(image_ref)
        if cached is not None:
            return cached

        try:
            name = image_name_from_inspect(image_ref, self._client.inspect_image(image_ref))
        except NotFound as e:
            # Some images are simply not available to inspect
            logger.debug(f"Image {image_ref} not found: {e}")
            name = image_ref
        except DOCKER_API_ERRORS as e:
            logger.error(f"Could not extract image {image_ref} name: {e}")
            name = image_ref

        with self._lock:
            self._names[image_ref] = name
        return name

    def prune(self, live_refs: Iterable[str]) -> int:
        """Drop cached names for images no live container references.

        Returns:
            Number of evicted entries
        """
        live = set(live_refs)
        with self._lock:
            stale = [ref for ref in self._names if ref not in live]
            for ref in stale:
                del self._names[ref]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._names)

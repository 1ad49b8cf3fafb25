"""Local storage of transport groups.

Groups are appended as compact JSON lines, one group per line, so a long
running collector can be inspected or replayed without a transport.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from ctr_telemetry.core.schemas import ContainerGroup

logger = logging.getLogger(__name__)

DEFAULT_GROUPS_FILE = "groups.jsonl"


class GroupStorage:
    """Append-only JSON-lines storage for container groups."""

    def __init__(self, output_dir: Path, filename: str = DEFAULT_GROUPS_FILE) -> None:
        """Initialize storage with an output directory."""
        self.output_dir = Path(output_dir).resolve()
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.output_dir / filename

    def save(self, groups: list[ContainerGroup]) -> Path:
        """Append one cycle's groups.

        Returns:
            Path to the groups file
        """
        with open(self.path, "a", encoding="utf-8") as f:
            for group in groups:
                f.write(json.dumps(group.model_dump(mode="json"), separators=(",", ":")))
                f.write("\n")
        logger.debug(f"Saved {len(groups)} groups to {self.path}")
        return self.path

    def load(self) -> list[ContainerGroup]:
        """Load every stored group in write order.

        Raises:
            FileNotFoundError: If nothing was stored yet
        """
        if not self.path.exists():
            raise FileNotFoundError(f"No groups found in {self.output_dir}")
        groups: list[ContainerGroup] = []
        with open(self.path, encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    groups.append(ContainerGroup.model_validate_json(line))
        return groups


def store_groups(groups: list[ContainerGroup], output_dir: Path) -> Path:
    """Convenience function to store groups.

    Args:
        groups: Groups from one collection cycle
        output_dir: Directory to store groups in

    Returns:
        Path to the groups file
    """
    return GroupStorage(output_dir).save(groups)


def load_groups(output_dir: Path) -> list[ContainerGroup]:
    """Convenience function to load stored groups."""
    return GroupStorage(output_dir).load()

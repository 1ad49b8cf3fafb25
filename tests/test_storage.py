"""Tests for group storage."""

from pathlib import Path

import pytest

from ctr_telemetry.core.schemas import ContainerGroup, ContainerStats, SystemInfo
from ctr_telemetry.results.storage import GroupStorage, load_groups, store_groups


def make_group(index: int, size: int = 2) -> ContainerGroup:
    return ContainerGroup(
        host_name="host-1",
        info=SystemInfo(hostname="host-1", cpu_count=4),
        containers=[ContainerStats(type="Docker", id=f"{index:064x}", name=f"/c{index}", image="nginx")],
        group_id=3,
        group_index=index,
        group_size=size,
    )


class TestGroupStorage:
    def test_save_and_load(self, tmp_path: Path):
        storage = GroupStorage(tmp_path / "out")
        path = storage.save([make_group(0), make_group(1)])

        assert path.exists()
        assert len(path.read_text().splitlines()) == 2
        loaded = storage.load()
        assert [g.group_index for g in loaded] == [0, 1]
        assert loaded[0].containers[0].name == "/c0"
        assert loaded[0] == make_group(0)

    def test_appends_across_cycles(self, tmp_path: Path):
        store_groups([make_group(0, size=1)], tmp_path)
        store_groups([make_group(0, size=1)], tmp_path)
        assert len(load_groups(tmp_path)) == 2

    def test_load_without_data(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            GroupStorage(tmp_path).load()

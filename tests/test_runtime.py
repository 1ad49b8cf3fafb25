"""Tests for the Docker runtime adapter."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import docker
import pytest
import requests
from docker.errors import APIError, DockerException, NotFound

from ctr_telemetry.core.errors import CollectionError, RuntimeUnavailableError
from ctr_telemetry.monitoring.filters import ContainerFilter
from ctr_telemetry.monitoring.network import HOST_NETWORK
from ctr_telemetry.monitoring.runtime import (
    DockerRuntimeAdapter,
    connect_to_docker,
    parse_health,
)

HOST_SETTINGS = {"Networks": {"host": {"Gateway": ""}}}


def summary(cid: str, name: str, image: str = "nginx:latest", **extra) -> dict:
    data = {
        "Id": cid,
        "Names": [name],
        "Image": image,
        "ImageID": "sha256:" + "f" * 64,
        "Created": 1700000000,
        "State": "running",
        "Status": "Up 5 seconds (health: starting)",
        "NetworkSettings": HOST_SETTINGS,
    }
    data.update(extra)
    return data


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_client(containers: list[dict]) -> MagicMock:
    client = MagicMock()
    client.containers.return_value = containers
    client.inspect_container.return_value = {"State": {"Pid": 1234}}
    return client


class TestParseHealth:
    """Tests for health extraction from status strings."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            ("Up 5 seconds (health: starting)", "starting"),
            ("Up 2 hours (health: healthy)", "healthy"),
            ("Up 1 minute (health: unhealthy)", "unhealthy"),
            ("Up about an hour", ""),
            ("Exited (0) 3 minutes ago", ""),
            ("", ""),
        ],
    )
    def test_parse(self, status: str, expected: str) -> None:
        assert parse_health(status) == expected


class TestConnectToDocker:
    """Tests for daemon connection checks."""

    def test_missing_socket(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.delenv("DOCKER_HOST", raising=False)
        with pytest.raises(RuntimeUnavailableError, match="no socket"):
            connect_to_docker(tmp_path / "docker.sock")

    def test_missing_mounts_file(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.delenv("DOCKER_HOST", raising=False)
        sock = tmp_path / "docker.sock"
        sock.touch()
        with pytest.raises(RuntimeUnavailableError, match="mounts"):
            connect_to_docker(sock, mounts_file=tmp_path / "mounts")

    def test_ping_failure(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.delenv("DOCKER_HOST", raising=False)
        sock = tmp_path / "docker.sock"
        sock.touch()
        mounts = tmp_path / "mounts"
        mounts.touch()
        with patch("ctr_telemetry.monitoring.runtime.docker.DockerClient") as client_cls:
            client_cls.return_value.ping.side_effect = DockerException("connection refused")
            with pytest.raises(RuntimeUnavailableError, match="unable to connect"):
                connect_to_docker(sock, mounts_file=mounts)

    def test_returns_low_level_client(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.delenv("DOCKER_HOST", raising=False)
        sock = tmp_path / "docker.sock"
        sock.touch()
        mounts = tmp_path / "mounts"
        mounts.touch()
        with patch("ctr_telemetry.monitoring.runtime.docker.DockerClient") as client_cls:
            api = connect_to_docker(sock, mounts_file=mounts)
        assert api is client_cls.return_value.api
        client_cls.assert_called_once_with(base_url=f"unix://{sock}", version="auto")


class TestListContainers:
    """Tests for container discovery."""

    def test_builds_base_records(self, tmp_path: Path) -> None:
        cid = "a" * 64
        adapter = DockerRuntimeAdapter(make_client([summary(cid, "/web")]), host_proc=tmp_path)

        [base] = adapter.list_containers()
        assert base.id == cid
        assert base.name == "/web"
        assert base.image == "nginx:latest"
        assert base.runtime_type == "Docker"
        assert base.created == 1700000000
        assert base.state == "running"
        assert base.health == "starting"
        assert base.cgroup is None

    def test_listing_failure(self) -> None:
        client = MagicMock()
        client.containers.side_effect = APIError("daemon down")
        adapter = DockerRuntimeAdapter(client)
        with pytest.raises(CollectionError, match="listing containers"):
            adapter.list_containers()

    def test_filter_applied_before_inspect(self, tmp_path: Path) -> None:
        """Test excluded containers are never inspected."""
        client = make_client(
            [
                summary("a" * 64, "/keep-me", image="nginx"),
                summary("b" * 64, "/other", image="nginx"),
                summary("c" * 64, "/cache", image="redis"),
            ]
        )
        container_filter = ContainerFilter.from_lists(["name:keep"], ["image:nginx.*"])
        adapter = DockerRuntimeAdapter(client, container_filter, host_proc=tmp_path)

        names = [b.name for b in adapter.list_containers()]
        assert names == ["/keep-me", "/cache"]
        inspected = [call.args[0] for call in client.inspect_container.call_args_list]
        assert "b" * 64 not in inspected

    def test_inspect_not_found_skips_container(self, tmp_path: Path, caplog) -> None:
        client = make_client([summary("a" * 64, "/gone"), summary("b" * 64, "/here")])
        client.inspect_container.side_effect = [NotFound("gone"), {"State": {"Pid": 1}}]
        adapter = DockerRuntimeAdapter(client, host_proc=tmp_path)

        with caplog.at_level("WARNING"):
            names = [b.name for b in adapter.list_containers()]
        assert names == ["/here"]
        assert not caplog.records
        assert adapter.network_mappings("a" * 64) is None

    def test_inspect_error_logged(self, tmp_path: Path, caplog) -> None:
        client = make_client([summary("a" * 64, "/broken")])
        client.inspect_container.side_effect = APIError("boom")
        adapter = DockerRuntimeAdapter(client, host_proc=tmp_path)

        with caplog.at_level("WARNING"):
            assert adapter.list_containers() == []
        assert any("Error inspecting container" in r.message for r in caplog.records)

    def test_mappings_cached(self, tmp_path: Path) -> None:
        """Test each container is inspected once across calls."""
        cid = "a" * 64
        client = make_client([summary(cid, "/web")])
        adapter = DockerRuntimeAdapter(client, host_proc=tmp_path)

        adapter.list_containers()
        adapter.list_containers()
        client.inspect_container.assert_called_once_with(cid)
        assert adapter.network_mappings(cid) == [HOST_NETWORK]

    def test_network_disabled(self, tmp_path: Path) -> None:
        client = make_client([summary("a" * 64, "/web")])
        adapter = DockerRuntimeAdapter(client, collect_network=False, host_proc=tmp_path)

        assert len(adapter.list_containers()) == 1
        client.inspect_container.assert_not_called()
        assert adapter.network_mappings("a" * 64) is None


class TestInvalidation:
    """Tests for periodic cache pruning."""

    def test_not_pruned_before_interval(self, tmp_path: Path) -> None:
        clock = FakeClock()
        cid = "a" * 64
        client = make_client([summary(cid, "/web")])
        adapter = DockerRuntimeAdapter(
            client, host_proc=tmp_path, invalidation_interval=300, clock=clock
        )
        adapter.list_containers()

        client.containers.return_value = []
        clock.now += 299
        adapter.list_containers()
        assert adapter.network_mappings(cid) == [HOST_NETWORK]

    def test_stale_entries_pruned_after_interval(self, tmp_path: Path) -> None:
        clock = FakeClock()
        old, new = "a" * 64, "b" * 64
        client = make_client([summary(old, "/old"), summary(new, "/new")])
        adapter = DockerRuntimeAdapter(
            client, host_proc=tmp_path, invalidation_interval=300, clock=clock
        )
        adapter.list_containers()

        client.containers.return_value = [summary(new, "/new")]
        clock.now += 300
        adapter.list_containers()
        assert adapter.network_mappings(old) is None
        assert adapter.network_mappings(new) == [HOST_NETWORK]

    def test_interval_restarts_after_prune(self, tmp_path: Path) -> None:
        clock = FakeClock()
        cid = "a" * 64
        client = make_client([])
        adapter = DockerRuntimeAdapter(
            client, host_proc=tmp_path, invalidation_interval=300, clock=clock
        )

        clock.now += 300
        with patch.object(adapter, "invalidate_caches", wraps=adapter.invalidate_caches) as spy:
            adapter.list_containers()
            client.containers.return_value = [summary(cid, "/web")]
            clock.now += 10
            adapter.list_containers()
        spy.assert_called_once()

    def test_image_names_pruned(self, tmp_path: Path) -> None:
        sha = "sha256:" + "c" * 64
        client = make_client([])
        client.inspect_image.return_value = {"RepoTags": ["myapp:1.0"]}
        adapter = DockerRuntimeAdapter(client, host_proc=tmp_path)
        adapter.images.resolve(sha)
        assert len(adapter.images) == 1

        adapter.invalidate_caches([])
        assert len(adapter.images) == 0


class TestHostname:
    def test_hostname_from_info(self) -> None:
        client = MagicMock()
        client.info.return_value = {"Name": "docker-host-1"}
        assert DockerRuntimeAdapter(client).hostname() == "docker-host-1"

    def test_info_failure(self) -> None:
        client = MagicMock()
        client.info.side_effect = APIError("nope")
        with pytest.raises(RuntimeUnavailableError):
            DockerRuntimeAdapter(client).hostname()


class TestUnreachableDaemon:
    """Tests for a daemon whose socket has gone away."""

    @pytest.fixture
    def dead_client(self, tmp_path: Path) -> docker.APIClient:
        return docker.APIClient(base_url=f"unix://{tmp_path}/gone.sock", version="1.41")

    def test_listing_becomes_collection_error(self, dead_client, tmp_path: Path) -> None:
        adapter = DockerRuntimeAdapter(dead_client, host_proc=tmp_path)
        with pytest.raises(CollectionError, match="listing containers"):
            adapter.list_containers()

    def test_hostname_becomes_runtime_unavailable(self, dead_client) -> None:
        with pytest.raises(RuntimeUnavailableError):
            DockerRuntimeAdapter(dead_client).hostname()

    def test_image_name_falls_back_to_reference(self, dead_client) -> None:
        adapter = DockerRuntimeAdapter(dead_client)
        sha = "sha256:" + "d" * 64
        assert adapter.images.resolve(sha) == sha

    def test_inspect_transport_error_skips_container(self, tmp_path: Path) -> None:
        client = make_client([summary("a" * 64, "/web")])
        client.inspect_container.side_effect = requests.exceptions.ConnectionError("aborted")
        adapter = DockerRuntimeAdapter(client, host_proc=tmp_path)
        assert adapter.list_containers() == []

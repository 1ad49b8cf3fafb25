"""Tests for configuration schemas and loading."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from ctr_telemetry.core.config import load_config
from ctr_telemetry.core.schemas import (
    ContainerGroup,
    ContainerHealth,
    ContainerState,
    SystemInfo,
    TelemetryConfig,
)


class TestTelemetryConfig:
    """Tests for TelemetryConfig schema."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("HOST_PROC", raising=False)
        monkeypatch.delenv("DOCKER_SOCKET_PATH", raising=False)
        config = TelemetryConfig()
        assert config.hostname
        assert config.cache_duration_seconds == 10
        assert config.invalidation_interval_seconds == 300
        assert config.max_per_group == 100
        assert config.collect_network is True
        assert config.host_proc == Path("/proc")
        assert config.docker_socket_path == Path("/var/run/docker.sock")
        assert config.log_level == "INFO"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("HOST_PROC", "/host/proc")
        monkeypatch.setenv("DOCKER_SOCKET_PATH", "/run/alt.sock")
        config = TelemetryConfig()
        assert config.host_proc == Path("/host/proc")
        assert config.docker_socket_path == Path("/run/alt.sock")

    def test_filter_prefix_required(self):
        """Test that filters must name a supported field."""
        with pytest.raises(ValidationError):
            TelemetryConfig(blacklist=["label:foo"])

    def test_filters_accepted(self):
        config = TelemetryConfig(whitelist=["name:keep"], blacklist=["image:nginx.*"])
        assert config.blacklist == ["image:nginx.*"]

    def test_max_per_group_positive(self):
        with pytest.raises(ValidationError):
            TelemetryConfig(max_per_group=0)

    def test_log_level_normalized(self):
        assert TelemetryConfig(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            TelemetryConfig(log_level="chatty")


class TestEnums:
    def test_state_parse(self):
        assert ContainerState.parse("Running") is ContainerState.RUNNING
        assert ContainerState.parse("") is ContainerState.UNKNOWN

    def test_health_parse(self):
        assert ContainerHealth.parse("starting") is ContainerHealth.STARTING
        assert ContainerHealth.parse("") is ContainerHealth.UNKNOWN


class TestContainerGroup:
    def test_group_size_positive(self):
        with pytest.raises(ValidationError):
            ContainerGroup(host_name="h", info=SystemInfo(hostname="h"), group_index=0, group_size=0)


class TestLoadConfig:
    """Tests for load_config."""

    def test_yaml(self, tmp_path: Path):
        path = tmp_path / "collector.yaml"
        path.write_text(
            "hostname: box-1\n"
            "cache_duration_seconds: 5\n"
            "blacklist:\n"
            "  - 'image:nginx.*'\n"
            "max_per_group: 50\n"
        )
        config = load_config(path)
        assert config.hostname == "box-1"
        assert config.cache_duration_seconds == 5
        assert config.blacklist == ["image:nginx.*"]
        assert config.max_per_group == 50

    def test_json(self, tmp_path: Path):
        path = tmp_path / "collector.json"
        path.write_text(json.dumps({"hostname": "box-2", "collect_network": False}))
        config = load_config(path)
        assert config.hostname == "box-2"
        assert config.collect_network is False

    def test_empty_yaml_uses_defaults(self, tmp_path: Path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_config(path).max_per_group == 100

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_unsupported_format(self, tmp_path: Path):
        path = tmp_path / "collector.toml"
        path.write_text("hostname = 'x'")
        with pytest.raises(ValueError, match="Unsupported config format"):
            load_config(path)

    def test_invalid_values(self, tmp_path: Path):
        path = tmp_path / "collector.yaml"
        path.write_text("blacklist:\n  - nginx\n")
        with pytest.raises(ValidationError):
            load_config(path)

"""Tests for orchestrator metadata lookups."""

import io
import json
from unittest.mock import patch
from urllib.error import URLError

from ctr_telemetry.checks.orchestrator import ecs_metadata, kubernetes_metadata


class TestEcsMetadata:
    def test_agent_unreachable(self):
        with patch("ctr_telemetry.checks.orchestrator.urlopen", side_effect=URLError("refused")):
            assert ecs_metadata("http://localhost:1/v1/metadata") is None

    def test_metadata(self):
        body = io.BytesIO(
            json.dumps(
                {"Cluster": "prod", "ContainerInstanceArn": "arn:aws:ecs:x", "Version": "1.2"}
            ).encode()
        )
        with patch("ctr_telemetry.checks.orchestrator.urlopen", return_value=body):
            meta = ecs_metadata("http://agent/v1/metadata")
        assert meta == {"cluster": "prod", "container_instance_arn": "arn:aws:ecs:x", "version": "1.2"}

    def test_invalid_body(self):
        with patch("ctr_telemetry.checks.orchestrator.urlopen", return_value=io.BytesIO(b"not json")):
            assert ecs_metadata("http://agent/v1/metadata") is None


class TestKubernetesMetadata:
    def test_not_in_cluster(self, monkeypatch):
        monkeypatch.delenv("KUBERNETES_SERVICE_HOST", raising=False)
        assert kubernetes_metadata() is None

    def test_in_cluster(self, monkeypatch):
        monkeypatch.setenv("KUBERNETES_SERVICE_HOST", "10.0.0.1")
        monkeypatch.setenv("KUBERNETES_NODE_NAME", "node-7")
        monkeypatch.delenv("KUBERNETES_POD_NAME", raising=False)
        meta = kubernetes_metadata()
        assert meta["node_name"] == "node-7"
        assert meta["pod_name"] == ""

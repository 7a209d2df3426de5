"""Tests for models and the error taxonomy."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from k8scc.errors import (
    ClusterAPIError,
    ConfigurationError,
    ExchangeError,
    LauncherError,
    MalformedPathError,
    WorkloadFailedError,
)
from k8scc.models import ChaincodeMetadata, PodPhase, ResourceSettings
from k8scc.models.pods import TERMINAL_PHASES


class TestPodPhase:
    def test_parse_known(self):
        assert PodPhase.parse("Running") is PodPhase.RUNNING

    def test_parse_unrecognised(self):
        assert PodPhase.parse("Evicted") is PodPhase.UNKNOWN
        assert PodPhase.parse(None) is PodPhase.UNKNOWN

    def test_terminal_phases(self):
        assert TERMINAL_PHASES == {PodPhase.SUCCEEDED, PodPhase.FAILED}
        assert PodPhase.UNKNOWN not in TERMINAL_PHASES


class TestModels:
    def test_frozen(self):
        meta = ChaincodeMetadata(label="cc", type="golang")
        with pytest.raises(ValidationError):
            meta.type = "node"  # type: ignore[misc]

    def test_resource_defaults_unset(self):
        assert ResourceSettings().model_dump() == {
            "limit_memory": "",
            "limit_cpu": "",
            "requests_memory": "",
            "requests_cpu": "",
        }


class TestErrors:
    def test_hierarchy(self):
        assert issubclass(MalformedPathError, ConfigurationError)
        assert issubclass(ExchangeError, LauncherError)
        assert issubclass(ClusterAPIError, LauncherError)

    def test_cluster_error_message(self):
        err = ClusterAPIError("create pod x", 409, "AlreadyExists")
        assert str(err) == "create pod x failed (status=409): AlreadyExists"
        assert not err.transient
        assert not err.not_found

    def test_cluster_error_without_reason(self):
        assert str(ClusterAPIError("get pod x")) == "get pod x failed"

    def test_transient_statuses(self):
        assert ClusterAPIError("op", 503).transient
        assert ClusterAPIError("op", None).transient
        assert not ClusterAPIError("op", 404).transient

    def test_workload_failed(self):
        err = WorkloadFailedError("peer0-cc-x", "Failed", "x:1234")
        assert "x:1234" in str(err)
        assert err.phase == "Failed"

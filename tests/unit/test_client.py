"""Unit tests for the VirtualService Kubernetes client.

Tests the client with a mocked CustomObjectsApi.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from kubernetes.client import ApiException
from prometheus_client import CollectorRegistry

from meshdivert.config.settings import KubernetesSettings
from meshdivert.errors import VirtualServiceNotFoundError
from meshdivert.kubernetes.client import VirtualServiceClient, load_kubernetes_config
from meshdivert.observability.metrics import MetricsCollector


ISTIO_KWARGS = {
    "group": "networking.istio.io",
    "version": "v1beta1",
    "plural": "virtualservices",
}


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def vs_client(mock_custom_api: MagicMock, registry: CollectorRegistry) -> VirtualServiceClient:
    return VirtualServiceClient(
        custom_api=mock_custom_api,
        metrics=MetricsCollector(registry=registry),
    )


class TestLoadKubernetesConfig:
    """Tests for cluster credential loading."""

    def test_in_cluster(self) -> None:
        with patch("meshdivert.kubernetes.client.k8s_config") as mock_config:
            load_kubernetes_config(KubernetesSettings(in_cluster=True))

        mock_config.load_incluster_config.assert_called_once_with()
        mock_config.load_kube_config.assert_not_called()

    def test_falls_back_to_kubeconfig(self) -> None:
        from kubernetes.config import ConfigException

        with patch("meshdivert.kubernetes.client.k8s_config") as mock_config:
            mock_config.ConfigException = ConfigException
            mock_config.load_incluster_config.side_effect = ConfigException("Not in cluster")

            load_kubernetes_config(
                KubernetesSettings(kubeconfig="/tmp/kubeconfig", context="dev")
            )

        mock_config.load_kube_config.assert_called_once_with(
            config_file="/tmp/kubeconfig",
            context="dev",
        )

    def test_client_loads_config_without_api(self) -> None:
        with (
            patch("meshdivert.kubernetes.client.load_kubernetes_config") as mock_load,
            patch("meshdivert.kubernetes.client.client.CustomObjectsApi") as mock_api,
        ):
            vs_client = VirtualServiceClient(settings=KubernetesSettings())

        mock_load.assert_called_once()
        assert vs_client.custom_api is mock_api.return_value


class TestVirtualServiceClient:
    """Tests for VirtualServiceClient."""

    def test_get(
        self,
        vs_client: VirtualServiceClient,
        mock_custom_api: MagicMock,
        registry: CollectorRegistry,
        service_a_vs: dict[str, Any],
    ) -> None:
        mock_custom_api.get_namespaced_custom_object.return_value = service_a_vs

        assert vs_client.get("service-a", "staging") == service_a_vs
        mock_custom_api.get_namespaced_custom_object.assert_called_once_with(
            namespace="staging", name="service-a", **ISTIO_KWARGS
        )
        assert (
            registry.get_sample_value(
                "meshdivert_kubernetes_api_requests_total",
                {"method": "get", "status": "success"},
            )
            == 1.0
        )

    def test_get_not_found(
        self, vs_client: VirtualServiceClient, mock_custom_api: MagicMock
    ) -> None:
        mock_custom_api.get_namespaced_custom_object.side_effect = ApiException(status=404)

        with pytest.raises(VirtualServiceNotFoundError, match="staging/missing"):
            vs_client.get("missing", "staging")

    def test_get_other_error_propagates(
        self, vs_client: VirtualServiceClient, mock_custom_api: MagicMock
    ) -> None:
        mock_custom_api.get_namespaced_custom_object.side_effect = ApiException(status=403)

        with pytest.raises(ApiException):
            vs_client.get("service-a", "staging")

    def test_list_namespaced(
        self,
        vs_client: VirtualServiceClient,
        mock_custom_api: MagicMock,
        service_a_vs: dict[str, Any],
        service_b_vs: dict[str, Any],
    ) -> None:
        mock_custom_api.list_namespaced_custom_object.return_value = {
            "items": [service_a_vs, service_b_vs]
        }

        assert vs_client.list_namespaced("staging") == [service_a_vs, service_b_vs]
        mock_custom_api.list_namespaced_custom_object.assert_called_once_with(
            namespace="staging", **ISTIO_KWARGS
        )

    def test_list_namespaced_empty(
        self, vs_client: VirtualServiceClient, mock_custom_api: MagicMock
    ) -> None:
        mock_custom_api.list_namespaced_custom_object.return_value = {}

        assert vs_client.list_namespaced("staging") == []

    def test_replace(
        self,
        vs_client: VirtualServiceClient,
        mock_custom_api: MagicMock,
        service_a_vs: dict[str, Any],
    ) -> None:
        mock_custom_api.replace_namespaced_custom_object.return_value = service_a_vs

        assert vs_client.replace(service_a_vs) == service_a_vs
        mock_custom_api.replace_namespaced_custom_object.assert_called_once_with(
            namespace="staging", name="service-a", body=service_a_vs, **ISTIO_KWARGS
        )

    def test_replace_conflict_propagates(
        self,
        vs_client: VirtualServiceClient,
        mock_custom_api: MagicMock,
        registry: CollectorRegistry,
        service_a_vs: dict[str, Any],
    ) -> None:
        mock_custom_api.replace_namespaced_custom_object.side_effect = ApiException(status=409)

        with pytest.raises(ApiException) as exc_info:
            vs_client.replace(service_a_vs)

        assert exc_info.value.status == 409
        assert (
            registry.get_sample_value(
                "meshdivert_kubernetes_api_requests_total",
                {"method": "replace", "status": "409"},
            )
            == 1.0
        )

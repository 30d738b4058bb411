"""Access to Istio VirtualService resources through the Kubernetes API.

Thin wrapper over ``CustomObjectsApi`` used by the divert reconciler.
Objects are exchanged as plain dicts; mapping them to RoutingDocument is
the caller's job.
"""

from __future__ import annotations

from typing import Any

from kubernetes import client
from kubernetes import config as k8s_config

from meshdivert.config.settings import KubernetesSettings, get_settings
from meshdivert.errors import VirtualServiceNotFoundError
from meshdivert.istio.models import ISTIO_API_GROUP, ISTIO_API_VERSION, VIRTUAL_SERVICE_PLURAL
from meshdivert.observability.logging import get_logger
from meshdivert.observability.metrics import MetricsCollector


log = get_logger(__name__)

# HTTP Status Codes
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409


def load_kubernetes_config(settings: KubernetesSettings) -> None:
    """Load cluster credentials, preferring in-cluster config."""
    if settings.in_cluster:
        k8s_config.load_incluster_config()
        return

    try:
        k8s_config.load_incluster_config()
    except k8s_config.ConfigException:
        k8s_config.load_kube_config(
            config_file=settings.kubeconfig,
            context=settings.context,
        )


class VirtualServiceClient:
    """Reads and writes VirtualServices.

    Attributes:
        custom_api: Kubernetes CustomObjectsApi client
    """

    def __init__(
        self,
        custom_api: client.CustomObjectsApi | None = None,
        settings: KubernetesSettings | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        if custom_api is None:
            load_kubernetes_config(settings or get_settings().kubernetes)
            custom_api = client.CustomObjectsApi()
        self.custom_api = custom_api
        self.metrics = metrics

    def _record(self, method: str, status: str) -> None:
        if self.metrics is not None:
            self.metrics.record_api_request(method, status)

    def get(self, name: str, namespace: str) -> dict[str, Any]:
        """Read one VirtualService.

        Raises:
            VirtualServiceNotFoundError: if it does not exist.
        """
        try:
            obj = self.custom_api.get_namespaced_custom_object(
                group=ISTIO_API_GROUP,
                version=ISTIO_API_VERSION,
                namespace=namespace,
                plural=VIRTUAL_SERVICE_PLURAL,
                name=name,
            )
        except client.ApiException as e:
            self._record("get", str(e.status))
            if e.status == HTTP_NOT_FOUND:
                msg = f"VirtualService {namespace}/{name} not found"
                raise VirtualServiceNotFoundError(
                    msg, details={"name": name, "namespace": namespace}
                ) from e
            raise

        self._record("get", "success")
        return obj

    def list_namespaced(self, namespace: str) -> list[dict[str, Any]]:
        """List the VirtualServices of a namespace."""
        try:
            response = self.custom_api.list_namespaced_custom_object(
                group=ISTIO_API_GROUP,
                version=ISTIO_API_VERSION,
                namespace=namespace,
                plural=VIRTUAL_SERVICE_PLURAL,
            )
        except client.ApiException as e:
            self._record("list", str(e.status))
            raise

        self._record("list", "success")
        return list(response.get("items", []))

    def replace(self, obj: dict[str, Any]) -> dict[str, Any]:
        """Replace a VirtualService.

        The object's ``metadata.resourceVersion`` is sent along, so the API
        server answers 409 if someone else updated it in the meantime.
        """
        metadata = obj["metadata"]
        try:
            updated = self.custom_api.replace_namespaced_custom_object(
                group=ISTIO_API_GROUP,
                version=ISTIO_API_VERSION,
                namespace=metadata.get("namespace", "default"),
                plural=VIRTUAL_SERVICE_PLURAL,
                name=metadata["name"],
                body=obj,
            )
        except client.ApiException as e:
            self._record("replace", str(e.status))
            raise

        self._record("replace", "success")
        log.info(
            "virtual_service_updated",
            name=metadata["name"],
            namespace=metadata.get("namespace", "default"),
            resource_version=updated.get("metadata", {}).get("resourceVersion"),
        )
        return updated

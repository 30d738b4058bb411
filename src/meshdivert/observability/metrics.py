"""Prometheus metrics for meshdivert.

Counts divert routes written and removed, reconcile outcomes and
Kubernetes API calls made by the reconciler.
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Info
from prometheus_client import REGISTRY as DEFAULT_REGISTRY


class MetricsCollector:
    """Prometheus metrics collector for meshdivert."""

    def __init__(
        self,
        namespace: str = "meshdivert",
        registry: CollectorRegistry | None = None,
    ) -> None:
        """Initialize metrics.

        Args:
            namespace: Prometheus namespace prefix for all metrics.
            registry: Registry to register metrics with (default: global).
        """
        self.namespace = namespace
        registry = registry if registry is not None else DEFAULT_REGISTRY

        self.info = Info(
            f"{namespace}_build",
            "meshdivert build information",
            registry=registry,
        )

        self.routes_diverted_total = Counter(
            f"{namespace}_routes_diverted_total",
            "Divert routes inserted into VirtualServices",
            ["namespace"],
            registry=registry,
        )

        self.routes_restored_total = Counter(
            f"{namespace}_routes_restored_total",
            "Divert routes removed from VirtualServices",
            ["namespace"],
            registry=registry,
        )

        self.reconcile_total = Counter(
            f"{namespace}_reconcile_total",
            "VirtualService reconciliations",
            ["action", "outcome"],  # outcome: updated, unchanged, conflict, error
            registry=registry,
        )

        self.k8s_api_requests_total = Counter(
            f"{namespace}_kubernetes_api_requests_total",
            "Total Kubernetes API requests",
            ["method", "status"],
            registry=registry,
        )

    def set_build_info(self, version: str, environment: str = "development") -> None:
        """Set build information metrics."""
        self.info.info({"version": version, "environment": environment})

    def record_reconcile(
        self,
        action: str,
        outcome: str,
        namespace: str,
        routes_added: int = 0,
        routes_removed: int = 0,
    ) -> None:
        """Record the outcome of one VirtualService reconciliation.

        Args:
            action: "divert" or "restore".
            outcome: updated, unchanged, conflict or error.
            namespace: Namespace of the VirtualService.
            routes_added: Divert routes inserted.
            routes_removed: Divert routes removed.
        """
        self.reconcile_total.labels(action=action, outcome=outcome).inc()
        if routes_added:
            self.routes_diverted_total.labels(namespace=namespace).inc(routes_added)
        if routes_removed:
            self.routes_restored_total.labels(namespace=namespace).inc(routes_removed)

    def record_api_request(self, method: str, status: str) -> None:
        """Record a Kubernetes API request."""
        self.k8s_api_requests_total.labels(method=method, status=status).inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics

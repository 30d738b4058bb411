"""Divert reconciliation against the cluster.

Performs the read-modify-write cycle around the divert engine: read a
VirtualService from the origin namespace, translate or restore it, and
write it back only if the routing changed. Concurrent writers are detected
by the API server through ``resourceVersion``; on a conflict the object is
read again and the transformation re-applied to the fresh copy.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from kubernetes.client import ApiException

from meshdivert.config.settings import get_settings
from meshdivert.errors import DivertConflictError
from meshdivert.istio.models import DivertIntent, RoutingDocument
from meshdivert.istio.virtualservices import (
    restore_divert_virtual_service,
    translate_divert_virtual_service,
)
from meshdivert.kubernetes.client import HTTP_CONFLICT, VirtualServiceClient
from meshdivert.observability.logging import LogContext, get_logger
from meshdivert.observability.metrics import MetricsCollector, get_metrics


log = get_logger(__name__)


class DivertAction(str, Enum):
    """Desired divert state of a VirtualService."""

    DIVERT = "divert"
    RESTORE = "restore"


@dataclass
class DivertResult:
    """Result of reconciling one VirtualService."""

    name: str
    namespace: str
    action: DivertAction
    routes_added: int = 0
    routes_removed: int = 0
    updated: bool = False


class DivertReconciler:
    """Applies a divert intent to the VirtualServices of the origin namespace.

    Attributes:
        intent: The divert intent to apply
        client: VirtualService client
        max_conflict_retries: Re-read attempts after a 409 Conflict
    """

    def __init__(
        self,
        intent: DivertIntent,
        client: VirtualServiceClient,
        max_conflict_retries: int | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        settings = get_settings()
        self.intent = intent
        self.client = client
        self.max_conflict_retries = (
            settings.divert.max_conflict_retries
            if max_conflict_retries is None
            else max_conflict_retries
        )
        if metrics is None and settings.observability.metrics_enabled:
            metrics = get_metrics()
        self.metrics = metrics

    @property
    def namespace(self) -> str:
        return self.intent.origin_namespace

    def divert(self, name: str) -> DivertResult:
        """Insert divert routes into the named VirtualService."""
        return self._reconcile(name, DivertAction.DIVERT)

    def restore(self, name: str) -> DivertResult:
        """Remove this intent's divert routes from the named VirtualService."""
        return self._reconcile(name, DivertAction.RESTORE)

    def divert_all(self) -> list[DivertResult]:
        """Divert every VirtualService of the origin namespace."""
        return self._reconcile_all(DivertAction.DIVERT)

    def restore_all(self) -> list[DivertResult]:
        """Restore every VirtualService of the origin namespace."""
        return self._reconcile_all(DivertAction.RESTORE)

    def _reconcile_all(self, action: DivertAction) -> list[DivertResult]:
        results = []
        for obj in self.client.list_namespaced(self.namespace):
            name = obj.get("metadata", {}).get("name", "")
            results.append(self._reconcile(name, action, obj=obj))
        return results

    def _reconcile(
        self,
        name: str,
        action: DivertAction,
        obj: dict[str, Any] | None = None,
    ) -> DivertResult:
        attempts = self.max_conflict_retries + 1

        with LogContext(
            virtual_service=name,
            namespace=self.namespace,
            target_namespace=self.intent.target_namespace,
            action=action.value,
        ):
            for attempt in range(1, attempts + 1):
                if obj is None:
                    obj = self.client.get(name, self.namespace)
                try:
                    result = self._apply(obj, action)
                except ApiException as e:
                    if e.status != HTTP_CONFLICT:
                        self._record(action, "error")
                        raise
                    log.warning("virtual_service_conflict", attempt=attempt, attempts=attempts)
                    obj = None
                    continue

                self._record(
                    action,
                    "updated" if result.updated else "unchanged",
                    result.routes_added,
                    result.routes_removed,
                )
                log.info(
                    "divert_reconciled",
                    updated=result.updated,
                    routes_added=result.routes_added,
                    routes_removed=result.routes_removed,
                )
                return result

        self._record(action, "conflict")
        msg = f"VirtualService {self.namespace}/{name} kept changing after {attempts} attempt(s)"
        raise DivertConflictError(
            msg,
            details={"name": name, "namespace": self.namespace, "action": action.value},
        )

    def _apply(self, obj: dict[str, Any], action: DivertAction) -> DivertResult:
        vs = RoutingDocument.from_kubernetes_object(obj)

        if action == DivertAction.DIVERT:
            updated = translate_divert_virtual_service(self.intent, vs)
        else:
            updated = restore_divert_virtual_service(self.intent, vs)

        delta = len(updated.http_routes) - len(vs.http_routes)
        result = DivertResult(
            name=vs.name,
            namespace=vs.namespace,
            action=action,
            routes_added=max(delta, 0),
            routes_removed=max(-delta, 0),
        )
        if updated == vs:
            return result

        self.client.replace(updated.to_kubernetes_object())
        result.updated = True
        return result

    def _record(
        self,
        action: DivertAction,
        outcome: str,
        routes_added: int = 0,
        routes_removed: int = 0,
    ) -> None:
        if self.metrics is not None:
            self.metrics.record_reconcile(
                action.value,
                outcome,
                self.namespace,
                routes_added=routes_added,
                routes_removed=routes_removed,
            )

"""meshdivert Kubernetes package.

VirtualService access and the divert read-modify-write cycle.
"""

from meshdivert.kubernetes.client import VirtualServiceClient, load_kubernetes_config
from meshdivert.kubernetes.reconciler import DivertAction, DivertReconciler, DivertResult


__all__ = [
    "DivertAction",
    "DivertReconciler",
    "DivertResult",
    "VirtualServiceClient",
    "load_kubernetes_config",
]

"""meshdivert - Istio traffic divert for shared staging namespaces.

Rewrites VirtualService routing so that requests carrying a per-developer
marker header are sent to that developer's namespace, while all other
traffic keeps flowing to the shared staging backend.
"""

from meshdivert.version import __version__


__all__ = ["__version__"]

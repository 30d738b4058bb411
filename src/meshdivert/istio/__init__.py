"""meshdivert Istio package.

VirtualService models and the divert translation/restoration engine.
"""

from meshdivert.istio.models import (
    ISTIO_API_GROUP,
    ISTIO_API_VERSION,
    VIRTUAL_SERVICE_KIND,
    VIRTUAL_SERVICE_PLURAL,
    Destination,
    DivertIntent,
    HTTPRoute,
    MatchCondition,
    ObjectMeta,
    PortSelector,
    RouteDestination,
    RoutingDocument,
    StringMatch,
    VirtualServiceSpec,
    service_host,
)
from meshdivert.istio.virtualservices import (
    DIVERT_HEADER_NAME,
    DIVERT_ROUTE_PREFIX,
    divert_route_name,
    is_divert_candidate,
    is_divert_route,
    restore_divert_virtual_service,
    translate_divert_virtual_service,
)


__all__ = [
    "DIVERT_HEADER_NAME",
    "DIVERT_ROUTE_PREFIX",
    "ISTIO_API_GROUP",
    "ISTIO_API_VERSION",
    "VIRTUAL_SERVICE_KIND",
    "VIRTUAL_SERVICE_PLURAL",
    "Destination",
    "DivertIntent",
    "HTTPRoute",
    "MatchCondition",
    "ObjectMeta",
    "PortSelector",
    "RouteDestination",
    "RoutingDocument",
    "StringMatch",
    "VirtualServiceSpec",
    "divert_route_name",
    "is_divert_candidate",
    "is_divert_route",
    "restore_divert_virtual_service",
    "service_host",
    "translate_divert_virtual_service",
]

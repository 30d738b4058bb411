"""Divert translation and restoration of Istio VirtualServices.

A divert route is a clone of an existing HTTP route that targets the
diverted service in the origin namespace. The clone only matches requests
carrying the divert header for the developer namespace, sends them to the
same service in that namespace, and is placed immediately before the route
it was cloned from so it takes precedence.

Divert routes are recognised by their name prefix together with their
destination in the developer namespace; no other metadata is stored on
the VirtualService. Both functions are pure: they
never mutate their input and never perform I/O.
"""

from __future__ import annotations

from meshdivert.istio.models import (
    DivertIntent,
    HTTPRoute,
    MatchCondition,
    RouteDestination,
    RoutingDocument,
    StringMatch,
)
from meshdivert.observability.logging import get_logger


log = get_logger(__name__)

DIVERT_ROUTE_PREFIX = "okteto-divert"
DIVERT_HEADER_NAME = "x-okteto-divert"


def divert_route_prefix(target_namespace: str) -> str:
    """Name prefix shared by every divert route of a developer namespace."""
    return f"{DIVERT_ROUTE_PREFIX}-{target_namespace}-"


def divert_route_name(target_namespace: str, route_name: str) -> str:
    """Name of the divert route synthesized from ``route_name``."""
    return f"{divert_route_prefix(target_namespace)}{route_name}"


def is_divert_route(route: HTTPRoute, intent: DivertIntent) -> bool:
    """Check whether a route was synthesized for ``intent``.

    The name prefix alone is ambiguous when one developer namespace is a
    dash-extension of another (``cindy`` and ``cindy-x``), so the route must
    also send traffic to the service in the developer namespace.
    """
    if not route.name.startswith(divert_route_prefix(intent.target_namespace)):
        return False
    return intent.target_host in route.hosts


def is_divert_candidate(route: HTTPRoute, intent: DivertIntent) -> bool:
    """Check whether a route sends traffic to the service in the origin namespace."""
    return any(item.destination.host == intent.origin_host for item in route.route)


def _divert_match(route: HTTPRoute, intent: DivertIntent) -> list[MatchCondition]:
    header = {DIVERT_HEADER_NAME: StringMatch(exact=intent.target_namespace)}
    if not route.match:
        return [MatchCondition(headers=header)]

    first = route.match[0]
    headers = {**first.headers, **header}
    return [first.model_copy(update={"headers": headers}, deep=True)]


def _divert_destination(item: RouteDestination, intent: DivertIntent) -> RouteDestination:
    if item.destination.host != intent.origin_host:
        return item.model_copy(deep=True)

    destination = item.destination.model_copy(update={"host": intent.target_host}, deep=True)
    return item.model_copy(update={"destination": destination}, deep=True)


def build_divert_route(route: HTTPRoute, intent: DivertIntent) -> HTTPRoute:
    """Clone ``route`` into its divert route for ``intent``.

    Only destinations pointing at the origin service are rewritten; port,
    subset and weight are kept. Fields the engine does not model (rewrite,
    timeout, retries...) are carried over with the clone.
    """
    return route.model_copy(
        update={
            "name": divert_route_name(intent.target_namespace, route.name),
            "match": _divert_match(route, intent),
            "route": [_divert_destination(item, intent) for item in route.route],
        },
        deep=True,
    )


def translate_divert_virtual_service(
    intent: DivertIntent,
    vs: RoutingDocument,
) -> RoutingDocument:
    """Insert a divert route ahead of every route targeting the origin service.

    Routes that do not target the diverted service are copied through at
    their original position. A candidate whose divert route is already
    present is left alone, so applying the translation repeatedly yields the
    same document as applying it once.

    Args:
        intent: Origin namespace, developer namespace and service to divert.
        vs: The VirtualService read from the origin namespace.

    Returns:
        A new document with N + M routes, M being the number of candidates
        without an existing divert route.
    """
    existing = {route.name for route in vs.http_routes if is_divert_route(route, intent)}
    routes: list[HTTPRoute] = []
    added = 0

    for route in vs.http_routes:
        if is_divert_candidate(route, intent):
            name = divert_route_name(intent.target_namespace, route.name)
            if name in existing:
                log.debug(
                    "divert_route_exists",
                    virtual_service=vs.name,
                    namespace=vs.namespace,
                    route=name,
                )
            else:
                routes.append(build_divert_route(route, intent))
                added += 1
                log.debug(
                    "divert_route_added",
                    virtual_service=vs.name,
                    namespace=vs.namespace,
                    route=name,
                    source_route=route.name,
                )
        routes.append(route.model_copy(deep=True))

    if not added:
        return vs.model_copy(deep=True)
    return vs.with_routes(routes)


def restore_divert_virtual_service(
    intent: DivertIntent,
    vs: RoutingDocument,
) -> RoutingDocument:
    """Remove the divert routes synthesized for ``intent``.

    Surviving routes, including divert routes of other developer
    namespaces or other services, are copied unchanged.
    """
    routes = [
        route.model_copy(deep=True)
        for route in vs.http_routes
        if not is_divert_route(route, intent)
    ]

    removed = len(vs.http_routes) - len(routes)
    if not removed:
        return vs.model_copy(deep=True)

    log.debug(
        "divert_routes_removed",
        virtual_service=vs.name,
        namespace=vs.namespace,
        target_namespace=intent.target_namespace,
        count=removed,
    )
    return vs.with_routes(routes)


__all__ = [
    "DIVERT_HEADER_NAME",
    "DIVERT_ROUTE_PREFIX",
    "build_divert_route",
    "divert_route_name",
    "divert_route_prefix",
    "is_divert_candidate",
    "is_divert_route",
    "restore_divert_virtual_service",
    "translate_divert_virtual_service",
]

"""Pydantic models for Istio VirtualService routing documents.

The models mirror the ``networking.istio.io/v1beta1`` VirtualService schema
for the fields the divert engine reads or rewrites. Every other field is
kept as pydantic "extra" data so that a document survives a round trip
through the models without losing configuration.

API Group: networking.istio.io
API Version: v1beta1
Kind: VirtualService
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from meshdivert.errors import InvalidDivertIntentError, InvalidVirtualServiceError


# Istio CRD Constants
ISTIO_API_GROUP = "networking.istio.io"
ISTIO_API_VERSION = "v1beta1"
VIRTUAL_SERVICE_KIND = "VirtualService"
VIRTUAL_SERVICE_PLURAL = "virtualservices"

CLUSTER_LOCAL_SUFFIX = "svc.cluster.local"

DNS1123_LABEL_MAX_LENGTH = 63
_DNS1123_LABEL = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")

_WIRE_CONFIG = ConfigDict(extra="allow", frozen=True, populate_by_name=True)


def service_host(service_name: str, namespace: str) -> str:
    """Build the cluster-local FQDN of a service."""
    return f"{service_name}.{namespace}.{CLUSTER_LOCAL_SUFFIX}"


class PortSelector(BaseModel):
    """Port of a destination host."""

    model_config = _WIRE_CONFIG

    number: int | None = Field(default=None, ge=0, le=65535)


class Destination(BaseModel):
    """Network-addressable service a request is forwarded to."""

    model_config = _WIRE_CONFIG

    host: str = Field(min_length=1, description="Service registry host name")
    subset: str | None = Field(default=None, description="DestinationRule subset")
    port: PortSelector | None = Field(default=None)


class RouteDestination(BaseModel):
    """Weighted destination of an HTTP route."""

    model_config = _WIRE_CONFIG

    destination: Destination
    weight: int | None = Field(default=None, ge=0, le=100)


class StringMatch(BaseModel):
    """Header value matcher. Only one of the match types is expected."""

    model_config = _WIRE_CONFIG

    exact: str | None = None
    prefix: str | None = None
    regex: str | None = None


class MatchCondition(BaseModel):
    """Match request (``HTTPMatchRequest``) of an HTTP route."""

    model_config = _WIRE_CONFIG

    gateways: list[str] = Field(default_factory=list)
    headers: dict[str, StringMatch] = Field(default_factory=dict)
    port: int | None = Field(default=None, ge=0, le=65535)


class HTTPRoute(BaseModel):
    """One HTTP routing rule. Evaluated top-to-bottom, first match wins."""

    model_config = _WIRE_CONFIG

    name: str = Field(default="")
    match: list[MatchCondition] = Field(default_factory=list)
    route: list[RouteDestination] = Field(default_factory=list)

    @property
    def hosts(self) -> list[str]:
        """Destination hosts of the route, in order."""
        return [item.destination.host for item in self.route]


class VirtualServiceSpec(BaseModel):
    """Routing part of a VirtualService."""

    model_config = _WIRE_CONFIG

    gateways: list[str] = Field(default_factory=list)
    hosts: list[str] = Field(default_factory=list)
    http: list[HTTPRoute] = Field(default_factory=list)


class ObjectMeta(BaseModel):
    """Kubernetes object metadata. Unmodelled keys (uid, resourceVersion) are kept."""

    model_config = _WIRE_CONFIG

    name: str = Field(min_length=1)
    namespace: str = Field(default="default")
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class RoutingDocument(BaseModel):
    """A VirtualService as seen by the divert engine.

    Instances are immutable values: the translator and restorer always
    return a new document and never share route lists with their input.
    """

    model_config = _WIRE_CONFIG

    api_version: str = Field(
        default=f"{ISTIO_API_GROUP}/{ISTIO_API_VERSION}",
        alias="apiVersion",
    )
    kind: str = Field(default=VIRTUAL_SERVICE_KIND)
    metadata: ObjectMeta
    spec: VirtualServiceSpec

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v: str) -> str:
        """Refuse documents of another kind."""
        if v != VIRTUAL_SERVICE_KIND:
            msg = f"expected kind {VIRTUAL_SERVICE_KIND}, got {v}"
            raise ValueError(msg)
        return v

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def gateways(self) -> list[str]:
        return self.spec.gateways

    @property
    def hosts(self) -> list[str]:
        return self.spec.hosts

    @property
    def http_routes(self) -> list[HTTPRoute]:
        return self.spec.http

    def with_routes(self, routes: list[HTTPRoute]) -> RoutingDocument:
        """Return a copy of the document with its HTTP routes replaced."""
        spec = self.spec.model_copy(update={"http": routes}, deep=True)
        return self.model_copy(update={"spec": spec}, deep=True)

    def to_kubernetes_object(self) -> dict[str, Any]:
        """Convert to the Kubernetes API dict format."""
        obj = self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
        obj.setdefault("apiVersion", self.api_version)
        obj.setdefault("kind", self.kind)
        return obj

    @classmethod
    def from_kubernetes_object(cls, obj: Any) -> RoutingDocument:
        """Create a RoutingDocument from a raw Kubernetes API object.

        Raises:
            InvalidVirtualServiceError: if required fields are missing or
                have the wrong type.
        """
        try:
            return cls.model_validate(obj)
        except ValidationError as e:
            name = None
            if isinstance(obj, dict) and isinstance(obj.get("metadata"), dict):
                name = obj["metadata"].get("name")
            raise InvalidVirtualServiceError(
                f"invalid VirtualService {name or '<unnamed>'}: {e.error_count()} validation error(s)",
                details={"name": name, "errors": e.errors(include_url=False)},
            ) from e


class DivertIntent(BaseModel):
    """Fully resolved divert configuration supplied by the caller.

    Attributes:
        origin_namespace: The shared staging namespace.
        target_namespace: The developer namespace receiving diverted traffic.
        service_name: The backend service being diverted.
    """

    model_config = ConfigDict(frozen=True)

    origin_namespace: str
    target_namespace: str
    service_name: str

    @field_validator("origin_namespace", "target_namespace", "service_name")
    @classmethod
    def validate_dns_label(cls, v: str) -> str:
        """Namespaces and service names are DNS-1123 labels."""
        if len(v) > DNS1123_LABEL_MAX_LENGTH or not _DNS1123_LABEL.match(v):
            msg = f"{v!r} is not a valid DNS-1123 label"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_distinct_namespaces(self) -> DivertIntent:
        """Diverting a namespace onto itself is meaningless."""
        if self.origin_namespace == self.target_namespace:
            msg = "origin and target namespaces must differ"
            raise ValueError(msg)
        return self

    @property
    def origin_host(self) -> str:
        return service_host(self.service_name, self.origin_namespace)

    @property
    def target_host(self) -> str:
        return service_host(self.service_name, self.target_namespace)

    @classmethod
    def build(
        cls,
        *,
        origin_namespace: str | None,
        target_namespace: str | None,
        service_name: str | None,
    ) -> DivertIntent:
        """Build an intent, reporting bad input as InvalidDivertIntentError."""
        missing = [
            flag
            for flag, value in (
                ("origin namespace", origin_namespace),
                ("target namespace", target_namespace),
                ("service name", service_name),
            )
            if not value
        ]
        if missing:
            msg = f"divert intent is missing: {', '.join(missing)}"
            raise InvalidDivertIntentError(msg, details={"missing": missing})

        try:
            return cls(
                origin_namespace=origin_namespace,
                target_namespace=target_namespace,
                service_name=service_name,
            )
        except ValidationError as e:
            messages = [error["msg"] for error in e.errors(include_url=False)]
            raise InvalidDivertIntentError(
                f"invalid divert intent: {'; '.join(messages)}",
                details={"errors": messages},
            ) from e


__all__ = [
    "CLUSTER_LOCAL_SUFFIX",
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
    "service_host",
]

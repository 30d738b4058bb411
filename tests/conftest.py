"""Pytest configuration and fixtures for meshdivert tests."""

from __future__ import annotations

import copy
import logging
import os
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest
import structlog

from meshdivert.istio.models import DivertIntent

if TYPE_CHECKING:
    from collections.abc import Generator


os.environ.setdefault("MESHDIVERT_ENVIRONMENT", "development")


@pytest.fixture(autouse=True)
def reset_settings() -> Generator[None, None, None]:
    """Reset settings cache before each test."""
    from meshdivert.config.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def intent() -> DivertIntent:
    """Divert service-a from staging to the cindy namespace."""
    return DivertIntent(
        origin_namespace="staging",
        target_namespace="cindy",
        service_name="service-a",
    )


def make_route(
    name: str,
    host: str,
    *,
    subset: str = "stable",
    port: int = 80,
    weight: int = 100,
) -> dict[str, Any]:
    """Raw HTTP route as found in a VirtualService spec."""
    return {
        "name": name,
        "match": [{"gateways": ["ingress-http"], "port": 80}],
        "route": [
            {
                "destination": {
                    "host": host,
                    "port": {"number": port},
                    "subset": subset,
                },
                "weight": weight,
            }
        ],
    }


def make_virtual_service(name: str, routes: list[dict[str, Any]]) -> dict[str, Any]:
    """Raw VirtualService object in the staging namespace."""
    return {
        "apiVersion": "networking.istio.io/v1beta1",
        "kind": "VirtualService",
        "metadata": {
            "name": name,
            "namespace": "staging",
            "labels": {"l1": "v1"},
            "annotations": {"a1": "v1"},
        },
        "spec": {
            "gateways": ["ingress-http"],
            "hosts": [
                f"{name}.staging.svc.cluster.local",
                f"{name}.staging.com",
            ],
            "http": routes,
        },
    }


@pytest.fixture
def service_a_vs() -> dict[str, Any]:
    """VirtualService routing to service-a in staging."""
    return make_virtual_service(
        "service-a",
        [make_route("ingress-gateway-http-app-service", "service-a.staging.svc.cluster.local")],
    )


@pytest.fixture
def service_b_vs() -> dict[str, Any]:
    """VirtualService routing to service-b in staging."""
    return make_virtual_service(
        "service-b",
        [make_route("ingress-gateway-http-app-service", "service-b.staging.svc.cluster.local")],
    )


@pytest.fixture
def service_a_diverted_vs(service_a_vs: dict[str, Any]) -> dict[str, Any]:
    """service-a VirtualService with the divert route for cindy in place."""
    obj = copy.deepcopy(service_a_vs)
    original = obj["spec"]["http"][0]
    diverted = {
        "name": "okteto-divert-cindy-ingress-gateway-http-app-service",
        "match": [
            {
                "gateways": ["ingress-http"],
                "headers": {"x-okteto-divert": {"exact": "cindy"}},
                "port": 80,
            }
        ],
        "route": [
            {
                "destination": {
                    "host": "service-a.cindy.svc.cluster.local",
                    "port": {"number": 80},
                    "subset": "stable",
                },
                "weight": 100,
            }
        ],
    }
    obj["spec"]["http"] = [diverted, original]
    return obj


@pytest.fixture
def mock_custom_api() -> MagicMock:
    """Mock of kubernetes CustomObjectsApi."""
    return MagicMock()


@pytest.fixture
def route_factory() -> Any:
    """Factory for raw HTTP routes."""
    return make_route


@pytest.fixture
def vs_factory() -> Any:
    """Factory for raw VirtualService objects."""
    return make_virtual_service


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    """Undo logging configuration done by a test."""
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    root_logger.handlers = handlers
    root_logger.setLevel(level)
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()

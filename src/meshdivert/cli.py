"""meshdivert Command Line Interface.

Translate or restore VirtualService manifests offline, or apply the
divert to VirtualServices running in a cluster.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from meshdivert.config.settings import get_settings
from meshdivert.errors import DivertError
from meshdivert.istio.models import VIRTUAL_SERVICE_KIND, DivertIntent, RoutingDocument
from meshdivert.istio.virtualservices import (
    restore_divert_virtual_service,
    translate_divert_virtual_service,
)
from meshdivert.observability.logging import add_context, configure_logging, get_logger
from meshdivert.observability.metrics import get_metrics
from meshdivert.version import __version__

if TYPE_CHECKING:
    from argparse import Namespace
    from collections.abc import Callable


log = get_logger(__name__)


def _add_intent_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--origin",
        type=str,
        default=None,
        help="Shared namespace the service runs in (env: MESHDIVERT_DIVERT_ORIGIN_NAMESPACE)",
    )
    parser.add_argument(
        "--target",
        type=str,
        default=None,
        help="Developer namespace receiving diverted traffic "
        "(env: MESHDIVERT_DIVERT_TARGET_NAMESPACE)",
    )
    parser.add_argument(
        "--service",
        type=str,
        default=None,
        help="Service to divert (env: MESHDIVERT_DIVERT_SERVICE_NAME)",
    )


def _add_file_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-f",
        "--filename",
        type=str,
        required=True,
        help="VirtualService manifest (YAML or JSON, '-' for stdin)",
    )
    parser.add_argument(
        "-o",
        "--output",
        choices=["yaml", "json"],
        default="yaml",
        help="Output format",
    )


def _add_cluster_arguments(parser: argparse.ArgumentParser) -> None:
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--name",
        type=str,
        help="VirtualService name in the origin namespace",
    )
    target.add_argument(
        "--all",
        action="store_true",
        help="Process every VirtualService of the origin namespace",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="meshdivert",
        description="meshdivert - divert Istio traffic to a developer namespace",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  meshdivert translate -f vs.yaml --origin staging --target cindy --service service-a
  meshdivert restore -f diverted.yaml --origin staging --target cindy --service service-a
  meshdivert apply --name service-a --origin staging --target cindy --service service-a
  meshdivert unapply --all --origin staging --target cindy --service service-a
        """,
    )

    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for debug logs)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    translate_parser = subparsers.add_parser(
        "translate", help="Insert divert routes into a manifest"
    )
    _add_file_arguments(translate_parser)
    _add_intent_arguments(translate_parser)

    restore_parser = subparsers.add_parser(
        "restore", help="Remove divert routes from a manifest"
    )
    _add_file_arguments(restore_parser)
    _add_intent_arguments(restore_parser)

    apply_parser = subparsers.add_parser(
        "apply", help="Divert VirtualServices in the cluster"
    )
    _add_cluster_arguments(apply_parser)
    _add_intent_arguments(apply_parser)

    unapply_parser = subparsers.add_parser(
        "unapply", help="Remove divert routes from VirtualServices in the cluster"
    )
    _add_cluster_arguments(unapply_parser)
    _add_intent_arguments(unapply_parser)

    return parser


def resolve_intent(args: Namespace) -> DivertIntent:
    """Build the divert intent from arguments, falling back to settings."""
    defaults = get_settings().divert
    return DivertIntent.build(
        origin_namespace=args.origin or defaults.origin_namespace,
        target_namespace=args.target or defaults.target_namespace,
        service_name=args.service or defaults.service_name,
    )


def load_manifests(filename: str) -> list[Any]:
    """Load every document of a YAML or JSON manifest file."""
    if filename == "-":
        content = sys.stdin.read()
    else:
        try:
            content = Path(filename).read_text(encoding="utf-8")
        except OSError as e:
            msg = f"cannot read {filename}: {e.strerror}"
            raise DivertError(msg, details={"filename": filename}) from e

    try:
        documents = list(yaml.safe_load_all(content))
    except yaml.YAMLError as e:
        msg = f"cannot parse {filename}: {e}"
        raise DivertError(msg, details={"filename": filename}) from e

    return [document for document in documents if document is not None]


def dump_manifests(documents: list[dict[str, Any]], output: str) -> str:
    """Render documents in the requested output format."""
    if output == "json":
        payload: Any = documents[0] if len(documents) == 1 else documents
        return json.dumps(payload, indent=2) + "\n"
    return yaml.safe_dump_all(documents, sort_keys=False)


def _transform_file(
    args: Namespace,
    transform: Callable[[DivertIntent, RoutingDocument], RoutingDocument],
) -> int:
    intent = resolve_intent(args)
    documents = []
    for obj in load_manifests(args.filename):
        if isinstance(obj, dict) and obj.get("kind") == VIRTUAL_SERVICE_KIND:
            vs = RoutingDocument.from_kubernetes_object(obj)
            obj = transform(intent, vs).to_kubernetes_object()
        documents.append(obj)

    sys.stdout.write(dump_manifests(documents, args.output))
    return 0


def run_translate(args: Namespace) -> int:
    """Insert divert routes into VirtualServices of a manifest file."""
    return _transform_file(args, translate_divert_virtual_service)


def run_restore(args: Namespace) -> int:
    """Remove divert routes from VirtualServices of a manifest file."""
    return _transform_file(args, restore_divert_virtual_service)


def _run_cluster(args: Namespace, *, divert: bool) -> int:
    from kubernetes.client import ApiException
    from kubernetes.config import ConfigException

    from meshdivert.kubernetes import DivertReconciler, VirtualServiceClient

    intent = resolve_intent(args)

    settings = get_settings()
    metrics = None
    if settings.observability.metrics_enabled:
        metrics = get_metrics()
        metrics.set_build_info(settings.version, settings.environment)

    try:
        vs_client = VirtualServiceClient(metrics=metrics)
    except ConfigException as e:
        msg = f"cannot load Kubernetes configuration: {e}"
        raise DivertError(msg) from e

    reconciler = DivertReconciler(intent, vs_client, metrics=metrics)

    try:
        if args.all:
            results = reconciler.divert_all() if divert else reconciler.restore_all()
        else:
            results = [reconciler.divert(args.name) if divert else reconciler.restore(args.name)]
    except ApiException as e:
        msg = f"Kubernetes API error: {e.reason}"
        raise DivertError(msg, details={"status": e.status}) from e

    for result in results:
        change = (
            f"+{result.routes_added} route(s)" if divert else f"-{result.routes_removed} route(s)"
        )
        state = "updated" if result.updated else "unchanged"
        print(f"{result.namespace}/{result.name}: {state} ({change})")
    return 0


def run_apply(args: Namespace) -> int:
    """Divert VirtualServices in the cluster."""
    return _run_cluster(args, divert=True)


def run_unapply(args: Namespace) -> int:
    """Restore VirtualServices in the cluster."""
    return _run_cluster(args, divert=False)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    level = "DEBUG" if args.verbose else settings.observability.log_level
    log_format = "json" if settings.is_production else settings.observability.log_format
    configure_logging(level=level, format_type=log_format)
    add_context(version=settings.version, environment=settings.environment)

    if args.command is None:
        parser.print_help()
        return 0

    command_handlers = {
        "translate": run_translate,
        "restore": run_restore,
        "apply": run_apply,
        "unapply": run_unapply,
    }

    handler = command_handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except DivertError as e:
        log.error("command_failed", command=args.command, **e.to_dict())
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

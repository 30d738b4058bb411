"""Structured errors raised around the divert engine.

The translation and restoration functions themselves never raise; these
errors come from the schema mapping layer, intent validation and the
cluster read-modify-write cycle.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any


class DivertError(RuntimeError):
    """Base exception for divert failures."""

    code = "divert_error"

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
        timestamp: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.retryable = retryable
        self.details = details or {}
        self.timestamp = timestamp or datetime.now(UTC).isoformat()

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for logs and CLI output."""
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class InvalidVirtualServiceError(DivertError):
    """A raw VirtualService object could not be mapped to a RoutingDocument."""

    code = "invalid_virtual_service"


class InvalidDivertIntentError(DivertError):
    """Divert intent fields are missing or malformed."""

    code = "invalid_divert_intent"


class VirtualServiceNotFoundError(DivertError):
    """The requested VirtualService does not exist in the cluster."""

    code = "virtual_service_not_found"


class DivertConflictError(DivertError):
    """Concurrent writers kept updating the VirtualService."""

    code = "divert_conflict"

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)


__all__ = [
    "DivertConflictError",
    "DivertError",
    "InvalidDivertIntentError",
    "InvalidVirtualServiceError",
    "VirtualServiceNotFoundError",
]

"""meshdivert Observability package.

Logging and metrics for divert operations.
"""

from meshdivert.observability.logging import configure_logging, get_logger
from meshdivert.observability.metrics import MetricsCollector, get_metrics

__all__ = ["MetricsCollector", "configure_logging", "get_logger", "get_metrics"]

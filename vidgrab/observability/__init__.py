"""
Observability package: structured logging, metrics and error tracking.

Provides:
- ``setup_structured_logger``: JSON-formatted rotating logs
- ``MetricsCollector``: in-process job, sweep and HTTP metrics
- ``ErrorTracker``: capture of unexpected errors at every boundary
"""

from .errors import ErrorTracker
from .logging import (
    bound_log_context,
    clear_log_context,
    set_log_context,
    setup_structured_logger,
)
from .metrics import MetricsCollector

__all__ = [
    "setup_structured_logger",
    "set_log_context",
    "bound_log_context",
    "clear_log_context",
    "MetricsCollector",
    "ErrorTracker",
]

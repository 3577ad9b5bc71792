"""
Centralised tracking of unexpected errors.

Captures exceptions that escape a Flask view or the retention sweeper,
logs them through the structured logger and keeps the most recent ones
in a bounded ring buffer for ``/api/errors/recent``.
"""

import sys
import threading
import traceback
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from ..exceptions import VidgrabError
from .logging import get_log_context, setup_structured_logger
from .metrics import MetricsCollector

_MAX_ERROR_BUFFER = 200


@dataclass
class ErrorRecord:
    """A single captured error event."""

    timestamp: str
    error_type: str
    message: str
    traceback: str
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ErrorTracker:
    """Singleton that captures and stores unexpected errors.

    Usage::

        tracker = ErrorTracker()
        tracker.install_flask(app)

        # In a background thread:
        try:
            sweep()
        except Exception:
            tracker.capture_exception(extra={"worker": "retention_sweeper"})
    """

    _instance: Optional["ErrorTracker"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ErrorTracker":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return
        self._initialized = True
        self._buffer: deque = deque(maxlen=_MAX_ERROR_BUFFER)
        self._logger = setup_structured_logger("error_tracker", "errors.log")

    # ── Flask integration ────────────────────────────────────────

    def install_flask(self, app: Flask) -> None:
        """Register JSON error handlers for domain, HTTP and unhandled errors."""

        @app.errorhandler(VidgrabError)
        def _handle_domain_error(exc: VidgrabError):
            return jsonify(exc.to_dict()), exc.status_code

        @app.errorhandler(404)
        def _handle_404(exc):
            return jsonify({"success": False, "error": "Route not found", "code": "not_found"}), 404

        @app.errorhandler(Exception)
        def _handle_exception(exc: Exception):
            if isinstance(exc, HTTPException):
                code = exc.name.lower().replace(" ", "_")
                return (
                    jsonify({"success": False, "error": exc.description, "code": code}),
                    exc.code,
                )
            self.capture_exception(exc=exc)
            return (
                jsonify(
                    {
                        "success": False,
                        "error": "Internal server error",
                        "code": "internal_error",
                    }
                ),
                500,
            )

    # ── Capture ──────────────────────────────────────────────────

    def capture_exception(
        self,
        exc: Optional[BaseException] = None,
        *,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Optional[ErrorRecord]:
        """Capture an exception with its log and request context.

        Args:
            exc: The exception. If ``None``, uses ``sys.exc_info()``.
            extra: Additional context to attach.

        Returns:
            The ``ErrorRecord``, or ``None`` if nothing to capture.
        """
        if exc is None:
            exc = sys.exc_info()[1]
            if exc is None:
                return None

        tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

        ctx: Dict[str, Any] = get_log_context()
        if extra:
            ctx.update(extra)
        try:
            ctx.setdefault("method", request.method)
            ctx.setdefault("path", request.path)
        except RuntimeError:
            pass  # outside a request

        record = ErrorRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            error_type=type(exc).__name__,
            message=str(exc),
            traceback=tb,
            context=ctx,
        )
        self._buffer.append(record)
        MetricsCollector().inc("errors_captured_total", labels={"type": record.error_type})

        self._logger.error(
            "Captured %s: %s",
            record.error_type,
            record.message,
            extra={"error_type": record.error_type},
        )
        return record

    def recent_errors(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Return the most recent errors, newest first."""
        items = list(self._buffer)[-limit:]
        items.reverse()
        return [e.to_dict() for e in items]

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._instance = None

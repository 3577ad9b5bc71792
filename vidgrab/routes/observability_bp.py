"""
Observability routes: health checks, metrics and recent errors.

Endpoints:
    GET /health             simple liveness probe
    GET /api/healthz        component checks (200 healthy, 503 degraded)
    GET /api/metrics        Prometheus exposition format
    GET /api/metrics/json   JSON metrics snapshot
    GET /api/errors/recent  recently captured errors
"""

import shutil
from datetime import datetime, timezone

from flask import Blueprint, Response, current_app, jsonify

from ..constants import APP_VERSION, MIN_FREE_DISK_GB
from ..observability.errors import ErrorTracker
from ..observability.metrics import MetricsCollector

observability_bp = Blueprint("observability", __name__)


def _server():
    return current_app.config["server"]


@observability_bp.route("/health")
def health():
    return jsonify(
        {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": APP_VERSION,
        }
    )


@observability_bp.route("/api/healthz")
def healthz():
    """Readiness probe covering the downloads directory, yt-dlp and the sweeper."""
    srv = _server()
    checks = {}
    healthy = True

    # 1. Downloads directory: present, writable, enough free space
    try:
        usage = shutil.disk_usage(srv.store.directory)
        free_gb = usage.free / (1024 ** 3)
        disk_ok = free_gb > MIN_FREE_DISK_GB
        checks["downloads"] = {
            "status": "ok" if disk_ok else "warning",
            "free_gb": round(free_gb, 2),
            **srv.store.disk_usage(),
        }
        healthy = healthy and disk_ok
    except OSError as e:
        checks["downloads"] = {"status": "error", "message": str(e)}
        healthy = False

    # 2. yt-dlp binary
    version = srv.ytdlp.version()
    checks["ytdlp"] = {"status": "ok", "version": version} if version else {"status": "error"}
    healthy = healthy and bool(version)

    # 3. Retention sweeper (informational)
    sweeper = srv.sweeper
    if sweeper is not None:
        last = sweeper.last_report
        checks["retention"] = {
            "status": "ok" if sweeper.is_running() else "stopped",
            "state": sweeper.state.value,
            "last_sweep": last.to_dict() if last else None,
        }

    payload = {
        "status": "healthy" if healthy else "degraded",
        "uptime_seconds": round(MetricsCollector().uptime_seconds(), 1),
        "checks": checks,
    }
    return jsonify(payload), 200 if healthy else 503


@observability_bp.route("/api/metrics")
def metrics_prometheus():
    return Response(
        MetricsCollector().prometheus_exposition(), mimetype="text/plain; charset=utf-8"
    )


@observability_bp.route("/api/metrics/json")
def metrics_json():
    return jsonify(MetricsCollector().snapshot())


@observability_bp.route("/api/errors/recent")
def errors_recent():
    limit = int(current_app.config.get("ERROR_DISPLAY_LIMIT", 50))
    return jsonify(ErrorTracker().recent_errors(limit))

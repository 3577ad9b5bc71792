"""
HTTP front-end for the download service.
Features: download/status/delete API, metadata lookups, file serving,
rate limiting, CORS, security headers, request logging and JSON errors.
"""

import time
import uuid
from typing import Any, Dict, Optional

from flask import Flask, g, request
from flask_cors import CORS

from .artifact_store import ArtifactStore
from .clients.ytdlp_client import YtDlpClient
from .config import load_config, resolve_download_dir
from .constants import DEFAULT_YTDLP_BINARY
from .job_runner import JobRunner
from .observability.errors import ErrorTracker
from .observability.logging import clear_log_context, set_log_context
from .observability.metrics import MetricsCollector
from .rate_limit import install_rate_limit
from .retention import RetentionSweeper
from .routes import download_bp, files_bp, info_bp, observability_bp
from .utils import setup_logger

REQUEST_ID_HEADER = "X-Request-ID"


class DownloadServer:
    """Flask application wiring the job runner, store and sweeper together"""

    def __init__(
        self,
        config: Dict[str, Any] = None,
        *,
        config_path: str = None,
        ytdlp: YtDlpClient = None,
        sweeper: Optional[RetentionSweeper] = None,
    ):
        """Initialise the Flask web server.

        Args:
            config: Pre-loaded configuration dict (preferred).
            config_path: Path to the JSON config file.
            ytdlp: Optional yt-dlp client; built from config when omitted.
            sweeper: Optional retention sweeper reported by the health check.
        """
        self.config = config if config is not None else load_config(config_path or "config.json")
        debug_mode = self.config.get("logging", {}).get("debug", False)
        self.logger = setup_logger("web_server", "web_server.log", debug=debug_mode)
        self.metrics = MetricsCollector()

        dl_cfg = self.config.get("downloads", {})
        self.store = ArtifactStore(resolve_download_dir(self.config))
        self.ytdlp = ytdlp or YtDlpClient(dl_cfg.get("ytdlp_binary", DEFAULT_YTDLP_BINARY))
        self.job_runner = JobRunner(self.store, self.ytdlp, self.config)
        self.sweeper = sweeper

        self.app = Flask(__name__)
        self.app.json.sort_keys = False

        frontend_url = self.config.get("server", {}).get("frontend_url") or "*"
        origins = [o.strip() for o in frontend_url.split(",")] if frontend_url != "*" else "*"
        CORS(self.app, origins=origins, supports_credentials=origins != "*")

        self._setup_request_logging()
        self.rate_limiter = install_rate_limit(self.app, self.config)
        self._setup_security_headers()
        self._register_blueprints()
        ErrorTracker().install_flask(self.app)

        self.logger.info("DownloadServer initialized (downloads: %s)", self.store.directory)

    # ── Middleware ───────────────────────────────────────────────

    def _setup_request_logging(self):
        """Tag each request with an id and log method, path, status and latency"""

        @self.app.before_request
        def start_request():
            rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
            g.request_id = rid
            g.request_start = time.monotonic()
            set_log_context(request_id=rid)

        @self.app.after_request
        def log_request(response):
            started = g.get("request_start")
            duration_ms = (time.monotonic() - started) * 1000 if started else 0.0
            response.headers[REQUEST_ID_HEADER] = g.get("request_id", "")
            self.metrics.inc(
                "http_requests_total",
                labels={"method": request.method, "status": str(response.status_code)},
            )
            self.logger.info(
                "%s %s %s %.1fms",
                request.method,
                request.path,
                response.status_code,
                duration_ms,
                extra={"status_code": response.status_code, "duration_ms": round(duration_ms, 1)},
            )
            return response

        @self.app.teardown_request
        def end_request(exc):
            clear_log_context()

    def _setup_security_headers(self):
        @self.app.after_request
        def security_headers(response):
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "SAMEORIGIN"
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
            response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"
            response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'self'"
            return response

    def _register_blueprints(self):
        """Register Blueprints and expose the server on the app."""
        self.app.config["server"] = self
        for bp in (download_bp, info_bp, files_bp, observability_bp):
            self.app.register_blueprint(bp)

    # ── Server Start ─────────────────────────────────────────────

    def run(self, host: str = None, port: int = None):
        """Start the threaded web server (one thread per in-flight request)"""
        server_cfg = self.config.get("server", {})
        host = host or server_cfg.get("host", "0.0.0.0")
        port = int(port or server_cfg.get("port", 3000))

        self.logger.info("Starting web server on %s:%s", host, port)
        print(f"\n🚀 vidgrab listening on http://{host if host != '0.0.0.0' else 'localhost'}:{port}")
        print(f"📁 Downloads: {self.store.directory}")
        print("\nPress Ctrl+C to stop\n")

        self.app.run(host=host, port=port, debug=False, threaded=True, use_reloader=False)

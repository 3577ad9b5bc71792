"""
Test fixtures and configuration for pytest
"""

import os
from concurrent.futures import Future
from pathlib import Path

import pytest

from vidgrab.clients.ytdlp_client import TransformProcess
from vidgrab.exceptions import TransformFailed
from vidgrab.models import TransformResult
from vidgrab.observability.errors import ErrorTracker
from vidgrab.observability.logging import clear_log_context
from vidgrab.observability.metrics import MetricsCollector


@pytest.fixture(scope="session", autouse=True)
def _isolated_log_dir(tmp_path_factory):
    """Send every rotating log file to a temp dir instead of ./logs."""
    log_dir = tmp_path_factory.mktemp("logs")
    previous = os.environ.get("VIDGRAB_LOG_DIR")
    os.environ["VIDGRAB_LOG_DIR"] = str(log_dir)
    yield log_dir
    if previous is None:
        os.environ.pop("VIDGRAB_LOG_DIR", None)
    else:
        os.environ["VIDGRAB_LOG_DIR"] = previous


@pytest.fixture(autouse=True)
def _fresh_singletons():
    """Each test starts with empty metrics, no captured errors and no log context."""
    MetricsCollector.reset()
    ErrorTracker.reset()
    clear_log_context()
    yield
    MetricsCollector.reset()
    ErrorTracker.reset()
    clear_log_context()


def finished_process(result: TransformResult = None, error: BaseException = None):
    """A TransformProcess whose future has already resolved."""
    future = Future()
    future.set_running_or_notify_cancel()
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)
    return TransformProcess(future, pid=4242)


class FakeTransform:
    """Stands in for YtDlpClient: writes the output file itself, never spawns."""

    def __init__(
        self,
        *,
        exit_code: int = 0,
        ext: str = "mp4",
        write_file: bool = True,
        report_path: bool = True,
        error: BaseException = None,
        content: bytes = b"fake media bytes",
        info: dict = None,
        version: str = "2024.08.06",
    ):
        self.exit_code = exit_code
        self.ext = ext
        self.write_file = write_file
        self.report_path = report_path
        self.error = error
        self.content = content
        self.info = info
        self._version = version
        self.calls = []
        self.info_calls = []

    def invoke(self, url, output_template, format_args):
        self.calls.append({"url": url, "template": output_template, "args": list(format_args)})
        if self.error is not None:
            return finished_process(error=self.error)
        output_path = None
        if self.write_file:
            output_path = output_template.replace("%(ext)s", self.ext)
            Path(output_path).write_bytes(self.content)
        return finished_process(
            TransformResult(
                exit_code=self.exit_code,
                output_path=output_path if self.report_path else None,
                stderr_tail="" if self.exit_code == 0 else "ERROR: Video unavailable",
            )
        )

    def fetch_info(self, url):
        self.info_calls.append(url)
        if self.info is None:
            raise TransformFailed("Could not read video information", exit_code=1)
        return self.info

    def version(self):
        return self._version


@pytest.fixture
def download_dir(tmp_path):
    d = tmp_path / "downloads"
    d.mkdir()
    return d


@pytest.fixture
def test_config(download_dir):
    """Provide test configuration"""
    return {
        "server": {"host": "127.0.0.1", "port": 3000, "frontend_url": "*"},
        "downloads": {
            "directory": str(download_dir),
            "max_concurrent_jobs": 2,
            "ytdlp_binary": "yt-dlp",
        },
        "retention": {
            "max_age_hours": 24,
            "sweep_interval_seconds": 3600,
            "sweep_on_start": False,
        },
        "rate_limit": {"enabled": False, "max_requests": 10, "window_seconds": 900},
        "logging": {"debug": False},
    }


@pytest.fixture
def fake_transform():
    return FakeTransform()


@pytest.fixture
def store(download_dir):
    from vidgrab.artifact_store import ArtifactStore

    return ArtifactStore(download_dir)


@pytest.fixture
def server(test_config, fake_transform):
    from vidgrab.web_server import DownloadServer

    srv = DownloadServer(config=test_config, ytdlp=fake_transform)
    srv.app.config["TESTING"] = True
    return srv


@pytest.fixture
def client(server):
    with server.app.test_client() as c:
        yield c

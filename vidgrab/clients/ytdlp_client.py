"""yt-dlp CLI wrapper: asynchronous downloads and metadata lookups."""

import json
import subprocess
import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Optional

from ..constants import DEFAULT_YTDLP_BINARY
from ..exceptions import TransformFailed
from ..models import TransformResult
from ..utils import setup_logger

# Last lines of stderr kept for logging a failed run.
_STDERR_TAIL_LINES = 20
_DESTINATION_PREFIX = "[download] Destination: "


class TransformProcess:
    """Handle to one running yt-dlp process.

    The process runs out-of-band; callers either register callbacks or
    block on :meth:`wait`. There is no way to cancel a started download.
    """

    def __init__(self, future: "Future[TransformResult]", pid: Optional[int] = None):
        self._future = future
        self.pid = pid

    def on_exit(self, callback: Callable[[int], None]) -> None:
        """Call ``callback(exit_code)`` once the process has exited."""

        def _done(f: Future) -> None:
            if f.exception() is None:
                callback(f.result().exit_code)

        self._future.add_done_callback(_done)

    def on_error(self, callback: Callable[[BaseException], None]) -> None:
        """Call ``callback(exc)`` if the process could not be run."""

        def _done(f: Future) -> None:
            exc = f.exception()
            if exc is not None:
                callback(exc)

        self._future.add_done_callback(_done)

    def done(self) -> bool:
        return self._future.done()

    def wait(self, timeout: Optional[float] = None) -> TransformResult:
        """Block until the process ends.

        Raises:
            OSError: yt-dlp could not be started.
            Exception: Its output could not be collected.
        """
        return self._future.result(timeout)


class YtDlpClient:
    """Run the yt-dlp binary for downloads and metadata."""

    def __init__(self, binary: str = DEFAULT_YTDLP_BINARY, *, info_timeout: int = 60):
        """
        Args:
            binary: yt-dlp executable name or path.
            info_timeout: Seconds allowed for a metadata lookup.
        """
        self.binary = binary
        self.info_timeout = info_timeout
        self.logger = setup_logger("ytdlp_client", "ytdlp.log")

    # ── Downloads ────────────────────────────────────────────────

    def build_command(self, url: str, output_template: str, format_args: List[str]) -> List[str]:
        return [
            self.binary,
            *format_args,
            "-o",
            output_template,
            "--no-playlist",
            "--no-warnings",
            "--newline",
            "--print",
            "after_move:filepath",
            "--",
            url,
        ]

    def invoke(self, url: str, output_template: str, format_args: List[str]) -> TransformProcess:
        """Start a download and return immediately with its handle.

        Args:
            url: Source video URL.
            output_template: yt-dlp ``-o`` template, including the job id.
            format_args: Format selection / post-processing arguments.
        """
        cmd = self.build_command(url, output_template, format_args)
        future: "Future[TransformResult]" = Future()
        future.set_running_or_notify_cancel()

        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            self.logger.error("Could not start %s: %s", self.binary, e)
            future.set_exception(e)
            return TransformProcess(future)

        self.logger.debug("Started yt-dlp pid %s for %s", proc.pid, url)
        threading.Thread(
            target=self._collect,
            args=(proc, future),
            daemon=True,
            name=f"ytdlp-{proc.pid}",
        ).start()
        return TransformProcess(future, pid=proc.pid)

    def _collect(self, proc: subprocess.Popen, future: Future) -> None:
        try:
            stdout, stderr = proc.communicate()
        except Exception as e:
            self.logger.error("Lost yt-dlp pid %s: %s", proc.pid, e)
            future.set_exception(e)
            return

        stderr_tail = "\n".join((stderr or "").strip().splitlines()[-_STDERR_TAIL_LINES:])
        future.set_result(
            TransformResult(
                exit_code=proc.returncode,
                output_path=parse_output_path(stdout or ""),
                stderr_tail=stderr_tail,
            )
        )

    # ── Metadata ─────────────────────────────────────────────────

    def fetch_info(self, url: str) -> Dict[str, Any]:
        """Return yt-dlp's JSON metadata for *url* without downloading.

        Raises:
            TransformFailed: yt-dlp is missing, timed out, failed or
                printed something other than JSON.
        """
        cmd = [self.binary, "--dump-json", "--no-playlist", "--no-warnings", "--", url]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.info_timeout)
        except FileNotFoundError:
            self.logger.error("yt-dlp not installed. Install with: pip install yt-dlp")
            raise TransformFailed("Downloader is not available") from None
        except subprocess.TimeoutExpired:
            self.logger.error("yt-dlp metadata lookup timed out after %ss", self.info_timeout)
            raise TransformFailed("Metadata lookup timed out") from None

        if result.returncode != 0:
            self.logger.warning("yt-dlp metadata lookup failed: %s", result.stderr.strip())
            raise TransformFailed(
                "Could not read video information",
                exit_code=result.returncode,
                detail=result.stderr.strip(),
            )

        try:
            return json.loads(result.stdout.strip().split("\n")[0])
        except (json.JSONDecodeError, IndexError) as e:
            self.logger.error("Unparseable yt-dlp metadata: %s", e)
            raise TransformFailed("Could not read video information") from e

    def version(self) -> Optional[str]:
        """Installed yt-dlp version, or None when it cannot be run."""
        try:
            result = subprocess.run(
                [self.binary, "--version"], capture_output=True, text=True, timeout=10
            )
        except (OSError, subprocess.TimeoutExpired):
            return None
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None


def parse_output_path(stdout: str) -> Optional[str]:
    """Pull the final file path out of yt-dlp's stdout.

    ``--print after_move:filepath`` puts the path on the last non-empty
    line; older builds only log ``[download] Destination: <path>``.
    """
    destination = None
    printed = None
    for line in stdout.splitlines():
        line = line.strip()
        if not line:
            continue
        if line.startswith(_DESTINATION_PREFIX):
            destination = line[len(_DESTINATION_PREFIX):]
        elif not line.startswith("["):
            printed = line
    return printed or destination

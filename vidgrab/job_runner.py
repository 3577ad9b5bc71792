"""
Job runner: turns a URL and a profile into one artifact on disk.

Each call to :meth:`JobRunner.start` gets a fresh job id, spawns yt-dlp
with that id baked into the output name, waits for the process to end
and then finds the file it produced. Failures end the job; nothing is
retried.
"""

import threading
import time
from contextlib import nullcontext
from typing import Any, Dict, Optional

from .artifact_store import ArtifactStore
from .clients.ytdlp_client import YtDlpClient
from .constants import DEFAULT_MAX_CONCURRENT_JOBS
from .exceptions import InvalidInput, MissingArtifact, TransformFailed
from .models import Artifact, JobHandle, Profile
from .observability.logging import bound_log_context
from .observability.metrics import MetricsCollector
from .utils import format_size, generate_job_id, is_supported_url, setup_logger


class JobRunner:
    """Run one download per call, with an optional cap on concurrent runs."""

    def __init__(
        self,
        store: ArtifactStore,
        transform: YtDlpClient,
        config: Optional[Dict[str, Any]] = None,
    ):
        """Initialise the runner.

        Args:
            store: Artifact store owning the downloads directory.
            transform: Client that launches yt-dlp.
            config: Application configuration dict; reads
                ``downloads.max_concurrent_jobs`` (0 disables the cap).
        """
        self.store = store
        self.transform = transform
        self.config = config or {}
        debug_mode = self.config.get("logging", {}).get("debug", False)
        self.logger = setup_logger("job_runner", "jobs.log", debug=debug_mode)
        self.metrics = MetricsCollector()

        limit = int(
            self.config.get("downloads", {}).get(
                "max_concurrent_jobs", DEFAULT_MAX_CONCURRENT_JOBS
            )
        )
        self.max_concurrent_jobs = limit
        self._slots = threading.BoundedSemaphore(limit) if limit > 0 else None

    # ── Public API ───────────────────────────────────────────────

    def start_video(self, url: str, quality: Optional[str] = None) -> JobHandle:
        return self.start(url, Profile.video(quality))

    def start_audio(self, url: str, bitrate: Optional[str] = None) -> JobHandle:
        return self.start(url, Profile.audio(bitrate))

    def start(self, source_url: str, profile: Optional[Profile] = None) -> JobHandle:
        """Download *source_url* with *profile* and return the finished job.

        A missing profile means the default video quality. The calling
        thread waits until yt-dlp has exited.

        Raises:
            InvalidInput: URL missing or not on the allow-list.
            TransformFailed: yt-dlp could not be run or exited non-zero.
            MissingArtifact: yt-dlp exited zero but left no matching file.
        """
        if not source_url:
            raise InvalidInput("URL is required")
        if not is_supported_url(source_url):
            raise InvalidInput("Unsupported or malformed URL")
        source_url = source_url.strip()
        if profile is None:
            profile = Profile.video()

        job_id = generate_job_id()
        with bound_log_context(job_id=job_id), self._slot():
            return self._run(job_id, source_url, profile)

    # ── Internals ────────────────────────────────────────────────

    def _slot(self):
        if self._slots is None:
            return nullcontext()
        return self._slots

    def _run(self, job_id: str, url: str, profile: Profile) -> JobHandle:
        output_template = str(self.store.directory / f"{job_id}.%(ext)s")
        self.logger.info(
            "Starting %s job %s for %s (%s=%s)",
            profile.kind, job_id, url, profile.field_name, profile.value,
        )
        self.metrics.inc("jobs_started_total", labels={"kind": profile.kind})
        started = time.monotonic()

        try:
            process = self.transform.invoke(url, output_template, profile.format_args())
            result = process.wait()
        except Exception as e:
            self._record_failure(profile, "transform_failed", started)
            self.logger.error("Job %s: yt-dlp could not be run: %s", job_id, e)
            raise TransformFailed("Download failed", detail=str(e)) from e

        if not result.ok:
            self._record_failure(profile, "transform_failed", started)
            self.logger.error(
                "Job %s: yt-dlp exited with %s: %s", job_id, result.exit_code, result.stderr_tail
            )
            raise TransformFailed(
                "Download failed", exit_code=result.exit_code, detail=result.stderr_tail
            )

        artifact = self._locate(job_id, profile, result.output_path)
        if artifact is None:
            self._record_failure(profile, "missing_artifact", started)
            self.logger.error("Job %s: yt-dlp succeeded but output file not found", job_id)
            raise MissingArtifact(f"No file for job {job_id}", job_id=job_id)

        duration_ms = (time.monotonic() - started) * 1000
        self.metrics.inc("jobs_completed_total", labels={"kind": profile.kind})
        self.metrics.observe("job_duration_ms", duration_ms, labels={"kind": profile.kind})
        self.logger.info(
            "Job %s completed: %s (%s, %.0f ms)",
            job_id, artifact.filename, format_size(artifact.size), duration_ms,
        )
        return JobHandle(
            job_id=job_id,
            filename=artifact.filename,
            download_url=artifact.download_url,
            profile=profile,
            size=artifact.size,
        )

    def _locate(
        self, job_id: str, profile: Profile, reported_path: Optional[str]
    ) -> Optional[Artifact]:
        """Prefer the path yt-dlp reported; fall back to a prefix scan."""
        suffixes = profile.expected_suffixes()
        artifact = self.store.artifact_at(reported_path, job_id)
        if artifact is not None and (
            not suffixes or artifact.filename.lower().endswith(suffixes)
        ):
            return artifact
        if reported_path:
            self.logger.debug("Reported path %s unusable, scanning for job %s", reported_path, job_id)
        return self.store.exists(job_id, suffixes=suffixes)

    def _record_failure(self, profile: Profile, reason: str, started: float) -> None:
        self.metrics.inc("jobs_failed_total", labels={"kind": profile.kind, "reason": reason})
        self.metrics.observe(
            "job_duration_ms", (time.monotonic() - started) * 1000, labels={"kind": profile.kind}
        )

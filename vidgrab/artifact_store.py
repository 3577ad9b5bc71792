"""
Artifact store: the single flat downloads directory.

Every read, delete and scan of the directory goes through ``ArtifactStore``.
Nothing is cached; each call lists the directory again. Files that vanish
between listing and access (a concurrent delete or sweep) count as absent
rather than as errors.
"""

import os
import re
from pathlib import Path
from typing import Iterator, Optional

from .constants import PARTIAL_SUFFIXES
from .exceptions import NotFound
from .models import Artifact, ScanEntry
from .utils import is_valid_job_id, setup_logger

# yt-dlp writes per-stream fragments as <id>.f137.mp4 before merging.
_FRAGMENT_RE = re.compile(r"\.f\d+\.[^.]+$")


def _is_partial(filename: str) -> bool:
    return Path(filename).suffix.lower() in PARTIAL_SUFFIXES or bool(_FRAGMENT_RE.search(filename))


def _belongs_to(filename: str, job_id: str) -> bool:
    return filename == job_id or filename.startswith(job_id + ".")


class ArtifactStore:
    """Maps job identifiers to the files the downloader left behind."""

    def __init__(self, directory: Path, *, logger=None):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.logger = logger or setup_logger("artifact_store", "artifact_store.log")

    # ── Lookups ──────────────────────────────────────────────────

    def exists(self, job_id: str, suffixes: Optional[tuple] = None) -> Optional[Artifact]:
        """Return the finished artifact for *job_id*, or None.

        Args:
            job_id: Job identifier; invalid ids never match anything.
            suffixes: Optional extensions the file must end with.
        """
        if not is_valid_job_id(job_id):
            return None
        for entry in self._list():
            name = entry.name
            if not _belongs_to(name, job_id) or _is_partial(name):
                continue
            if suffixes and not name.lower().endswith(suffixes):
                continue
            artifact = self._artifact_for(Path(entry.path), job_id)
            if artifact is not None:
                return artifact
        return None

    def stat(self, job_id: str) -> Artifact:
        """Return size and path of *job_id*'s artifact or raise ``NotFound``."""
        artifact = self.exists(job_id)
        if artifact is None:
            raise NotFound(f"No file for job {job_id}")
        return artifact

    def artifact_at(self, path, job_id: str) -> Optional[Artifact]:
        """Return the artifact at *path* if it is a finished file of *job_id* in this store."""
        if not path or not is_valid_job_id(job_id):
            return None
        candidate = Path(path)
        if candidate.parent.resolve() != self.directory.resolve():
            return None
        if not _belongs_to(candidate.name, job_id) or _is_partial(candidate.name):
            return None
        return self._artifact_for(self.directory / candidate.name, job_id)

    # ── Mutation ─────────────────────────────────────────────────

    def delete(self, job_id: str) -> Artifact:
        """Remove *job_id*'s artifact.

        Returns:
            The artifact that was removed.

        Raises:
            NotFound: No artifact exists, including when a concurrent
                delete got there first.
        """
        artifact = self.stat(job_id)
        try:
            artifact.path.unlink()
        except FileNotFoundError:
            raise NotFound(f"No file for job {job_id}") from None
        self.logger.info("Deleted %s", artifact.filename, extra={"job_id": job_id})
        return artifact

    def remove_entry(self, filename: str) -> bool:
        """Remove one scanned entry by name; False if it is already gone.

        Raises:
            OSError: The file exists but could not be removed.
        """
        path = self._plain_child(filename)
        if path is None:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    # ── Scanning / serving ───────────────────────────────────────

    def scan_all(self) -> Iterator[ScanEntry]:
        """Yield ``(filename, modified_at)`` for every regular, non-hidden file.

        The directory is re-read on each call, so the iterator can be
        restarted by calling again.
        """
        for entry in self._list():
            if entry.name.startswith("."):
                continue
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
                modified = entry.stat(follow_symlinks=False).st_mtime
            except FileNotFoundError:
                continue
            yield ScanEntry(filename=entry.name, modified_at=modified)

    def resolve_download(self, filename: str) -> Path:
        """Return the path of a public *filename* or raise ``NotFound``."""
        path = self._plain_child(filename)
        if path is None or _is_partial(filename) or not path.is_file():
            raise NotFound(f"No such file: {filename}")
        return path

    def disk_usage(self) -> dict:
        """File count and total bytes currently held."""
        count = 0
        total = 0
        for entry in self._list():
            try:
                if entry.is_file(follow_symlinks=False):
                    total += entry.stat(follow_symlinks=False).st_size
                    count += 1
            except FileNotFoundError:
                continue
        return {"files": count, "bytes": total}

    # ── Private helpers ──────────────────────────────────────────

    def _list(self):
        try:
            with os.scandir(self.directory) as it:
                return list(it)
        except FileNotFoundError:
            self.logger.warning("Downloads directory missing: %s", self.directory)
            return []

    def _plain_child(self, filename: str) -> Optional[Path]:
        if not filename or filename != os.path.basename(filename) or filename in (".", ".."):
            return None
        if filename.startswith("."):
            return None
        return self.directory / filename

    def _artifact_for(self, path: Path, job_id: str) -> Optional[Artifact]:
        try:
            st = path.stat()
        except FileNotFoundError:
            return None
        if not path.is_file():
            return None
        return Artifact(
            job_id=job_id,
            filename=path.name,
            path=path,
            size=st.st_size,
            modified_at=st.st_mtime,
        )

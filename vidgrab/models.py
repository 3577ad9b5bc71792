"""
Value types passed between the job runner, the artifact store and the
HTTP layer.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .constants import (
    AUDIO_BITRATES,
    AUDIO_FORMAT,
    DEFAULT_AUDIO_BITRATE,
    DEFAULT_VIDEO_QUALITY,
    VIDEO_CONTAINER,
    VIDEO_FORMATS,
)

VIDEO = "video"
AUDIO = "audio"


@dataclass(frozen=True)
class Artifact:
    """A finished download sitting in the downloads directory."""

    job_id: str
    filename: str
    path: Path
    size: int
    modified_at: float

    @property
    def download_url(self) -> str:
        return f"/downloads/{self.filename}"


@dataclass(frozen=True)
class ScanEntry:
    """One directory entry as seen by the retention sweep."""

    filename: str
    modified_at: float


@dataclass(frozen=True)
class Profile:
    """Output tier requested for a job: a video quality or an audio bitrate."""

    kind: str
    value: str

    @classmethod
    def video(cls, quality: Optional[str] = None) -> "Profile":
        """Video profile; unknown qualities fall back to the default tier."""
        quality = str(quality) if quality is not None else DEFAULT_VIDEO_QUALITY
        if quality not in VIDEO_FORMATS:
            quality = DEFAULT_VIDEO_QUALITY
        return cls(VIDEO, quality)

    @classmethod
    def audio(cls, bitrate: Optional[str] = None) -> "Profile":
        """Audio profile; unknown bitrates fall back to the default tier."""
        bitrate = str(bitrate) if bitrate is not None else DEFAULT_AUDIO_BITRATE
        if bitrate not in AUDIO_BITRATES:
            bitrate = DEFAULT_AUDIO_BITRATE
        return cls(AUDIO, bitrate)

    @property
    def field_name(self) -> str:
        return "quality" if self.kind == VIDEO else "bitrate"

    def format_args(self) -> List[str]:
        """yt-dlp arguments selecting the format and output container."""
        if self.kind == VIDEO:
            return ["-f", VIDEO_FORMATS[self.value], "--merge-output-format", VIDEO_CONTAINER]
        return [
            "-f",
            "bestaudio",
            "--extract-audio",
            "--audio-format",
            AUDIO_FORMAT,
            "--audio-quality",
            f"{self.value}K",
        ]

    def expected_suffixes(self) -> Optional[tuple]:
        """Extensions a finished artifact may carry, or None for any."""
        if self.kind == AUDIO:
            return (f".{AUDIO_FORMAT}",)
        return None


@dataclass(frozen=True)
class JobHandle:
    """Result of a successful job, returned to the HTTP caller."""

    job_id: str
    filename: str
    download_url: str
    profile: Profile
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "id": self.job_id,
            "filename": self.filename,
            "downloadUrl": self.download_url,
            self.profile.field_name: self.profile.value,
            "size": self.size,
        }


@dataclass(frozen=True)
class TransformResult:
    """How one downloader run ended."""

    exit_code: int
    output_path: Optional[str] = None
    stderr_tail: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass
class SweepReport:
    """Counts from one retention sweep."""

    scanned: int = 0
    deleted: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"scanned": self.scanned, "deleted": self.deleted, "failed": self.failed}

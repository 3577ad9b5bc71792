"""
vidgrab - short-lived video and audio downloads over HTTP, backed by yt-dlp
"""

__version__ = "1.0.0"

from .artifact_store import ArtifactStore
from .job_runner import JobRunner
from .retention import RetentionSweeper
from .web_server import DownloadServer

__all__ = [
    "ArtifactStore",
    "JobRunner",
    "RetentionSweeper",
    "DownloadServer",
]

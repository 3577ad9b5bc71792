"""
External tool clients.

- ``ytdlp_client`` – yt-dlp downloads (async handle) and metadata lookups
"""

from .ytdlp_client import TransformProcess, YtDlpClient

__all__ = ["YtDlpClient", "TransformProcess"]

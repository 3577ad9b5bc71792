"""
Centralised constants for the vidgrab service.

Format maps, retention defaults, rate-limit defaults and logging limits
live here so any module can import them without circular dependencies.
"""

# ── Version ──────────────────────────────────────────────────────
APP_VERSION = "1.0.0"

# ── Default paths ────────────────────────────────────────────────
DEFAULT_CONFIG_PATH = "config.json"
DEFAULT_DOWNLOAD_DIR = "downloads"
DEFAULT_YTDLP_BINARY = "yt-dlp"

# ── Video quality tiers → yt-dlp format selectors ────────────────
VIDEO_FORMATS: dict[str, str] = {
    "360": "best[height<=360]",
    "480": "best[height<=480]",
    "720": "best[height<=720]",
    "1080": "best[height<=1080]",
    "4k": "best[height<=2160]",
    "best": "best",
}
DEFAULT_VIDEO_QUALITY = "720"
VIDEO_CONTAINER = "mp4"

# ── Audio bitrate tiers (kbps) ───────────────────────────────────
AUDIO_BITRATES = ("128", "192", "256", "320")
DEFAULT_AUDIO_BITRATE = "192"
AUDIO_FORMAT = "mp3"

# ── yt-dlp scratch files that never count as a finished artifact ─
PARTIAL_SUFFIXES = frozenset({".part", ".ytdl", ".temp", ".tmp"})

# ── Retention ────────────────────────────────────────────────────
DEFAULT_RETENTION_HOURS = 24
DEFAULT_SWEEP_INTERVAL_SECONDS = 60 * 60

# ── Admission control ────────────────────────────────────────────
DEFAULT_MAX_CONCURRENT_JOBS = 4

# ── Rate limiting (applies to /api/ only) ────────────────────────
DEFAULT_RATE_LIMIT_REQUESTS = 10
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 15 * 60

# ── MIME types for served artifacts ──────────────────────────────
MIME_TYPES: dict[str, str] = {
    ".mp4": "video/mp4",
    ".mkv": "video/x-matroska",
    ".webm": "video/webm",
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".opus": "audio/opus",
}

# ── Logging ──────────────────────────────────────────────────────
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10 MB per log file
LOG_BACKUP_COUNT = 5

# ── Health ───────────────────────────────────────────────────────
MIN_FREE_DISK_GB = 1.0

"""
Utility functions shared by the vidgrab components
"""

import logging
import re
import uuid

from .observability.logging import setup_structured_logger

# Accepted source URLs: scheme optional, YouTube hosts only, non-empty path.
_SUPPORTED_URL_PATTERNS = (
    re.compile(r"^(https?://)?(www\.)?(youtube\.com|youtu\.be)/.+$"),
    re.compile(r"^(https?://)?(www\.)?youtube\.com/watch\?v=[\w-]+$"),
    re.compile(r"^(https?://)?(www\.)?youtu\.be/[\w-]+$"),
)

_JOB_ID_RE = re.compile(r"^[\w-]+$")


def setup_logger(name: str, log_file: str, level=None, debug: bool = False) -> logging.Logger:
    """
    Setup a component logger with rotating JSON file and console output

    Args:
        name: Logger name
        log_file: Log file name under the log directory
        level: Logging level (overrides debug flag if provided)
        debug: If True, set level to DEBUG

    Returns:
        Configured logger
    """
    return setup_structured_logger(name, log_file, level=level, debug=debug)


def is_supported_url(url) -> bool:
    """Return True if *url* points at a host the downloader is allowed to fetch."""
    if not isinstance(url, str):
        return False
    url = url.strip()
    if not url or any(ch.isspace() for ch in url):
        return False
    return any(p.match(url) for p in _SUPPORTED_URL_PATTERNS)


def generate_job_id() -> str:
    """Return a fresh, never-reused job identifier."""
    return str(uuid.uuid4())


def is_valid_job_id(job_id) -> bool:
    """
    Check that a caller-supplied job id is safe to match against filenames.

    Rejects empty values and anything carrying a path separator or dot,
    so a lookup can never escape the downloads directory or match by a
    bare extension.
    """
    return isinstance(job_id, str) and bool(_JOB_ID_RE.match(job_id))


def format_size(size_bytes: int) -> str:
    """
    Format byte size to human-readable string

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.50 GB")
    """
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} PB"

"""Video metadata routes: format listing and quick URL validation."""

from typing import Any, Dict, List

from flask import Blueprint, jsonify

from ..exceptions import InvalidInput, TransformFailed
from ..utils import is_supported_url
from .common import request_body, server as _server

info_bp = Blueprint("info", __name__, url_prefix="/api/info")


def video_formats(formats: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Muxed (audio+video) formats, one per height, tallest first."""
    seen = set()
    result = []
    muxed = [
        f for f in formats
        if f.get("vcodec") not in (None, "none") and f.get("acodec") not in (None, "none")
    ]
    for f in sorted(muxed, key=lambda f: f.get("height") or 0, reverse=True):
        height = f.get("height")
        if height in seen:
            continue
        seen.add(height)
        result.append(
            {
                "quality": f.get("format_note") or (f"{height}p" if height else None),
                "height": height,
                "width": f.get("width"),
                "formatId": f.get("format_id"),
                "ext": f.get("ext"),
                "filesize": f.get("filesize") or f.get("filesize_approx"),
            }
        )
    return result


def audio_formats(formats: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Audio-only formats with a known bitrate, highest first."""
    audio = [
        {
            "bitrate": f.get("abr"),
            "formatId": f.get("format_id"),
            "ext": f.get("ext"),
            "filesize": f.get("filesize") or f.get("filesize_approx"),
        }
        for f in formats
        if f.get("vcodec") == "none" and f.get("acodec") not in (None, "none") and f.get("abr")
    ]
    return sorted(audio, key=lambda f: f["bitrate"], reverse=True)


@info_bp.route("/video", methods=["POST"])
def api_video_info():
    """Title, duration, uploader and available formats for a URL."""
    data = request_body()
    url = data.get("url")
    if not url:
        raise InvalidInput("URL is required")
    if not is_supported_url(url):
        raise InvalidInput("Unsupported or malformed URL")

    meta = _server().ytdlp.fetch_info(url.strip())
    formats = meta.get("formats") or []
    return jsonify(
        {
            "id": meta.get("id"),
            "title": meta.get("title"),
            "description": meta.get("description"),
            "duration": meta.get("duration"),
            "thumbnail": meta.get("thumbnail"),
            "uploader": meta.get("uploader"),
            "uploadDate": meta.get("upload_date"),
            "views": meta.get("view_count"),
            "videoFormats": video_formats(formats),
            "audioFormats": audio_formats(formats),
        }
    )


@info_bp.route("/validate", methods=["POST"])
def api_validate_url():
    """Check the URL shape, then whether the video can actually be read."""
    data = request_body()
    url = data.get("url")
    if not is_supported_url(url):
        return jsonify({"valid": False})
    try:
        _server().ytdlp.fetch_info(url.strip())
    except TransformFailed:
        return jsonify(
            {"valid": True, "exists": False, "error": "Video not found or private"}
        )
    return jsonify({"valid": True, "exists": True})

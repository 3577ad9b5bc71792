"""Download job routes: start, status and delete."""

from flask import Blueprint, jsonify

from ..exceptions import InvalidInput
from .common import request_body, server as _server

download_bp = Blueprint("download", __name__, url_prefix="/api/download")


def _request_url(data: dict) -> str:
    url = data.get("url")
    if not url or not isinstance(url, str):
        raise InvalidInput("URL is required")
    return url


@download_bp.route("/video", methods=["POST"])
def api_download_video():
    """Download a video at the requested quality and return its handle."""
    data = request_body()
    url = _request_url(data)
    handle = _server().job_runner.start_video(url, data.get("quality"))
    return jsonify(handle.to_dict())


@download_bp.route("/audio", methods=["POST"])
def api_download_audio():
    """Extract MP3 audio at the requested bitrate and return its handle."""
    data = request_body()
    url = _request_url(data)
    handle = _server().job_runner.start_audio(url, data.get("bitrate"))
    return jsonify(handle.to_dict())


@download_bp.route("/status/<job_id>")
def api_download_status(job_id):
    artifact = _server().store.exists(job_id)
    if artifact is None:
        return jsonify({"exists": False})
    return jsonify(
        {
            "exists": True,
            "filename": artifact.filename,
            "size": artifact.size,
            "downloadUrl": artifact.download_url,
        }
    )


@download_bp.route("/<job_id>", methods=["DELETE"])
def api_delete_download(job_id):
    """Remove a finished download ahead of the retention sweep."""
    _server().store.delete(job_id)
    return jsonify({"success": True, "message": "File removed"})

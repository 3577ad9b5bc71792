"""Serving finished downloads as attachments."""

from flask import Blueprint, current_app, send_file

from ..constants import MIME_TYPES

files_bp = Blueprint("files", __name__)


def _server():
    return current_app.config["server"]


@files_bp.route("/downloads/<path:filename>")
def serve_download(filename):
    """Send one finished file; unknown or unsafe names give 404."""
    path = _server().store.resolve_download(filename)
    return send_file(
        path,
        mimetype=MIME_TYPES.get(path.suffix.lower(), "application/octet-stream"),
        as_attachment=True,
        download_name=path.name,
        conditional=True,
    )

"""
Flask Blueprints organised by concern.

Each blueprint reaches the ``DownloadServer`` instance via
``current_app.config['server']``.
"""

from .download_bp import download_bp
from .files_bp import files_bp
from .info_bp import info_bp
from .observability_bp import observability_bp

__all__ = [
    "download_bp",
    "info_bp",
    "files_bp",
    "observability_bp",
]

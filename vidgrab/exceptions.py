"""
Error taxonomy for download jobs and artifact lookups.

Every error carries the HTTP status and machine-readable code the
request layer answers with, so routes never map errors by hand.
"""

from typing import Any, Dict


class VidgrabError(Exception):
    """Base class for errors that end a single request."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = ""):
        self.message = message or (self.__doc__ or self.code).strip()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message, "code": self.code}


class InvalidInput(VidgrabError):
    """Missing or unsupported request input."""

    status_code = 400
    code = "invalid_input"


class TransformFailed(VidgrabError):
    """The downloader exited with an error or could not be started."""

    status_code = 502
    code = "transform_failed"

    def __init__(self, message: str = "", *, exit_code: int = None, detail: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.detail = detail


class MissingArtifact(VidgrabError):
    """The downloader reported success but left no matching file."""

    status_code = 500
    code = "missing_artifact"

    def __init__(self, message: str = "", *, job_id: str = ""):
        super().__init__(message)
        self.job_id = job_id

    def to_dict(self) -> Dict[str, Any]:
        # Never echo internal paths back to the caller.
        return {"success": False, "error": "Downloaded file could not be located", "code": self.code}


class NotFound(VidgrabError):
    """No artifact exists for the requested job."""

    status_code = 404
    code = "not_found"

"""Helpers shared by the API blueprints."""

from typing import Any, Dict

from flask import current_app, request

from ..exceptions import InvalidInput


def server():
    return current_app.config["server"]


def request_body() -> Dict[str, Any]:
    """Parsed JSON object from the request; an empty dict when there is no JSON body.

    Raises:
        InvalidInput: The body is JSON but not an object.
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data

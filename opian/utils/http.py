"""Request helpers shared by the JSON blueprints."""
from flask import request

from opian.exceptions import BusinessLogicError


def get_json_body() -> dict:
    """
    JSON object from the request body.

    Raises:
        BusinessLogicError: if the body is present but not a JSON object.
    """
    data = request.get_json(silent=True)
    if data is None:
        if request.data:
            raise BusinessLogicError('Request body must be valid JSON')
        return {}
    if not isinstance(data, dict):
        raise BusinessLogicError('Request body must be a JSON object')
    return data

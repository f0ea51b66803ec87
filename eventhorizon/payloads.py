"""Request body helpers shared by the blueprints."""

from typing import Any, Dict, Optional

from flask import request

NOT_AN_OBJECT = "Request body must be a JSON object."


def json_object() -> Optional[Dict[str, Any]]:
    """
    The request's JSON body as a dict.

    A missing or unparsable body counts as {}. Returns None when the body is
    valid JSON but not an object (e.g. a list), so handlers can answer 400.
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        return None
    return data

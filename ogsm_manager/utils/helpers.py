"""Shared request helpers for the OGSM blueprints.

json_body:   request JSON as a dict; anything else is a ValidationError
"""
from flask import request

from ogsm_manager.core.exceptions import ValidationError


def json_body() -> dict:
    """Return the request JSON object, ``{}`` when there is no body.

    Lists and scalars are rejected so services can rely on ``dict.get``.
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(
            "Request body must be a JSON object",
            details={"received": type(data).__name__},
        )
    return data

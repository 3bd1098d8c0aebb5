"""Shared route utilities."""
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from flask import jsonify, request


def error_response(status: int, message: str, details: Optional[Any] = None):
    payload = {"error": {"code": status, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return jsonify(payload), status


def read_json_object(*, required: bool = True) -> Tuple[Optional[Dict[str, Any]], Any]:
    """Return ``(payload, None)`` or ``(None, error_response)``.

    With ``required=False`` a request without a JSON body yields ``{}``.
    """
    if not request.is_json:
        if not required and not request.get_data():
            return {}, None
        return None, error_response(415, "Content-Type 'application/json' requis.")

    data = request.get_json(silent=True)
    if data is None:
        if not required and not request.get_data():
            return {}, None
        return None, error_response(400, "JSON invalide ou non parsable.")

    if not isinstance(data, dict):
        return None, error_response(
            400,
            "Payload JSON invalide: un objet JSON (type dict) est requis.",
        )
    return data, None

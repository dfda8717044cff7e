# agrichain/routes/helpers.py

from __future__ import annotations

from typing import Any, Dict

from flask import current_app, jsonify, request

from agrichain.preferences import PreferenceStore


def json_payload() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


def error_response(message: str, status: int = 400):
    return jsonify({"error": message}), status


def unauthorized():
    return error_response("Session expired. Please sign in again.", 401)


def require_farmer(state):
    """None when the signed-in user is a farmer, else an error response."""
    user = state.current_user
    if user is None:
        return unauthorized()
    if not user.is_farmer:
        return error_response("Only farmers can access this endpoint", 403)
    return None


def preferences() -> PreferenceStore:
    return current_app.extensions["agrichain.preferences"]


def dump(items):
    return [i.model_dump(mode="json") for i in items]

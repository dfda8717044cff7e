# agrichain/routes/root/root_routes.py

from flask import Blueprint, current_app, jsonify

from agrichain import pricing
from agrichain.initializer import AppInitializer
from agrichain.routes.helpers import error_response

root_bp = Blueprint("root", __name__)


def _initializer() -> AppInitializer:
    return current_app.extensions["agrichain.initializer"]


@root_bp.get("/")
def home():
    return jsonify({"message": "AgriChain API running"})


# -----------------------------
# HEALTH / INITIALIZATION
# -----------------------------
@root_bp.get("/health")
def health():
    init = _initializer()
    body = {"ok": init.initialized, **init.initialization_results}
    return jsonify(body), (200 if init.initialized else 503)


@root_bp.post("/health/retry")
def retry_initialization():
    """Re-run startup checks after a failed initialization."""
    init = _initializer()
    ok = init.initialize()
    return jsonify({"ok": ok, **init.initialization_results}), (200 if ok else 503)


# -----------------------------
# CROP PRICING REFERENCE
# -----------------------------
@root_bp.get("/api/v1/pricing")
def list_pricing():
    return jsonify({"pricing": pricing.all_pricing()})


@root_bp.get("/api/v1/pricing/<crop_type>")
def crop_pricing(crop_type: str):
    row = pricing.get_pricing(crop_type)
    if not row:
        return error_response("No pricing for this crop type", 404)
    return jsonify(row)

# agrichain/routes/session/session_routes.py

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from agrichain.models.crop_models import CropCategory, CropType
from agrichain.preferences import has_seen_onboarding, mark_onboarding_complete
from agrichain.routes.helpers import dump, error_response, preferences, unauthorized
from agrichain.state.sessions import sessions

session_bp = Blueprint("session", __name__, url_prefix="/api/v1/session")


@session_bp.get("")
@jwt_required()
def snapshot():
    uid = get_jwt_identity()
    with sessions.session_for(uid) as state:
        if state is None:
            return unauthorized()
        body = state.snapshot()
        body["isFirstTime"] = not has_seen_onboarding(preferences(), uid)
        return jsonify(body)


@session_bp.post("/refresh")
@jwt_required()
def refresh():
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        state.refresh_data()
        return jsonify(state.snapshot())


@session_bp.get("/crops/search")
@jwt_required()
def search_crops():
    q = (request.args.get("q") or "").strip()
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        return jsonify({"crops": dump(state.search_crops(q))})


@session_bp.get("/crops/filter")
@jwt_required()
def filter_crops():
    category = request.args.get("category")
    crop_type = request.args.get("type")
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        try:
            if category:
                rows = state.filter_crops_by_category(CropCategory(category))
            elif crop_type:
                rows = state.filter_crops_by_type(CropType(crop_type))
            else:
                rows = state.crops
        except ValueError:
            return error_response("Unknown category or crop type")
        return jsonify({"crops": dump(rows)})


@session_bp.post("/onboarding/complete")
@jwt_required()
def complete_onboarding():
    mark_onboarding_complete(preferences(), get_jwt_identity())
    return jsonify({"success": True, "isFirstTime": False})

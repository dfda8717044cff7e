# agrichain/routes/market/rating_routes.py

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from agrichain.models.rating_models import RatingType, UserRatingStats
from agrichain.routes.helpers import dump, error_response, json_payload, unauthorized
from agrichain.services.database_service import DatabaseService
from agrichain.state.sessions import sessions

rating_bp = Blueprint("ratings", __name__, url_prefix="/api/v1/ratings")


def _rating_type(value, default=None):
    if value in (None, ""):
        return default
    return RatingType(value)


@rating_bp.get("/me")
@jwt_required()
def my_ratings():
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        stats = state.user_rating_stats
        return jsonify({
            "ratings": dump(state.ratings),
            "stats": stats.model_dump(mode="json") if stats else None,
        })


@rating_bp.get("/users/<user_id>")
@jwt_required()
def ratings_for_user(user_id: str):
    try:
        rating_type = _rating_type(request.args.get("type"))
    except ValueError:
        return error_response("Unknown rating type")

    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        ratings = state.get_ratings_for_user(user_id, rating_type)
        stats = DatabaseService().get_user_rating_stats(user_id)
        return jsonify({
            "ratings": dump(ratings),
            "stats": UserRatingStats.from_doc(stats).model_dump(mode="json") if stats else None,
        })


@rating_bp.post("")
@jwt_required()
def add_rating():
    data = json_payload()
    to_user_id = (data.get("toUserId") or "").strip()
    if not to_user_id:
        return error_response("toUserId is required")

    try:
        rating_type = _rating_type(data.get("ratingType"), RatingType.overall)
        value = float(data.get("rating"))
    except (TypeError, ValueError):
        return error_response("rating must be a number and ratingType a known type")
    if not 1 <= value <= 5:
        return error_response("rating must be between 1 and 5")

    target = DatabaseService().get_user(to_user_id)
    if not target:
        return error_response("User not found", 404)

    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        user = state.current_user
        if user is None:
            return unauthorized()
        if user.id == to_user_id:
            return error_response("You cannot rate yourself")

        ok = state.add_rating(
            from_user_id=user.id,
            from_user_name=user.name,
            to_user_id=to_user_id,
            to_user_name=target.get("name", ""),
            rating_type=rating_type,
            rating=value,
            review=data.get("review"),
            transaction_id=data.get("orderId"),
        )
        if not ok:
            return error_response(state.error or "Failed to add rating")
        return jsonify({"success": True}), 201

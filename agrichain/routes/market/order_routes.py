# agrichain/routes/market/order_routes.py

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_jwt_extended import get_jwt_identity, jwt_required
from pydantic import ValidationError

from agrichain.models.crop_models import Crop
from agrichain.models.order_models import ORDER_STATUSES, Order
from agrichain.routes.helpers import dump, error_response, json_payload, require_farmer, unauthorized
from agrichain.services.database_service import DatabaseService
from agrichain.state.app_state import AppStateError
from agrichain.state.sessions import sessions

order_bp = Blueprint("orders", __name__, url_prefix="/api/v1")


# ------------------------------------------------------------
# Orders
# ------------------------------------------------------------
@order_bp.get("/orders")
@jwt_required()
def my_orders():
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        return jsonify({"orders": dump(state.orders)})


@order_bp.post("/orders")
@jwt_required()
def place_order():
    """Order a fixed-price listing at its listed price."""
    data = json_payload()
    crop_id = (data.get("cropId") or "").strip()
    if not crop_id:
        return error_response("cropId is required")

    doc = DatabaseService().get_crop(crop_id)
    if not doc or not doc.get("isActive", True):
        return error_response("Crop not found", 404)
    crop = Crop.from_doc(doc)

    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        user = state.current_user
        if user is None:
            return unauthorized()
        if crop.farmerId == user.id:
            return error_response("You cannot order your own crop")

        try:
            order = Order(
                cropId=crop.id,
                cropName=crop.name,
                buyerId=user.id,
                buyerName=user.name,
                sellerId=crop.farmerId,
                quantity=data.get("quantity"),
                unitPrice=crop.price,
            )
        except ValidationError:
            return error_response("quantity must be > 0")

        try:
            saved = state.add_order(order)
        except AppStateError as e:
            return error_response(str(e))
        return jsonify({"success": True, "order": saved.model_dump(mode="json")}), 201


@order_bp.patch("/orders/<order_id>/status")
@jwt_required()
def update_order_status(order_id: str):
    status = (json_payload().get("status") or "").strip()
    if status not in ORDER_STATUSES:
        return error_response("Unknown order status")

    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        order = state.update_order_status(order_id, status)
        if order is None:
            return error_response(state.error or "Failed to update order")
        return jsonify({"success": True, "order": order.model_dump(mode="json")})


# ------------------------------------------------------------
# Loans
# ------------------------------------------------------------
@order_bp.get("/loans")
@jwt_required()
def my_loans():
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        return jsonify({"loans": dump(state.loans)})


@order_bp.post("/loans")
@jwt_required()
def apply_for_loan():
    data = json_payload()
    try:
        amount = float(data.get("amount"))
        term_months = int(data.get("termMonths", 12))
    except (TypeError, ValueError):
        return error_response("amount and termMonths must be numbers")
    if amount <= 0:
        return error_response("amount must be > 0")

    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        denied = require_farmer(state)
        if denied:
            return denied

        loan = state.apply_for_loan(amount, purpose=data.get("purpose", ""), term_months=term_months)
        if loan is None:
            return error_response(state.error or "Failed to apply for loan")
        return jsonify({"success": True, "loan": loan.model_dump(mode="json")}), 201

# agrichain/routes/account/wallet_routes.py

from flask import Blueprint, jsonify
from flask_jwt_extended import get_jwt_identity, jwt_required

from agrichain import blockchain
from agrichain.routes.helpers import error_response, json_payload, unauthorized
from agrichain.state.sessions import sessions

wallet_bp = Blueprint("wallet", __name__, url_prefix="/api/v1/wallet")


def _wallet(state) -> dict:
    user = state.current_user
    return {"walletBalance": state.wallet_balance, "walletAddress": user.walletAddress if user else ""}


@wallet_bp.get("")
@jwt_required()
def get_wallet():
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        return jsonify(_wallet(state))


@wallet_bp.put("/balance")
@jwt_required()
def set_balance():
    data = json_payload()
    try:
        balance = float(data.get("walletBalance"))
    except (TypeError, ValueError):
        return error_response("walletBalance must be a number")
    if balance < 0:
        return error_response("walletBalance cannot be negative")

    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        if not state.update_wallet_balance(balance):
            return error_response(state.error or "Failed to update wallet balance")
        return jsonify(_wallet(state))


@wallet_bp.post("/connect")
@jwt_required()
def connect_wallet():
    address = (json_payload().get("walletAddress") or "").strip()
    if not blockchain.is_wallet_address(address):
        return error_response("Invalid wallet address")

    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        if not state.set_wallet_address(address):
            return error_response(state.error or "Failed to connect wallet")
        return jsonify(_wallet(state))


@wallet_bp.post("/disconnect")
@jwt_required()
def disconnect_wallet():
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        if not state.disconnect_wallet():
            return error_response(state.error or "Failed to disconnect wallet")
        return jsonify(_wallet(state))

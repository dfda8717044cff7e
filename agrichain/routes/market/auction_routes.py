# agrichain/routes/market/auction_routes.py

from __future__ import annotations

import math

from flask import Blueprint, jsonify
from flask_jwt_extended import get_jwt_identity, jwt_required

from agrichain.models.auction_models import Auction
from agrichain.models.common import parse_timestamp
from agrichain.routes.helpers import dump, error_response, json_payload, require_farmer, unauthorized
from agrichain.services.database_service import DatabaseService
from agrichain.state.app_state import AppStateError
from agrichain.state.sessions import sessions

auction_bp = Blueprint("auctions", __name__, url_prefix="/api/v1/auctions")


@auction_bp.get("")
@jwt_required()
def active_auctions():
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        return jsonify({"auctions": dump(state.auctions)})


@auction_bp.post("")
@jwt_required()
def create_auction():
    data = json_payload()
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        denied = require_farmer(state)
        if denied:
            return denied

        try:
            starting_price = float(data.get("startingPrice"))
            reserve = data.get("reservePrice")
            reserve_price = float(reserve) if reserve not in (None, "") else None
        except (TypeError, ValueError):
            return error_response("startingPrice and reservePrice must be numbers")
        if starting_price < 0:
            return error_response("startingPrice must be >= 0")

        end_time = parse_timestamp(data.get("endTime"))
        if end_time is None:
            return error_response("endTime is required (ISO-8601)")

        auction = state.create_auction(
            crop_id=data.get("cropId", ""),
            starting_price=starting_price,
            end_time=end_time,
            reserve_price=reserve_price,
            start_time=parse_timestamp(data.get("startTime")),
        )
        if auction is None:
            return error_response(state.error or "Failed to create auction")
        return jsonify({"success": True, "auction": auction.model_dump(mode="json")}), 201


@auction_bp.get("/<auction_id>")
@jwt_required()
def auction_details(auction_id: str):
    doc = DatabaseService().get_auction(auction_id)
    if not doc:
        return error_response("Auction not found", 404)
    auction = Auction.from_doc(doc)
    return jsonify({
        "auction": auction.model_dump(mode="json"),
        "currentHighestBid": auction.current_highest_bid(),
        "reserveMet": auction.reserve_met(),
    })


@auction_bp.get("/by-crop/<crop_id>")
@jwt_required()
def auction_for_crop(crop_id: str):
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        auction = state.get_auction_by_crop_id(crop_id)
        if auction is None:
            return error_response("No active auction for this crop", 404)
        return jsonify({"auction": auction.model_dump(mode="json")})


@auction_bp.get("/<auction_id>/bids")
@jwt_required()
def auction_bids(auction_id: str):
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        return jsonify({"bids": dump(state.get_bids_for_auction(auction_id))})


@auction_bp.post("/<auction_id>/bids")
@jwt_required()
def place_bid(auction_id: str):
    data = json_payload()
    try:
        amount = float(data.get("amount"))
    except (TypeError, ValueError):
        return error_response("amount must be a number")
    if not math.isfinite(amount):
        return error_response("amount must be a finite number")

    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        try:
            auction = state.place_bid(auction_id, amount)
        except AppStateError as e:
            return error_response(str(e))
        return jsonify({
            "success": True,
            "auction": auction.model_dump(mode="json"),
            "currentHighestBid": auction.current_highest_bid(),
            "walletBalance": state.wallet_balance,
        }), 201


@auction_bp.post("/<auction_id>/close")
@jwt_required()
def close_auction(auction_id: str):
    status = (json_payload().get("status") or "ended").strip()
    if status not in ("ended", "cancelled"):
        return error_response("status must be 'ended' or 'cancelled'")

    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        denied = require_farmer(state)
        if denied:
            return denied
        if not state.close_auction(auction_id, status):
            return error_response(state.error or "Failed to close auction", 404)
        return jsonify({"success": True, "status": status})

# agrichain/routes/market/crop_routes.py

from __future__ import annotations

from io import BytesIO

from flask import Blueprint, current_app, jsonify, send_file
from flask_jwt_extended import get_jwt_identity, jwt_required
from pydantic import ValidationError

from agrichain import blockchain, pricing
from agrichain.models.common import now_utc, parse_timestamp
from agrichain.models.crop_models import BiddingType, Crop, CropCategory, CropType, QualityGrade
from agrichain.qr_utils import generate_listing_qr
from agrichain.routes.helpers import dump, error_response, json_payload, require_farmer, unauthorized
from agrichain.services.database_service import DatabaseService
from agrichain.state.sessions import sessions

crop_bp = Blueprint("crops", __name__, url_prefix="/api/v1/crops")


def _load_crop(crop_id: str):
    doc = DatabaseService().get_crop(crop_id)
    return Crop.from_doc(doc) if doc else None


def _enum_or_none(enum_cls, value):
    if value in (None, ""):
        return None
    return enum_cls(value)


# ------------------------------------------------------------
# Listing
# ------------------------------------------------------------
@crop_bp.get("")
@jwt_required()
def available_crops():
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        return jsonify({"crops": dump(state.available_crops)})


@crop_bp.get("/mine")
@jwt_required()
def my_crops():
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        return jsonify({"crops": dump(state.my_crops)})


@crop_bp.post("")
@jwt_required()
def create_crop():
    """Create a crop listing for the signed-in farmer."""
    data = json_payload()
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        denied = require_farmer(state)
        if denied:
            return denied

        if not (data.get("name") or "").strip():
            return error_response("Crop name is required")
        try:
            price = float(data.get("price"))
        except (TypeError, ValueError):
            return error_response("price must be a number")
        if price <= 0:
            return error_response("price must be > 0")

        try:
            ok = state.create_crop(
                name=data["name"].strip(),
                location=(data.get("location") or state.user_location or "").strip(),
                price=price,
                quantity=str(data.get("quantity") or ""),
                harvest_date=parse_timestamp(data.get("harvestDate"), now_utc()),
                image_url=data.get("imageUrl", ""),
                description=data.get("description", ""),
                crop_type=_enum_or_none(CropType, data.get("cropType")),
                category=_enum_or_none(CropCategory, data.get("category")),
                quality_grade=_enum_or_none(QualityGrade, data.get("qualityGrade")) or QualityGrade.standard,
                bidding_type=_enum_or_none(BiddingType, data.get("biddingType")) or BiddingType.fixedPrice,
            )
        except ValueError as e:
            return error_response(f"Invalid value: {e}")

        if not ok:
            return error_response(state.error or "Failed to create crop")
        return jsonify({"success": True, "crops": dump(state.my_crops)}), 201


@crop_bp.get("/<crop_id>")
@jwt_required()
def crop_details(crop_id: str):
    crop = _load_crop(crop_id)
    if crop is None:
        return error_response("Crop not found", 404)

    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        auction = state.get_auction_by_crop_id(crop_id)

    return jsonify({
        "crop": crop.model_dump(mode="json"),
        "pricing": pricing.get_pricing(crop.cropType) if crop.cropType else None,
        "auction": auction.model_dump(mode="json") if auction else None,
    })


@crop_bp.get("/<crop_id>/qr")
def crop_qr(crop_id: str):
    """Public: QR code PNG for sharing a listing."""
    crop = _load_crop(crop_id)
    if crop is None:
        return error_response("Crop not found", 404)
    png = generate_listing_qr(crop, current_app.config["PUBLIC_BASE_URL"])
    return send_file(BytesIO(png), mimetype="image/png", download_name=f"{crop_id}.png")


# ------------------------------------------------------------
# NFT
# ------------------------------------------------------------
@crop_bp.post("/<crop_id>/nft")
@jwt_required()
def mint_crop_nft(crop_id: str):
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        denied = require_farmer(state)
        if denied:
            return denied

        crop = _load_crop(crop_id)
        if crop is None or crop.farmerId != state.current_user.id:
            return error_response("Crop not found", 404)
        if crop.isNFT and crop.nftTokenId:
            return error_response("Crop is already minted as an NFT", 409)

        token_uri = blockchain.build_token_uri("crop", crop_id, current_app.config["PUBLIC_BASE_URL"])
        res = blockchain.mint_crop_nft(state.current_user.walletAddress, crop_id, token_uri)
        if not res.get("ok"):
            return error_response(res.get("error", "Blockchain error"), 502)

        DatabaseService().update_crop(crop_id, {
            "isNFT": True,
            "nftTokenId": res["token_id"],
            "nftTxHash": res.get("tx_hash"),
        })
        state.refresh_data()
        return jsonify({"success": True, "tokenId": res["token_id"], "txHash": res.get("tx_hash")})


@crop_bp.errorhandler(ValidationError)
def _invalid_crop(e):
    return error_response(f"Invalid crop data: {e.errors()[0].get('msg', 'invalid')}")

# agrichain/routes/account/nft_routes.py

from flask import Blueprint, current_app, jsonify
from flask_jwt_extended import get_jwt_identity, jwt_required

from agrichain import blockchain
from agrichain.models.common import generate_id, now_utc
from agrichain.routes.helpers import error_response, json_payload, require_farmer, unauthorized
from agrichain.services.database_service import DatabaseService
from agrichain.state.sessions import sessions

nft_bp = Blueprint("nft", __name__, url_prefix="/api/v1/nft")


@nft_bp.get("/land")
@jwt_required()
def my_land_nfts():
    return jsonify({"lands": DatabaseService().get_land_nfts_for_user(get_jwt_identity())})


@nft_bp.post("/land")
@jwt_required()
def mint_land():
    """Register a land parcel and mint it to the farmer's connected wallet."""
    data = json_payload()
    survey_number = (data.get("surveyNumber") or "").strip()
    if not survey_number:
        return error_response("surveyNumber is required")
    try:
        area = float(data.get("areaAcres"))
    except (TypeError, ValueError):
        return error_response("areaAcres must be a number")
    if area <= 0:
        return error_response("areaAcres must be > 0")

    with sessions.session_for(get_jwt_identity()) as state:
        if state is None:
            return unauthorized()
        denied = require_farmer(state)
        if denied:
            return denied
        user = state.current_user

        land_id = generate_id("LND")
        token_uri = blockchain.build_token_uri("land", land_id, current_app.config["PUBLIC_BASE_URL"])
        res = blockchain.mint_land_nft(user.walletAddress, land_id, token_uri)
        if not res.get("ok"):
            return error_response(res.get("error", "Blockchain error"), 502)

        land = {
            "id": land_id,
            "userId": user.id,
            "ownerName": user.name,
            "surveyNumber": survey_number,
            "areaAcres": area,
            "location": (data.get("location") or state.user_location or "").strip(),
            "tokenId": res["token_id"],
            "txHash": res.get("tx_hash"),
            "tokenUri": token_uri,
            "createdAt": now_utc(),
        }
        DatabaseService().create_land_nft(land)
        return jsonify({"success": True, "land": land}), 201

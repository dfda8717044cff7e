# agrichain/fastapi/marketplace_api.py
# Read-only marketplace router for the mobile app.
# Verifies access tokens issued by the Flask /auth endpoints (shared JWT_SECRET_KEY).

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import jwt
from fastapi import APIRouter, Depends, HTTPException, Query, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from agrichain import pricing
from agrichain.models.auction_models import Auction
from agrichain.models.crop_models import Crop, CropCategory, CropType
from agrichain.models.rating_models import Rating, RatingType, UserRatingStats
from agrichain.services.database_service import DatabaseService

# ---------- JWT config (must match Flask app) ----------
JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "change-me")

router = APIRouter(prefix="/api/v1/market", tags=["market"])

# --- one HTTPBearer scheme for this router (docs will show a lock) ---
bearer = HTTPBearer(scheme_name="AccessToken", bearerFormat="JWT", auto_error=False)


# ---------- Auth helpers ----------
def _jwt_decode(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def get_database_service() -> DatabaseService:
    return DatabaseService()


def auth_identity(
    credentials: HTTPAuthorizationCredentials = Security(bearer),
    db: DatabaseService = Depends(get_database_service),
) -> Dict[str, Any]:
    if not credentials or (credentials.scheme or "").lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")

    payload = _jwt_decode(credentials.credentials.strip())
    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Not an access token")
    if db.is_token_revoked(payload.get("jti")):
        raise HTTPException(status_code=401, detail="Token has been revoked")

    uid = payload.get("sub")
    if not uid or not isinstance(uid, str):
        raise HTTPException(status_code=401, detail="Invalid token payload")
    return {
        "userId": uid,
        "role": payload.get("role", ""),
        "name": payload.get("name", ""),
        "email": payload.get("email", ""),
    }


# ---------- Helpers ----------
def _active_auction_for(db: DatabaseService, crop_id: str) -> Optional[Auction]:
    for doc in db.get_active_auctions():
        if doc.get("cropId") == crop_id:
            return Auction.from_doc(doc)
    return None


def _auction_payload(auction: Auction) -> Dict[str, Any]:
    return {
        **auction.model_dump(mode="json"),
        "currentHighestBid": auction.current_highest_bid(),
        "reserveMet": auction.reserve_met(),
    }


def _parse_enum(enum_cls, value: Optional[str], label: str):
    if not value:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown {label}: {value}")


# ========= Routes =========

@router.get("/me")
def market_me(identity: Dict[str, Any] = Depends(auth_identity)):
    return {"ok": True, "identity": identity}


@router.get("/crops")
def market_crops(
    q: Optional[str] = None,
    category: Optional[str] = None,
    crop_type: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    identity: Dict[str, Any] = Depends(auth_identity),
    db: DatabaseService = Depends(get_database_service),
):
    """
    Active listings, newest first.
    Optional filters: free-text `q` (name, farmer, location), `category`, `crop_type`.
    """
    category_val = _parse_enum(CropCategory, category, "category")
    type_val = _parse_enum(CropType, crop_type, "crop type")

    crops: List[Crop] = [Crop.from_doc(d) for d in db.get_all_available_crops()]
    if q:
        needle = q.lower()
        crops = [
            c for c in crops
            if needle in c.name.lower() or needle in c.farmerName.lower() or needle in c.location.lower()
        ]
    if category_val:
        crops = [c for c in crops if c.category == category_val]
    if type_val:
        crops = [c for c in crops if c.cropType == type_val]

    return {"ok": True, "items": [c.model_dump(mode="json") for c in crops[:limit]]}


@router.get("/crops/{crop_id}")
def market_crop(
    crop_id: str,
    identity: Dict[str, Any] = Depends(auth_identity),
    db: DatabaseService = Depends(get_database_service),
):
    doc = db.get_crop(crop_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Crop not found")
    crop = Crop.from_doc(doc)
    auction = _active_auction_for(db, crop_id)
    return {
        "ok": True,
        "crop": crop.model_dump(mode="json"),
        "pricing": pricing.get_pricing(crop.cropType) if crop.cropType else None,
        "auction": _auction_payload(auction) if auction else None,
    }


@router.get("/auctions")
def market_auctions(
    limit: int = Query(50, ge=1, le=200),
    identity: Dict[str, Any] = Depends(auth_identity),
    db: DatabaseService = Depends(get_database_service),
):
    auctions = [Auction.from_doc(d) for d in db.get_active_auctions(limit=limit)]
    return {"ok": True, "items": [_auction_payload(a) for a in auctions]}


@router.get("/auctions/{auction_id}")
def market_auction(
    auction_id: str,
    identity: Dict[str, Any] = Depends(auth_identity),
    db: DatabaseService = Depends(get_database_service),
):
    doc = db.get_auction(auction_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Auction not found")
    return {"ok": True, "auction": _auction_payload(Auction.from_doc(doc))}


@router.get("/users/{user_id}/ratings")
def market_user_ratings(
    user_id: str,
    type: Optional[str] = None,
    identity: Dict[str, Any] = Depends(auth_identity),
    db: DatabaseService = Depends(get_database_service),
):
    rating_type = _parse_enum(RatingType, type, "rating type")
    rows = db.get_ratings_for_user(user_id, rating_type=rating_type.value if rating_type else None)
    stats = db.get_user_rating_stats(user_id)
    return {
        "ok": True,
        "items": [Rating.from_doc(r).model_dump(mode="json") for r in rows],
        "stats": UserRatingStats.from_doc(stats).model_dump(mode="json") if stats else None,
    }


@router.get("/pricing")
def market_pricing(identity: Dict[str, Any] = Depends(auth_identity)):
    return {"ok": True, "items": pricing.all_pricing()}

# agrichain/services/database_service.py

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pymongo import DESCENDING

from agrichain.models.common import generate_id, now_utc
from agrichain.mongo import get_db
from agrichain.services.rating_service import compute_rating_stats

# Collection names
USERS = "users"
CROPS = "crops"
AUCTIONS = "auctions"
ORDERS = "orders"
LOANS = "loans"
RATINGS = "ratings"
RATING_STATS = "user_rating_stats"
KYC = "kyc_records"
SECURITY_EVENTS = "security_events"
LAND_NFTS = "land_nfts"
REVOKED_TOKENS = "revoked_tokens"

# Never leak Mongo's ObjectId to callers
NO_OID = {"_id": 0}


class DatabaseServiceError(Exception):
    pass


class DatabaseService:
    """
    Document-store wrapper: get/create/update by `id` plus simple field queries.
    Every method speaks plain dicts; mapping to models happens in the callers.
    """

    def __init__(self, db=None):
        self._db = db

    @property
    def db(self):
        db = self._db if self._db is not None else get_db()
        if db is None:
            raise DatabaseServiceError("Database not configured")
        return db

    def ping(self) -> bool:
        try:
            self.db.command("ping")
            return True
        except Exception as e:
            print(f"⚠️ Mongo ping failed: {e}")
            return False

    # ------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------
    def _insert(self, collection: str, data: Dict[str, Any], prefix: str) -> str:
        doc = dict(data)
        doc["id"] = doc.get("id") or generate_id(prefix)
        doc.setdefault("createdAt", now_utc())
        self.db[collection].insert_one(doc)
        return doc["id"]

    def _get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        if not doc_id:
            return None
        return self.db[collection].find_one({"id": doc_id}, NO_OID)

    def _update(self, collection: str, doc_id: str, updates: Dict[str, Any]) -> bool:
        patch = dict(updates)
        patch.setdefault("updatedAt", now_utc())
        res = self.db[collection].update_one({"id": doc_id}, {"$set": patch})
        return res.matched_count > 0

    def _find(self, collection: str, query: Dict[str, Any], limit: int = 0) -> List[Dict[str, Any]]:
        cur = self.db[collection].find(query, NO_OID).sort("createdAt", DESCENDING)
        if limit:
            cur = cur.limit(limit)
        return list(cur)

    # ------------------------------------------------------------
    # USERS
    # ------------------------------------------------------------
    def create_user(self, user_data: Dict[str, Any]) -> bool:
        if not user_data.get("id"):
            return False
        self._insert(USERS, user_data, "USR")
        return True

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._get(USERS, user_id)

    def get_user_by_auth_uid(self, auth_uid: str) -> Optional[Dict[str, Any]]:
        return self.db[USERS].find_one({"authUid": auth_uid}, NO_OID)

    def update_user(self, user_id: str, updates: Dict[str, Any]) -> bool:
        return self._update(USERS, user_id, updates)

    # ------------------------------------------------------------
    # KYC + SECURITY EVENTS + REVOKED TOKENS
    # ------------------------------------------------------------
    def create_kyc_data(self, kyc_data: Dict[str, Any]) -> str:
        return self._insert(KYC, kyc_data, "KYC")

    def get_kyc_for_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        rows = self._find(KYC, {"userId": user_id}, limit=1)
        return rows[0] if rows else None

    def log_security_event(self, user_id: str, event: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.db[SECURITY_EVENTS].insert_one({
            "userId": user_id,
            "event": event,
            "details": details or {},
            "createdAt": now_utc(),
        })

    def revoke_token(self, jti: str, user_id: str, token_type: str = "access") -> None:
        self.db[REVOKED_TOKENS].update_one(
            {"jti": jti},
            {"$setOnInsert": {"userId": user_id, "type": token_type, "createdAt": now_utc()}},
            upsert=True,
        )

    def is_token_revoked(self, jti: Optional[str]) -> bool:
        if not jti:
            return False
        return self.db[REVOKED_TOKENS].find_one({"jti": jti}, NO_OID) is not None

    # ------------------------------------------------------------
    # CROPS
    # ------------------------------------------------------------
    def create_crop(self, crop_data: Dict[str, Any]) -> str:
        return self._insert(CROPS, crop_data, "CRP")

    def get_crop(self, crop_id: str) -> Optional[Dict[str, Any]]:
        return self._get(CROPS, crop_id)

    def update_crop(self, crop_id: str, updates: Dict[str, Any]) -> bool:
        return self._update(CROPS, crop_id, updates)

    def get_crops_by_farmer_id(self, farmer_id: str) -> List[Dict[str, Any]]:
        return self._find(CROPS, {"farmerId": farmer_id})

    def get_all_available_crops(self, limit: int = 200) -> List[Dict[str, Any]]:
        return self._find(CROPS, {"isActive": True}, limit=limit)

    # ------------------------------------------------------------
    # AUCTIONS
    # ------------------------------------------------------------
    def create_auction(self, auction_data: Dict[str, Any]) -> str:
        return self._insert(AUCTIONS, auction_data, "AUC")

    def get_auction(self, auction_id: str) -> Optional[Dict[str, Any]]:
        return self._get(AUCTIONS, auction_id)

    def get_active_auctions(self, limit: int = 100) -> List[Dict[str, Any]]:
        return self._find(AUCTIONS, {"status": "active"}, limit=limit)

    def update_auction(self, auction_id: str, updates: Dict[str, Any]) -> bool:
        return self._update(AUCTIONS, auction_id, updates)

    def record_bid(self, auction_id: str, bid: Dict[str, Any]) -> bool:
        """
        Append `bid` only while the auction is active and its stored highest bid
        is still below the amount, then debit the bidder's wallet. False when
        another bid got there first or the auction was closed.
        """
        amount = float(bid["amount"])
        now = now_utc()
        res = self.db[AUCTIONS].update_one(
            {"id": auction_id, "status": "active", "highestBid": {"$lt": amount}},
            {
                "$push": {"bids": bid},
                "$set": {"highestBid": amount, "updatedAt": now},
            },
        )
        if res.matched_count == 0:
            return False

        self.db[USERS].update_one(
            {"id": bid["bidderId"]},
            {"$inc": {"walletBalance": -amount}, "$set": {"updatedAt": now}},
        )
        return True

    # ------------------------------------------------------------
    # ORDERS + LOANS
    # ------------------------------------------------------------
    def create_order(self, order_data: Dict[str, Any]) -> str:
        return self._insert(ORDERS, order_data, "ORD")

    def get_orders_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        return self._find(ORDERS, {"$or": [{"buyerId": user_id}, {"sellerId": user_id}]})

    def update_order(self, order_id: str, updates: Dict[str, Any]) -> bool:
        return self._update(ORDERS, order_id, updates)

    def create_loan(self, loan_data: Dict[str, Any]) -> str:
        return self._insert(LOANS, loan_data, "LON")

    def get_loans_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        return self._find(LOANS, {"userId": user_id})

    # ------------------------------------------------------------
    # LAND NFTs
    # ------------------------------------------------------------
    def create_land_nft(self, land_data: Dict[str, Any]) -> str:
        return self._insert(LAND_NFTS, land_data, "LND")

    def get_land_nfts_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        return self._find(LAND_NFTS, {"userId": user_id})

    # ------------------------------------------------------------
    # RATINGS
    # ------------------------------------------------------------
    def add_rating(self, rating_data: Dict[str, Any]) -> bool:
        if not rating_data.get("toUserId") or not rating_data.get("fromUserId"):
            return False
        self._insert(RATINGS, rating_data, "RTG")
        return True

    def get_ratings_for_user(self, user_id: str, rating_type: Optional[str] = None) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {"toUserId": user_id}
        if rating_type:
            query["ratingType"] = rating_type
        return self._find(RATINGS, query)

    def calculate_rating_stats(self, user_id: str) -> Dict[str, Any]:
        """Recompute the aggregate for `user_id` from its rating records and store it."""
        stats = compute_rating_stats(user_id, self.get_ratings_for_user(user_id))
        self.db[RATING_STATS].update_one({"userId": user_id}, {"$set": stats}, upsert=True)
        return stats

    def get_user_rating_stats(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.db[RATING_STATS].find_one({"userId": user_id}, NO_OID)

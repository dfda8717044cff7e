# agrichain/state/app_state.py
"""
Per-session application state.

One AppState holds everything a signed-in client sees: the profile, the crop /
loan / order / auction / rating collections, and the loading + error flags.
Every mutation notifies the registered listeners with the store itself.
Callers run one operation at a time against a given store (see sessions.py).
"""

from __future__ import annotations

import math
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from agrichain import validators
from agrichain.models.auction_models import Auction, BidRecord
from agrichain.models.common import now_utc, parse_timestamp
from agrichain.models.crop_models import BiddingType, Crop, CropCategory, CropType, QualityGrade
from agrichain.models.order_models import Loan, Order
from agrichain.models.rating_models import Rating, RatingType, UserRatingStats
from agrichain.models.user_models import AuthIdentity, User, UserType
from agrichain.services.auth_service import AuthService
from agrichain.services.database_service import DatabaseService

Listener = Callable[["AppState"], None]

PROFILE_NOT_FOUND = "User profile not found. Please complete your registration."


class AppStateError(Exception):
    pass


class AppState:
    def __init__(
        self,
        auth_service: AuthService,
        database_service: DatabaseService,
        profile_fetch_attempts: int = 3,
        profile_fetch_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._auth = auth_service
        self._db = database_service
        self._profile_fetch_attempts = max(1, int(profile_fetch_attempts))
        self._profile_fetch_delay = profile_fetch_delay
        self._sleep = sleep

        self._listeners: List[Listener] = []
        self._unsubscribe_auth: Optional[Callable[[], None]] = None

        # Current user state
        self._current_user: Optional[User] = None
        self._auth_user: Optional[AuthIdentity] = None
        self._is_loading = False
        self._error: Optional[str] = None

        # Data collections
        self._crops: List[Crop] = []
        self._loans: List[Loan] = []
        self._orders: List[Order] = []
        self._auctions: List[Auction] = []
        self._ratings: List[Rating] = []
        self._user_rating_stats: Optional[UserRatingStats] = None

    # ------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------
    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify_listeners(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------
    @property
    def current_user(self) -> Optional[User]:
        return self._current_user

    @property
    def auth_user(self) -> Optional[AuthIdentity]:
        return self._auth_user

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def is_authenticated(self) -> bool:
        return self._auth_user is not None and self._current_user is not None

    @property
    def user_name(self) -> str:
        return self._current_user.name if self._current_user else "Guest"

    @property
    def wallet_balance(self) -> float:
        return self._current_user.walletBalance if self._current_user else 0.0

    @property
    def user_location(self) -> Optional[str]:
        return self._current_user.location if self._current_user else None

    @property
    def crops(self) -> List[Crop]:
        return self._crops

    @property
    def loans(self) -> List[Loan]:
        return self._loans

    @property
    def orders(self) -> List[Order]:
        return self._orders

    @property
    def auctions(self) -> List[Auction]:
        return self._auctions

    @property
    def ratings(self) -> List[Rating]:
        return self._ratings

    @property
    def user_rating_stats(self) -> Optional[UserRatingStats]:
        return self._user_rating_stats

    @property
    def my_crops(self) -> List[Crop]:
        user = self._current_user
        if user is None or user.userType != UserType.farmer:
            return []
        return [c for c in self._crops if c.farmerId == user.id]

    @property
    def available_crops(self) -> List[Crop]:
        user = self._current_user
        if user is not None and user.userType == UserType.farmer:
            return self._crops
        return [c for c in self._crops if c.isActive]

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------
    def initialize(self) -> None:
        self._set_loading(True)
        try:
            if self._unsubscribe_auth is None:
                self._unsubscribe_auth = self._auth.auth_state_changes(self._on_auth_state_changed)

            self._auth_user = self._auth.current_user
            if self._auth_user is not None:
                self._load_user_data(self._auth_user.uid)
        except Exception as e:
            self._set_error(f"Failed to initialize app: {e}")
        finally:
            self._set_loading(False)

    def dispose(self) -> None:
        if self._unsubscribe_auth is not None:
            self._unsubscribe_auth()
            self._unsubscribe_auth = None
        self._listeners.clear()

    def _on_auth_state_changed(self, identity: Optional[AuthIdentity]) -> None:
        self._auth_user = identity
        if identity is not None:
            self._load_user_data(identity.uid)
        else:
            self._current_user = None
            self._clear_data()
        self.notify_listeners()

    def load_user_data(self, auth_uid: str) -> None:
        self._load_user_data(auth_uid)

    def _load_user_data(self, auth_uid: str) -> None:
        try:
            print(f"🔍 Loading user data for auth UID: {auth_uid}")

            # profile write can trail account creation; retry a few times
            user_data: Optional[Dict[str, Any]] = None
            attempts = self._profile_fetch_attempts
            while attempts > 0 and user_data is None:
                user_data = self._db.get_user_by_auth_uid(auth_uid)
                if user_data is None:
                    attempts -= 1
                    print(f"⏳ User data not found, retrying... ({attempts} attempts left)")
                    if attempts > 0:
                        self._sleep(self._profile_fetch_delay)

            if user_data is None:
                print(f"❌ User data not found after retries for auth UID: {auth_uid}")
                self._set_error(PROFILE_NOT_FOUND)
                return

            print(f"✅ User data loaded successfully: {user_data.get('email')}")
            self._current_user = User.from_doc(user_data)
            self._load_user_related_data()
        except Exception as e:
            print(f"❌ Error loading user data: {e}")
            self._set_error(f"Failed to load user data: {e}")

    def _load_user_related_data(self) -> None:
        user = self._current_user
        if user is None:
            return

        try:
            if user.userType == UserType.farmer:
                crop_docs = self._db.get_crops_by_farmer_id(user.id)
            else:
                crop_docs = self._db.get_all_available_crops()
            self._crops = [Crop.from_doc(d) for d in crop_docs]

            self._loans = [Loan.from_doc(d) for d in self._db.get_loans_for_user(user.id)]
            self._orders = [Order.from_doc(d) for d in self._db.get_orders_for_user(user.id)]
            self._auctions = [Auction.from_doc(d) for d in self._db.get_active_auctions()]
            self.notify_listeners()
        except Exception as e:
            self._set_error(f"Failed to load user data: {e}")
            return

        self._load_rating_data()

    def refresh_data(self) -> None:
        if self._current_user is not None:
            self._load_user_related_data()

    def clear_user(self) -> None:
        self._current_user = None
        self._clear_data()

    # ------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------
    def sign_up(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        user_type: UserType,
        phone: str,
        aadhaar_number: str = "",
        pan_number: str = "",
        location: Optional[str] = None,
    ) -> bool:
        self._set_loading(True)
        self._clear_error()
        try:
            result = self._auth.sign_up(
                first_name=first_name,
                last_name=last_name,
                email=email,
                password=password,
                user_type=user_type,
                phone=phone,
                aadhaar_number=aadhaar_number,
                pan_number=pan_number,
                location=location,
            )
            if result.success:
                # profile arrives through the identity change
                return True
            self._set_error(result.message or "Sign up failed")
            return False
        except Exception as e:
            self._set_error(f"Sign up failed: {e}")
            return False
        finally:
            self._set_loading(False)

    def sign_in(self, email: str, password: str) -> bool:
        self._set_loading(True)
        self._clear_error()
        try:
            result = self._auth.sign_in(email=email, password=password)
            if result.success:
                return True
            self._set_error(result.message or "Sign in failed")
            return False
        except Exception as e:
            self._set_error(f"Sign in failed: {e}")
            return False
        finally:
            self._set_loading(False)

    def sign_out(self) -> None:
        self._set_loading(True)
        try:
            self._auth.sign_out()
        except Exception as e:
            self._set_error(f"Sign out failed: {e}")
        finally:
            self._set_loading(False)

    # ------------------------------------------------------------
    # Crops
    # ------------------------------------------------------------
    def create_crop(
        self,
        name: str,
        location: str,
        price: float,
        quantity: str,
        harvest_date: datetime,
        image_url: str = "",
        description: str = "",
        crop_type: Optional[CropType] = None,
        category: Optional[CropCategory] = None,
        quality_grade: QualityGrade = QualityGrade.standard,
        is_nft: bool = False,
        bidding_type: BiddingType = BiddingType.fixedPrice,
    ) -> bool:
        user = self._current_user
        if user is None:
            return False

        self._set_loading(True)
        try:
            crop = Crop(
                name=name,
                farmerId=user.id,
                farmerName=user.name,
                location=location,
                price=price,
                quantity=quantity,
                harvestDate=harvest_date,
                imageUrl=image_url,
                description=description,
                isNFT=is_nft,
                biddingType=bidding_type,
                cropType=crop_type,
                category=category,
                qualityGrade=quality_grade,
            )
            doc = crop.to_doc()
            doc.pop("id")
            self._db.create_crop(doc)
            self._load_user_related_data()
            return True
        except Exception as e:
            self._set_error(f"Failed to create crop: {e}")
            return False
        finally:
            self._set_loading(False)

    def search_crops(self, query: str) -> List[Crop]:
        if not query:
            return self._crops
        q = query.lower()
        return [
            c for c in self._crops
            if q in c.name.lower() or q in c.farmerName.lower() or q in c.location.lower()
        ]

    def filter_crops_by_category(self, category) -> List[Crop]:
        return [c for c in self._crops if c.category == category]

    def filter_crops_by_type(self, crop_type) -> List[Crop]:
        return [c for c in self._crops if c.cropType == crop_type]

    # ------------------------------------------------------------
    # Wallet
    # ------------------------------------------------------------
    def update_wallet_balance(self, new_balance: float) -> bool:
        user = self._current_user
        if user is None:
            return False

        try:
            now = now_utc()
            self._db.update_user(user.id, {"walletBalance": float(new_balance), "updatedAt": now})
            self._current_user = user.model_copy(update={"walletBalance": float(new_balance), "updatedAt": now})
            self.notify_listeners()
            return True
        except Exception as e:
            self._set_error(f"Failed to update wallet balance: {e}")
            return False

    def set_wallet_address(self, address: str) -> bool:
        user = self._current_user
        if user is None:
            return False
        try:
            now = now_utc()
            self._db.update_user(user.id, {"walletAddress": address, "updatedAt": now})
            self._current_user = user.model_copy(update={"walletAddress": address, "updatedAt": now})
            self.notify_listeners()
            return True
        except Exception as e:
            self._set_error(f"Failed to connect wallet: {e}")
            return False

    def disconnect_wallet(self) -> bool:
        if self._current_user is None:
            return False
        return self.set_wallet_address("")

    # ------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------
    def update_profile(
        self,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
        location: Optional[str] = None,
    ) -> bool:
        """Edit name, phone and location; fields left as None keep their value."""
        user = self._current_user
        if user is None:
            return False

        self._clear_error()
        updates: Dict[str, Any] = {}
        if first_name is not None:
            updates["firstName"] = first_name.strip()
        if last_name is not None:
            updates["lastName"] = last_name.strip()
        if phone is not None:
            updates["phone"] = phone.strip()
        if location is not None:
            updates["location"] = location.strip() or None

        checks = (
            ("firstName", lambda v: validators.validate_name(v, "First name")),
            ("lastName", lambda v: validators.validate_name(v, "Last name")),
            ("phone", validators.validate_phone),
        )
        message = next((m for m in (check(updates[k]) for k, check in checks if k in updates) if m), None)
        if message:
            self._set_error(message)
            return False
        if not updates:
            return True

        try:
            if "firstName" in updates or "lastName" in updates:
                stored = self._db.get_user(user.id) or {}
                updates["name"] = "{} {}".format(
                    updates.get("firstName", stored.get("firstName", "")),
                    updates.get("lastName", stored.get("lastName", "")),
                ).strip()
            updates["updatedAt"] = now_utc()
            self._db.update_user(user.id, updates)
            self._current_user = User.from_doc(self._db.get_user(user.id))
            self.notify_listeners()
            return True
        except Exception as e:
            self._set_error(f"Failed to update profile: {e}")
            return False

    # ------------------------------------------------------------
    # Auctions
    # ------------------------------------------------------------
    def get_auction_by_crop_id(self, crop_id: str) -> Optional[Auction]:
        return next((a for a in self._auctions if a.cropId == crop_id), None)

    def get_bids_for_auction(self, auction_id: str) -> List[BidRecord]:
        auction = next((a for a in self._auctions if a.id == auction_id), None)
        return list(auction.bids) if auction else []

    def create_auction(
        self,
        crop_id: str,
        starting_price: float,
        end_time: datetime,
        reserve_price: Optional[float] = None,
        start_time: Optional[datetime] = None,
    ) -> Optional[Auction]:
        user = self._current_user
        if user is None:
            return None

        self._clear_error()
        try:
            crop_doc = self._db.get_crop(crop_id)
            if not crop_doc or crop_doc.get("farmerId") != user.id:
                self._set_error("Crop not found")
                return None
            if self.get_auction_by_crop_id(crop_id) is not None:
                self._set_error("An auction is already running for this crop")
                return None

            auction = Auction(
                cropId=crop_id,
                sellerId=user.id,
                sellerName=user.name,
                startingPrice=starting_price,
                reservePrice=reserve_price,
                startTime=parse_timestamp(start_time, now_utc()),
                endTime=parse_timestamp(end_time),
            )
            if auction.endTime <= auction.startTime:
                self._set_error("Auction must end after it starts")
                return None

            doc = auction.to_doc()
            doc.pop("id")
            auction = auction.model_copy(update={"id": self._db.create_auction(doc)})
            self._db.update_crop(crop_id, {
                "biddingType": BiddingType.auction.value,
                "auctionId": auction.id,
                "auctionEndTime": auction.endTime,
                "startingBid": auction.startingPrice,
                "reservePrice": auction.reservePrice,
            })
            self._load_user_related_data()
            return auction
        except Exception as e:
            self._set_error(f"Failed to create auction: {e}")
            return None

    def place_bid(self, auction_id: str, bid_amount: float) -> Auction:
        """
        Accept a bid strictly above the current highest (or the starting price),
        append it to the auction and debit the bidder's wallet.
        """
        try:
            user = self._current_user
            if user is None:
                raise AppStateError("User not authenticated")

            index = next((i for i, a in enumerate(self._auctions) if a.id == auction_id), -1)
            if index == -1:
                raise AppStateError("Auction not found")

            amount = float(bid_amount)
            if not math.isfinite(amount):
                raise AppStateError("Bid amount must be a finite number")

            auction = self._auctions[index]
            if amount <= auction.current_highest_bid():
                raise AppStateError("Bid amount must be higher than current highest bid")

            new_bid = BidRecord(bidderName=user.name, bidderId=user.id, amount=amount)
            if not self._db.record_bid(auction.id, new_bid.model_dump()):
                # local copy is stale; reload before reporting why
                stored = self._db.get_auction(auction.id)
                self._load_user_related_data()
                if stored is None or stored.get("status") != "active":
                    raise AppStateError("Auction is no longer active")
                raise AppStateError("Bid amount must be higher than current highest bid")

            updated = auction.model_copy(update={
                "bids": [*auction.bids, new_bid],
                "updatedAt": now_utc(),
            })
            self._auctions[index] = updated
            self._current_user = user.model_copy(update={"walletBalance": user.walletBalance - new_bid.amount})
            self.notify_listeners()
            return updated
        except Exception as e:
            raise AppStateError(f"Failed to place bid: {e}") from e

    def close_auction(self, auction_id: str, status: str = "ended") -> bool:
        """Seller ends or cancels one of their running auctions."""
        user = self._current_user
        if user is None:
            return False

        self._clear_error()
        auction = next((a for a in self._auctions if a.id == auction_id), None)
        if auction is None or auction.sellerId != user.id:
            self._set_error("Auction not found")
            return False
        try:
            self._db.update_auction(auction_id, {"status": status})
            self._load_user_related_data()
            return True
        except Exception as e:
            self._set_error(f"Failed to close auction: {e}")
            return False

    # ------------------------------------------------------------
    # Orders + loans
    # ------------------------------------------------------------
    def add_order(self, order: Order) -> Order:
        try:
            doc = order.to_doc()
            doc.pop("id")
            saved = order.model_copy(update={"id": self._db.create_order(doc), "totalAmount": doc["totalAmount"]})
            self._orders.append(saved)
            self.notify_listeners()
            return saved
        except Exception as e:
            raise AppStateError(f"Failed to add order: {e}") from e

    def update_order_status(self, order_id: str, status: str) -> Optional[Order]:
        user = self._current_user
        if user is None:
            return None

        self._clear_error()
        index = next((i for i, o in enumerate(self._orders) if o.id == order_id), -1)
        if index == -1:
            self._set_error("Order not found")
            return None

        order = self._orders[index]
        # buyers may only withdraw an order the seller has not confirmed
        if user.id == order.buyerId and (status != "cancelled" or order.status != "pending"):
            self._set_error("Buyers can only cancel pending orders")
            return None

        try:
            now = now_utc()
            self._db.update_order(order_id, {"status": status, "updatedAt": now})
            updated = order.model_copy(update={"status": status, "updatedAt": now})
            self._orders[index] = updated
            self.notify_listeners()
            return updated
        except Exception as e:
            self._set_error(f"Failed to update order: {e}")
            return None

    def apply_for_loan(self, amount: float, purpose: str = "", term_months: int = 12, interest_rate: float = 7.0) -> Optional[Loan]:
        user = self._current_user
        if user is None:
            return None
        try:
            loan = Loan(userId=user.id, amount=amount, purpose=purpose, termMonths=term_months, interestRate=interest_rate)
            doc = loan.to_doc()
            doc.pop("id")
            loan = loan.model_copy(update={"id": self._db.create_loan(doc)})
            self._loans.append(loan)
            self.notify_listeners()
            return loan
        except Exception as e:
            self._set_error(f"Failed to apply for loan: {e}")
            return None

    # ------------------------------------------------------------
    # Ratings
    # ------------------------------------------------------------
    def add_rating(
        self,
        from_user_id: str,
        from_user_name: str,
        to_user_id: str,
        to_user_name: str,
        rating_type: RatingType,
        rating: float,
        review: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> bool:
        if self._current_user is None:
            return False

        self._set_loading(True)
        try:
            record = Rating(
                fromUserId=from_user_id,
                fromUserName=from_user_name,
                toUserId=to_user_id,
                toUserName=to_user_name,
                rating=rating,
                review=review,
                ratingType=rating_type,
                orderId=transaction_id,
            )
            doc = record.to_doc()
            doc.pop("id")
            success = self._db.add_rating(doc)
            if success:
                self.calculate_rating_stats(to_user_id)
                self._load_rating_data()
            return success
        except Exception as e:
            self._set_error(f"Failed to add rating: {e}")
            return False
        finally:
            self._set_loading(False)

    def get_ratings_for_user(self, user_id: str, rating_type: Optional[RatingType] = None) -> List[Rating]:
        try:
            type_name = getattr(rating_type, "value", rating_type)
            return [Rating.from_doc(d) for d in self._db.get_ratings_for_user(user_id, rating_type=type_name)]
        except Exception as e:
            self._set_error(f"Failed to get ratings for user: {e}")
            return []

    def calculate_rating_stats(self, user_id: str) -> Optional[UserRatingStats]:
        try:
            self._db.calculate_rating_stats(user_id)
            stats = self._db.get_user_rating_stats(user_id)
            return UserRatingStats.from_doc(stats) if stats else None
        except Exception as e:
            self._set_error(f"Failed to calculate rating stats: {e}")
            return None

    def _load_rating_data(self) -> None:
        user = self._current_user
        if user is None:
            return
        try:
            self._ratings = [Rating.from_doc(d) for d in self._db.get_ratings_for_user(user.id)]
            stats = self._db.get_user_rating_stats(user.id)
            if stats:
                self._user_rating_stats = UserRatingStats.from_doc(stats)
            self.notify_listeners()
        except Exception as e:
            self._set_error(f"Failed to load rating data: {e}")

    # ------------------------------------------------------------
    # Serialization for the HTTP layer
    # ------------------------------------------------------------
    def snapshot(self) -> Dict[str, Any]:
        def dump(items):
            return [i.model_dump(mode="json") for i in items]

        user = self._current_user
        return {
            "isAuthenticated": self.is_authenticated,
            "isLoading": self._is_loading,
            "error": self._error,
            "userName": self.user_name,
            "walletBalance": self.wallet_balance,
            "user": user.model_dump(mode="json") if user else None,
            "crops": dump(self._crops),
            "myCrops": dump(self.my_crops),
            "loans": dump(self._loans),
            "orders": dump(self._orders),
            "auctions": dump(self._auctions),
            "ratings": dump(self._ratings),
            "ratingStats": self._user_rating_stats.model_dump(mode="json") if self._user_rating_stats else None,
        }

    # ------------------------------------------------------------
    # Utility methods
    # ------------------------------------------------------------
    def _set_loading(self, loading: bool) -> None:
        self._is_loading = loading
        self.notify_listeners()

    def _set_error(self, error: str) -> None:
        self._error = error
        self.notify_listeners()

    def _clear_error(self) -> None:
        self._error = None
        self.notify_listeners()

    def _clear_data(self) -> None:
        self._crops = []
        self._loans = []
        self._orders = []
        self._auctions = []
        self._ratings = []
        self._user_rating_stats = None
        self.notify_listeners()

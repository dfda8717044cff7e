from datetime import datetime, timedelta, timezone

import pytest

from agrichain.models.crop_models import CropCategory, CropType
from agrichain.models.order_models import Order
from agrichain.models.rating_models import RatingType
from agrichain.services.auth_service import AuthService
from agrichain.services.database_service import USERS
from agrichain.state.app_state import PROFILE_NOT_FOUND, AppState, AppStateError

from conftest import sign_up_farmer


def _tomorrow():
    return datetime.now(timezone.utc) + timedelta(days=1)


def _buyer_state(database_service, email="asha@example.com", balance=10000.0):
    state = AppState(AuthService(database_service=database_service), database_service,
                     profile_fetch_delay=0, sleep=lambda _: None)
    state.initialize()
    assert state.sign_up(
        first_name="Asha",
        last_name="Rao",
        email=email,
        password="Harvest2025",
        user_type="buyer",
        phone="9123456780",
    ), state.error
    if balance:
        assert state.update_wallet_balance(balance)
    return state


def _farmer_with_auction(app_state, starting_price=1000.0):
    sign_up_farmer(app_state)
    assert app_state.create_crop(
        name="Sharbati Wheat",
        location="Sehore",
        price=2500,
        quantity="40 quintal",
        harvest_date=datetime(2025, 3, 1, tzinfo=timezone.utc),
        crop_type=CropType.wheat,
        category=CropCategory.grains,
    ), app_state.error
    crop = app_state.my_crops[0]
    auction = app_state.create_auction(crop.id, starting_price, _tomorrow())
    assert auction is not None, app_state.error
    return crop, auction


# ------------------------------------------------------------
# Session lifecycle
# ------------------------------------------------------------
def test_signed_out_defaults(app_state):
    assert not app_state.is_authenticated
    assert app_state.user_name == "Guest"
    assert app_state.wallet_balance == 0.0
    assert app_state.my_crops == []


def test_sign_up_loads_profile(app_state, sleeps):
    user = sign_up_farmer(app_state)

    assert app_state.is_authenticated
    assert user.name == "Ramesh Patil"
    assert app_state.user_name == "Ramesh Patil"
    assert app_state.error is None
    assert sleeps == []


def test_sign_up_failure_sets_error(app_state):
    assert not app_state.sign_up("Ramesh", "Patil", "bad-email", "Harvest2025", "farmer", "9876543210")
    assert app_state.error == "Please enter a valid email"
    assert not app_state.is_authenticated


def test_sign_in_wrong_password(app_state):
    sign_up_farmer(app_state)
    app_state.sign_out()

    assert not app_state.sign_in("ramesh@example.com", "Nope12345")
    assert app_state.error == "Incorrect password."


def test_sign_out_clears_everything(app_state):
    _farmer_with_auction(app_state)
    app_state.sign_out()

    assert app_state.current_user is None
    assert app_state.crops == []
    assert app_state.auctions == []
    assert app_state.user_name == "Guest"


def test_profile_retry_exhausts_attempts(app_state, auth_service, sleeps, db):
    identity = auth_service.create_account("late@example.com", "Harvest2025", "farmer")
    calls = []
    original = app_state._db.get_user_by_auth_uid

    def counting(uid):
        calls.append(uid)
        return original(uid)

    app_state._db.get_user_by_auth_uid = counting
    app_state.load_user_data(identity.uid)

    assert len(calls) == 3
    assert sleeps == [0.5, 0.5]
    assert app_state.error == PROFILE_NOT_FOUND
    assert app_state.current_user is None


def test_profile_retry_picks_up_late_profile(app_state, auth_service, sleeps, db):
    identity = auth_service.create_account("late@example.com", "Harvest2025", "farmer")

    def write_profile(_delay):
        sleeps.append(_delay)
        db[USERS].insert_one({"id": identity.uid, "authUid": identity.uid, "name": "Late Farmer", "userType": "farmer"})

    app_state._sleep = write_profile
    app_state.load_user_data(identity.uid)

    assert app_state.current_user.name == "Late Farmer"
    assert sleeps == [0.5]
    assert app_state.error is None


def test_listeners_notified_and_removed(app_state):
    calls = []
    listener = calls.append
    app_state.add_listener(listener)
    sign_up_farmer(app_state)
    assert calls and all(c is app_state for c in calls)

    app_state.remove_listener(listener)
    count = len(calls)
    app_state.update_wallet_balance(50)
    assert len(calls) == count


# ------------------------------------------------------------
# Crops
# ------------------------------------------------------------
def test_create_crop_requires_user(app_state):
    assert not app_state.create_crop("Rice", "Nashik", 2300, "10 quintal", datetime.now(timezone.utc))


def test_create_crop_and_search(app_state):
    sign_up_farmer(app_state)
    app_state.create_crop("Basmati Rice", "Karnal", 2400, "20 quintal", datetime.now(timezone.utc),
                          crop_type=CropType.rice, category=CropCategory.grains)
    app_state.create_crop("Alphonso Mango", "Ratnagiri", 4750, "5 quintal", datetime.now(timezone.utc),
                          crop_type=CropType.mango, category=CropCategory.fruits)

    assert len(app_state.my_crops) == 2
    assert [c.name for c in app_state.search_crops("ratna")] == ["Alphonso Mango"]
    assert sorted(c.name for c in app_state.search_crops("PATIL")) == ["Alphonso Mango", "Basmati Rice"]
    assert len(app_state.search_crops("")) == 2
    assert [c.name for c in app_state.filter_crops_by_category(CropCategory.fruits)] == ["Alphonso Mango"]
    assert [c.name for c in app_state.filter_crops_by_type(CropType.rice)] == ["Basmati Rice"]


def test_buyer_sees_active_crops_but_owns_none(app_state, database_service):
    sign_up_farmer(app_state)
    app_state.create_crop("Onion", "Lasalgaon", 1800, "60 quintal", datetime.now(timezone.utc))

    buyer = _buyer_state(database_service)
    assert [c.name for c in buyer.available_crops] == ["Onion"]
    assert buyer.my_crops == []
    buyer.dispose()


# ------------------------------------------------------------
# Wallet
# ------------------------------------------------------------
def test_update_wallet_balance_persists(app_state, db):
    user = sign_up_farmer(app_state)
    assert app_state.update_wallet_balance(1500.5)
    assert app_state.wallet_balance == 1500.5
    assert db[USERS].find_one({"id": user.id})["walletBalance"] == 1500.5


def test_update_wallet_requires_user(app_state):
    assert not app_state.update_wallet_balance(10)


# ------------------------------------------------------------
# Auctions and bids
# ------------------------------------------------------------
def test_create_auction_links_crop(app_state, database_service):
    crop, auction = _farmer_with_auction(app_state)

    stored = database_service.get_crop(crop.id)
    assert stored["biddingType"] == "auction"
    assert stored["auctionId"] == auction.id
    assert stored["startingBid"] == 1000.0
    assert app_state.get_auction_by_crop_id(crop.id).id == auction.id


def test_create_auction_rejects_duplicates_and_foreign_crops(app_state):
    crop, _ = _farmer_with_auction(app_state)
    assert app_state.create_auction(crop.id, 500, _tomorrow()) is None
    assert app_state.error == "An auction is already running for this crop"

    assert app_state.create_auction("CRP-unknown", 500, _tomorrow()) is None
    assert app_state.error == "Crop not found"


def test_create_auction_end_must_follow_start(app_state):
    sign_up_farmer(app_state)
    app_state.create_crop("Maize", "Davangere", 1950, "30 quintal", datetime.now(timezone.utc))
    crop = app_state.my_crops[0]
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    assert app_state.create_auction(crop.id, 100, past) is None
    assert app_state.error == "Auction must end after it starts"


def test_place_bid_accepts_strictly_higher_bids(app_state, database_service, db):
    _, auction = _farmer_with_auction(app_state)
    buyer = _buyer_state(database_service)

    updated = buyer.place_bid(auction.id, 1100)
    assert [b.amount for b in updated.bids] == [1100]
    assert updated.bids[0].bidderName == "Asha Rao"
    assert buyer.wallet_balance == 8900.0
    assert db[USERS].find_one({"id": buyer.current_user.id})["walletBalance"] == 8900.0

    updated = buyer.place_bid(auction.id, 1300)
    assert [b.amount for b in buyer.get_bids_for_auction(auction.id)] == [1100, 1300]
    assert updated.current_highest_bid() == 1300
    buyer.dispose()


@pytest.mark.parametrize("amount", [1000, 999.99])
def test_place_bid_rejects_not_higher_than_starting_price(app_state, database_service, amount):
    _, auction = _farmer_with_auction(app_state)
    buyer = _buyer_state(database_service)

    with pytest.raises(AppStateError) as exc:
        buyer.place_bid(auction.id, amount)
    assert str(exc.value) == "Failed to place bid: Bid amount must be higher than current highest bid"
    assert buyer.get_bids_for_auction(auction.id) == []
    assert buyer.wallet_balance == 10000.0
    buyer.dispose()


def test_place_bid_rejects_stale_local_view(app_state, database_service):
    _, auction = _farmer_with_auction(app_state)
    first = _buyer_state(database_service)
    second = _buyer_state(database_service, email="second@example.com")

    first.place_bid(auction.id, 1500)
    # second still holds the auction without the 1500 bid
    with pytest.raises(AppStateError):
        second.place_bid(auction.id, 1200)
    assert second.wallet_balance == 10000.0
    first.dispose()
    second.dispose()


def test_place_bid_unknown_auction_and_signed_out(app_state, database_service):
    buyer = _buyer_state(database_service)
    with pytest.raises(AppStateError, match="Auction not found"):
        buyer.place_bid("AUC-missing", 100)

    with pytest.raises(AppStateError, match="User not authenticated"):
        app_state.place_bid("AUC-missing", 100)
    buyer.dispose()


def test_bids_for_unknown_auction_is_empty(app_state):
    assert app_state.get_bids_for_auction("nope") == []
    assert app_state.get_auction_by_crop_id("nope") is None


# ------------------------------------------------------------
# Orders, loans and ratings
# ------------------------------------------------------------
def test_add_order_persists(app_state, database_service):
    user = sign_up_farmer(app_state)
    saved = app_state.add_order(Order(cropId="CRP1", buyerId="BUY1", sellerId=user.id, quantity=2, unitPrice=2500))

    assert saved.id
    assert saved.totalAmount == 5000
    assert app_state.orders[-1].id == saved.id
    assert database_service.get_orders_for_user(user.id)[0]["id"] == saved.id


def test_apply_for_loan(app_state):
    sign_up_farmer(app_state)
    loan = app_state.apply_for_loan(50000, purpose="Drip irrigation")
    assert loan.id.startswith("LON")
    assert loan.status == "pending"
    assert app_state.loans == [loan]


def test_add_rating_updates_stats(app_state, database_service):
    farmer = sign_up_farmer(app_state)
    buyer = _buyer_state(database_service, balance=0)

    assert buyer.add_rating(buyer.current_user.id, buyer.user_name, farmer.id, farmer.name,
                            RatingType.quality, 4, review="Clean grain")
    assert buyer.add_rating(buyer.current_user.id, buyer.user_name, farmer.id, farmer.name,
                            RatingType.delivery, 5)

    stats = app_state.calculate_rating_stats(farmer.id)
    assert stats.totalRatings == 2
    assert stats.averageRating == 4.5
    assert stats.ratingsByType == {"quality": 4.0, "delivery": 5.0}

    only_quality = app_state.get_ratings_for_user(farmer.id, RatingType.quality)
    assert [r.review for r in only_quality] == ["Clean grain"]

    app_state.refresh_data()
    assert len(app_state.ratings) == 2
    assert app_state.user_rating_stats.totalRatings == 2
    buyer.dispose()


def test_snapshot_is_json_ready(app_state):
    _farmer_with_auction(app_state)
    snap = app_state.snapshot()
    assert snap["isAuthenticated"] is True
    assert snap["userName"] == "Ramesh Patil"
    assert len(snap["myCrops"]) == 1
    assert isinstance(snap["auctions"][0]["endTime"], str)


def test_update_order_status_rules(app_state, database_service):
    farmer = sign_up_farmer(app_state)
    buyer = _buyer_state(database_service, balance=0)
    order = buyer.add_order(Order(cropId="CRP1", buyerId=buyer.current_user.id, sellerId=farmer.id,
                                  quantity=1, unitPrice=100))

    assert buyer.update_order_status(order.id, "delivered") is None
    assert buyer.error == "Buyers can only cancel pending orders"

    app_state.refresh_data()
    confirmed = app_state.update_order_status(order.id, "confirmed")
    assert confirmed.status == "confirmed"
    assert database_service.get_orders_for_user(farmer.id)[0]["status"] == "confirmed"

    buyer.refresh_data()
    assert buyer.update_order_status(order.id, "cancelled") is None
    assert app_state.update_order_status("ORD-missing", "shipped") is None
    assert app_state.error == "Order not found"
    buyer.dispose()


def test_close_auction(app_state, database_service):
    crop, auction = _farmer_with_auction(app_state)
    buyer = _buyer_state(database_service, balance=0)

    assert not buyer.close_auction(auction.id)
    assert buyer.error == "Auction not found"

    assert app_state.close_auction(auction.id, "cancelled")
    assert app_state.get_auction_by_crop_id(crop.id) is None
    assert database_service.get_auction(auction.id)["status"] == "cancelled"
    buyer.dispose()


def test_clear_user(app_state):
    _farmer_with_auction(app_state)
    app_state.clear_user()
    assert app_state.current_user is None
    assert app_state.crops == []
    assert not app_state.is_authenticated


@pytest.mark.parametrize("amount", [float("inf"), float("-inf"), float("nan")])
def test_place_bid_rejects_non_finite_amounts(app_state, database_service, db, amount):
    _, auction = _farmer_with_auction(app_state)
    buyer = _buyer_state(database_service)

    with pytest.raises(AppStateError, match="Bid amount must be a finite number"):
        buyer.place_bid(auction.id, amount)
    assert buyer.wallet_balance == 10000.0
    assert db[USERS].find_one({"id": buyer.current_user.id})["walletBalance"] == 10000.0
    assert database_service.get_auction(auction.id)["bids"] == []
    buyer.dispose()


def test_place_bid_on_closed_auction(app_state, database_service, db):
    _, auction = _farmer_with_auction(app_state)
    buyer = _buyer_state(database_service)
    assert buyer.get_auction_by_crop_id(auction.cropId) is not None

    assert app_state.close_auction(auction.id, "cancelled")
    with pytest.raises(AppStateError, match="Auction is no longer active"):
        buyer.place_bid(auction.id, 1500)

    assert db[USERS].find_one({"id": buyer.current_user.id})["walletBalance"] == 10000.0
    assert database_service.get_auction(auction.id)["bids"] == []
    assert buyer.auctions == []
    buyer.dispose()


def test_lost_bid_race_reloads_auction(app_state, database_service):
    _, auction = _farmer_with_auction(app_state)
    first = _buyer_state(database_service)
    second = _buyer_state(database_service, email="second@example.com")

    first.place_bid(auction.id, 1500)
    with pytest.raises(AppStateError, match="Bid amount must be higher than current highest bid"):
        second.place_bid(auction.id, 1200)

    # the reload picked up the winning bid, so the next attempt starts from it
    assert [b.amount for b in second.get_bids_for_auction(auction.id)] == [1500]
    updated = second.place_bid(auction.id, 1600)
    assert [b.amount for b in updated.bids] == [1500, 1600]
    first.dispose()
    second.dispose()


def test_update_profile(app_state, database_service):
    user = sign_up_farmer(app_state)
    assert app_state.user_location is None

    assert app_state.update_profile(last_name="Pawar", location="  Indore ")
    assert app_state.user_name == "Ramesh Pawar"
    assert app_state.user_location == "Indore"
    stored = database_service.get_user(user.id)
    assert (stored["lastName"], stored["name"], stored["location"]) == ("Pawar", "Ramesh Pawar", "Indore")

    assert not app_state.update_profile(first_name=" ")
    assert app_state.error == "First name is required"
    assert not app_state.update_profile(phone="98765")
    assert app_state.error == "Please enter a valid 10-digit phone number"
    assert app_state.user_name == "Ramesh Pawar"


def test_update_profile_requires_user(app_state):
    assert app_state.update_profile(location="Indore") is False


def test_sign_up_stores_location(app_state):
    assert app_state.sign_up(
        first_name="Ramesh",
        last_name="Patil",
        email="ramesh@example.com",
        password="Harvest2025",
        user_type="farmer",
        phone="9876543210",
        location="Sehore",
    ), app_state.error
    assert app_state.user_location == "Sehore"


def test_disconnect_wallet(app_state, database_service):
    user = sign_up_farmer(app_state)
    assert app_state.set_wallet_address("0x52908400098527886e0f7030069857d2e4169ee7")
    assert app_state.disconnect_wallet()
    assert app_state.current_user.walletAddress == ""
    assert database_service.get_user(user.id)["walletAddress"] == ""

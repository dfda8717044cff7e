from datetime import datetime, timedelta, timezone

from agrichain.models.auction_models import Auction
from agrichain.services.database_service import AUCTIONS, USERS


def _auction(database_service, starting_price=1000.0):
    auction = Auction(
        cropId="CRP1",
        sellerId="FRM1",
        startingPrice=starting_price,
        endTime=datetime.now(timezone.utc) + timedelta(days=1),
    )
    doc = auction.to_doc()
    doc.pop("id")
    return database_service.create_auction(doc)


def test_create_and_get_strip_object_id(database_service):
    crop_id = database_service.create_crop({"name": "Wheat", "farmerId": "FRM1", "isActive": True})
    doc = database_service.get_crop(crop_id)
    assert crop_id.startswith("CRP")
    assert "_id" not in doc
    assert doc["name"] == "Wheat"


def test_create_user_requires_id(database_service):
    assert database_service.create_user({"name": "No id"}) is False
    assert database_service.create_user({"id": "FRM1", "authUid": "FRM1"}) is True
    assert database_service.get_user_by_auth_uid("FRM1")["id"] == "FRM1"


def test_available_crops_only_active(database_service):
    database_service.create_crop({"name": "A", "farmerId": "F", "isActive": True})
    database_service.create_crop({"name": "B", "farmerId": "F", "isActive": False})
    names = [c["name"] for c in database_service.get_all_available_crops()]
    assert names == ["A"]


def test_orders_for_buyer_and_seller(database_service):
    database_service.create_order({"cropId": "C1", "buyerId": "BUY1", "sellerId": "FRM1"})
    database_service.create_order({"cropId": "C2", "buyerId": "BUY2", "sellerId": "FRM2"})
    assert len(database_service.get_orders_for_user("FRM1")) == 1
    assert len(database_service.get_orders_for_user("BUY1")) == 1
    assert database_service.get_orders_for_user("BUY3") == []


def test_record_bid_is_conditional_and_debits_wallet(database_service, db):
    db[USERS].insert_one({"id": "BUY1", "walletBalance": 5000.0})
    auction_id = _auction(database_service)

    assert database_service.record_bid(auction_id, {"bidderId": "BUY1", "amount": 1200.0})
    # not above the stored highest bid
    assert not database_service.record_bid(auction_id, {"bidderId": "BUY1", "amount": 1200.0})
    assert not database_service.record_bid(auction_id, {"bidderId": "BUY1", "amount": 900.0})

    stored = db[AUCTIONS].find_one({"id": auction_id})
    assert stored["highestBid"] == 1200.0
    assert [b["amount"] for b in stored["bids"]] == [1200.0]
    assert db[USERS].find_one({"id": "BUY1"})["walletBalance"] == 3800.0


def test_record_bid_below_starting_price(database_service):
    auction_id = _auction(database_service, starting_price=1000.0)
    assert not database_service.record_bid(auction_id, {"bidderId": "BUY1", "amount": 999.0})


def test_calculate_rating_stats_upserts(database_service):
    for value, kind in ((5, "quality"), (4, "quality"), (3, "delivery")):
        database_service.add_rating({"fromUserId": "BUY1", "toUserId": "FRM1", "rating": value, "ratingType": kind})

    stats = database_service.calculate_rating_stats("FRM1")
    assert stats["totalRatings"] == 3
    assert stats["averageRating"] == 4.0

    stored = database_service.get_user_rating_stats("FRM1")
    assert stored["ratingsByType"] == {"quality": 4.5, "delivery": 3.0}
    assert stored["fiveStarCount"] == 1


def test_add_rating_requires_both_users(database_service):
    assert database_service.add_rating({"toUserId": "FRM1"}) is False


def test_ratings_filtered_by_type(database_service):
    database_service.add_rating({"fromUserId": "A", "toUserId": "B", "rating": 5, "ratingType": "quality"})
    database_service.add_rating({"fromUserId": "A", "toUserId": "B", "rating": 2, "ratingType": "delivery"})
    rows = database_service.get_ratings_for_user("B", rating_type="delivery")
    assert [r["rating"] for r in rows] == [2]


def test_record_bid_requires_active_auction(database_service, db):
    db[USERS].insert_one({"id": "BUY1", "walletBalance": 5000.0})
    auction_id = _auction(database_service)
    database_service.update_auction(auction_id, {"status": "ended"})

    assert not database_service.record_bid(auction_id, {"bidderId": "BUY1", "amount": 1500.0})
    assert db[AUCTIONS].find_one({"id": auction_id})["bids"] == []
    assert db[USERS].find_one({"id": "BUY1"})["walletBalance"] == 5000.0


def test_revoked_tokens(database_service):
    assert not database_service.is_token_revoked("jti-1")
    assert not database_service.is_token_revoked(None)

    database_service.revoke_token("jti-1", "FRM1")
    database_service.revoke_token("jti-1", "FRM1")
    assert database_service.is_token_revoked("jti-1")
    assert not database_service.is_token_revoked("jti-2")

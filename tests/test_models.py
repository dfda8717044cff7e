from datetime import datetime, timezone

from agrichain.models import (
    Auction,
    BidRecord,
    Crop,
    Order,
    Rating,
    User,
    UserRatingStats,
)
from agrichain.models.common import coerce_enum, generate_id, parse_timestamp
from agrichain.models.crop_models import CropCategory, CropType


def test_parse_timestamp_accepts_iso_with_z():
    ts = parse_timestamp("2025-03-01T10:30:00Z")
    assert ts == datetime(2025, 3, 1, 10, 30, tzinfo=timezone.utc)


def test_parse_timestamp_treats_naive_as_utc():
    ts = parse_timestamp(datetime(2025, 3, 1, 10, 30))
    assert ts.tzinfo == timezone.utc


def test_parse_timestamp_falls_back_to_default():
    default = datetime(2020, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp(None, default) is default
    assert parse_timestamp("not a date", default) is default
    assert parse_timestamp("") is None


def test_coerce_enum_unknown_name_uses_default():
    assert coerce_enum(CropType, "dragonfruit", CropType.wheat) is CropType.wheat
    assert coerce_enum(CropType, "rice", CropType.wheat) is CropType.rice


def test_generate_id_prefix():
    assert generate_id("CRP").startswith("CRP")
    assert generate_id("CRP") != generate_id("CRP")


def test_user_name_built_from_first_and_last():
    user = User.from_doc({"id": "FRM1", "firstName": "Ramesh", "lastName": "Patil", "name": "ignored"})
    assert user.name == "Ramesh Patil"
    assert user.userType == "farmer"
    assert user.walletBalance == 0.0


def test_user_unknown_type_falls_back_to_farmer():
    user = User.from_doc({"id": "X", "name": "A", "userType": "trader"})
    assert user.userType == "farmer"


def test_crop_from_doc_defaults():
    crop = Crop.from_doc({
        "id": "CRP1",
        "name": "Basmati",
        "farmerId": "FRM1",
        "price": "2400",
        "cropType": "dragonfruit",
        "category": "nope",
        "qualityGrade": "ultra",
        "harvestDate": "2025-02-10T00:00:00Z",
    })
    assert crop.price == 2400.0
    assert crop.cropType == CropType.wheat
    assert crop.category == CropCategory.grains
    assert crop.qualityGrade == "standard"
    assert crop.biddingType == "fixedPrice"
    assert crop.isActive is True


def test_crop_without_type_keeps_none():
    crop = Crop.from_doc({"id": "CRP1", "name": "Mixed", "farmerId": "FRM1"})
    assert crop.cropType is None
    assert crop.category is None


def test_auction_highest_bid_is_last_bid_or_starting_price():
    auction = Auction(cropId="C", sellerId="S", startingPrice=1000, endTime=datetime.now(timezone.utc))
    assert auction.current_highest_bid() == 1000

    auction.bids.append(BidRecord(bidderId="B1", amount=1100))
    auction.bids.append(BidRecord(bidderId="B2", amount=1250))
    assert auction.current_highest_bid() == 1250
    assert auction.to_doc()["highestBid"] == 1250


def test_auction_reserve():
    auction = Auction(cropId="C", sellerId="S", startingPrice=100, reservePrice=500,
                      endTime=datetime.now(timezone.utc))
    assert not auction.reserve_met()
    auction.bids.append(BidRecord(bidderId="B", amount=500))
    assert auction.reserve_met()


def test_order_total_computed_on_write():
    order = Order(cropId="C", buyerId="B", quantity=2.5, unitPrice=2000)
    assert order.to_doc()["totalAmount"] == 5000.0


def test_rating_clamped_and_unknown_type_is_overall():
    rating = Rating.from_doc({"fromUserId": "A", "toUserId": "B", "rating": 9, "ratingType": "speed"})
    assert rating.rating == 5.0
    assert rating.ratingType == "overall"


def test_rating_stats_skip_unknown_types():
    stats = UserRatingStats.from_doc({
        "userId": "B",
        "averageRating": 4.5,
        "totalRatings": 2,
        "ratingsByType": {"quality": 4.0, "speed": 5.0},
        "countsByType": {"quality": 1, "speed": 1},
    })
    assert stats.ratingsByType == {"quality": 4.0}
    assert stats.countsByType == {"quality": 1}

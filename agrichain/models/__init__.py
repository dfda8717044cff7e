# agrichain/models/__init__.py
from agrichain.models.common import parse_timestamp, generate_id
from agrichain.models.user_models import User, UserType, AuthIdentity
from agrichain.models.crop_models import Crop, CropType, CropCategory, QualityGrade, BiddingType
from agrichain.models.auction_models import Auction, BidRecord
from agrichain.models.order_models import Order, Loan
from agrichain.models.rating_models import Rating, RatingType, UserRatingStats

__all__ = [
    "parse_timestamp", "generate_id",
    "User", "UserType", "AuthIdentity",
    "Crop", "CropType", "CropCategory", "QualityGrade", "BiddingType",
    "Auction", "BidRecord",
    "Order", "Loan",
    "Rating", "RatingType", "UserRatingStats",
]

# agrichain/models/rating_models.py

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from agrichain.models.common import coerce_enum, now_utc, parse_timestamp, to_float


class RatingType(str, Enum):
    overall = "overall"
    quality = "quality"
    delivery = "delivery"
    communication = "communication"
    payment = "payment"


class Rating(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str = ""
    fromUserId: str
    fromUserName: str = ""
    toUserId: str
    toUserName: str = ""
    rating: float = Field(..., ge=1, le=5)
    review: Optional[str] = None
    ratingType: Optional[RatingType] = RatingType.overall
    orderId: Optional[str] = None
    createdAt: datetime = Field(default_factory=now_utc)
    updatedAt: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_doc(cls, data: Dict[str, Any]) -> "Rating":
        rating_type = data.get("ratingType")
        return cls(
            id=data.get("id") or "",
            fromUserId=data.get("fromUserId") or "",
            fromUserName=data.get("fromUserName") or "",
            toUserId=data.get("toUserId") or "",
            toUserName=data.get("toUserName") or "",
            rating=min(5.0, max(1.0, to_float(data.get("rating"), 1.0))),
            review=data.get("review"),
            ratingType=coerce_enum(RatingType, rating_type, RatingType.overall) if rating_type is not None else None,
            orderId=data.get("orderId"),
            createdAt=parse_timestamp(data.get("createdAt"), now_utc()),
            updatedAt=parse_timestamp(data.get("updatedAt")),
            metadata=dict(data.get("metadata") or {}),
        )

    def to_doc(self) -> Dict[str, Any]:
        return self.model_dump()


class UserRatingStats(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    userId: str
    averageRating: float = 0.0
    totalRatings: int = 0
    ratingsByType: Dict[str, float] = Field(default_factory=dict)
    countsByType: Dict[str, int] = Field(default_factory=dict)
    fiveStarCount: int = 0
    fourStarCount: int = 0
    threeStarCount: int = 0
    twoStarCount: int = 0
    oneStarCount: int = 0
    lastUpdated: datetime = Field(default_factory=now_utc)

    @classmethod
    def from_doc(cls, data: Dict[str, Any]) -> "UserRatingStats":
        def _by_type(raw, cast):
            out = {}
            for key, value in (raw or {}).items():
                rt = coerce_enum(RatingType, key, None)
                if rt is not None:
                    out[rt.value] = cast(value)
            return out

        return cls(
            userId=data.get("userId") or "",
            averageRating=to_float(data.get("averageRating"), 0.0),
            totalRatings=int(data.get("totalRatings") or 0),
            ratingsByType=_by_type(data.get("ratingsByType"), float),
            countsByType=_by_type(data.get("countsByType"), int),
            fiveStarCount=int(data.get("fiveStarCount") or 0),
            fourStarCount=int(data.get("fourStarCount") or 0),
            threeStarCount=int(data.get("threeStarCount") or 0),
            twoStarCount=int(data.get("twoStarCount") or 0),
            oneStarCount=int(data.get("oneStarCount") or 0),
            lastUpdated=parse_timestamp(data.get("lastUpdated"), now_utc()),
        )

    def to_doc(self) -> Dict[str, Any]:
        return self.model_dump()

# agrichain/models/auction_models.py

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from agrichain.models.common import now_utc, optional_float, parse_timestamp, to_float

AUCTION_STATUSES = ("active", "ended", "cancelled")


class BidRecord(BaseModel):
    bidderId: str
    bidderName: str = ""
    amount: float
    timestamp: datetime = Field(default_factory=now_utc)

    @classmethod
    def from_doc(cls, data: Dict[str, Any]) -> "BidRecord":
        return cls(
            bidderId=data.get("bidderId") or "",
            bidderName=data.get("bidderName") or "",
            amount=to_float(data.get("amount"), 0.0),
            timestamp=parse_timestamp(data.get("timestamp"), now_utc()),
        )


class Auction(BaseModel):
    id: str = ""
    cropId: str
    sellerId: str
    sellerName: str = ""
    startingPrice: float = Field(..., ge=0)
    reservePrice: Optional[float] = None
    startTime: datetime = Field(default_factory=now_utc)
    endTime: datetime
    status: str = "active"
    bids: List[BidRecord] = Field(default_factory=list)
    createdAt: datetime = Field(default_factory=now_utc)
    updatedAt: Optional[datetime] = None

    def current_highest_bid(self) -> float:
        """Amount of the last accepted bid, or the starting price when none."""
        if self.bids:
            return self.bids[-1].amount
        return self.startingPrice

    def reserve_met(self) -> bool:
        return self.reservePrice is None or self.current_highest_bid() >= self.reservePrice

    @classmethod
    def from_doc(cls, data: Dict[str, Any]) -> "Auction":
        now = now_utc()
        return cls(
            id=data.get("id") or "",
            cropId=data.get("cropId") or "",
            sellerId=data.get("sellerId") or "",
            sellerName=data.get("sellerName") or "",
            startingPrice=to_float(data.get("startingPrice"), 0.0),
            reservePrice=optional_float(data.get("reservePrice")),
            startTime=parse_timestamp(data.get("startTime"), now),
            endTime=parse_timestamp(data.get("endTime"), now),
            status=data.get("status") if data.get("status") in AUCTION_STATUSES else "active",
            bids=[BidRecord.from_doc(b) for b in data.get("bids") or []],
            createdAt=parse_timestamp(data.get("createdAt"), now),
            updatedAt=parse_timestamp(data.get("updatedAt")),
        )

    def to_doc(self) -> Dict[str, Any]:
        doc = self.model_dump()
        doc["highestBid"] = self.current_highest_bid()
        return doc

# agrichain/models/crop_models.py

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from agrichain.models.common import coerce_enum, now_utc, optional_float, parse_timestamp, to_float


class BiddingType(str, Enum):
    fixedPrice = "fixedPrice"
    auction = "auction"


class CropType(str, Enum):
    wheat = "wheat"
    rice = "rice"
    potato = "potato"
    maize = "maize"
    mango = "mango"
    tomato = "tomato"
    onion = "onion"
    cotton = "cotton"
    sugarcane = "sugarcane"
    soybean = "soybean"


class CropCategory(str, Enum):
    grains = "grains"
    vegetables = "vegetables"
    fruits = "fruits"
    pulses = "pulses"
    oilseeds = "oilseeds"
    spices = "spices"
    cashCrops = "cashCrops"


class QualityGrade(str, Enum):
    premium = "premium"
    standard = "standard"
    basic = "basic"


class Crop(BaseModel):
    """A marketplace listing. `quantity` is free text ("50 quintal")."""
    model_config = ConfigDict(use_enum_values=True)

    id: str = ""
    name: str
    farmerId: str
    farmerName: str = ""
    location: str = ""
    price: float = Field(0.0, ge=0)
    quantity: str = ""
    harvestDate: datetime = Field(default_factory=now_utc)
    imageUrl: str = ""
    description: str = ""
    isNFT: bool = False
    nftTokenId: Optional[str] = None
    biddingType: BiddingType = BiddingType.fixedPrice
    auctionId: Optional[str] = None
    auctionEndTime: Optional[datetime] = None
    startingBid: Optional[float] = None
    reservePrice: Optional[float] = None
    cropType: Optional[CropType] = None
    category: Optional[CropCategory] = None
    certifications: List[Dict[str, Any]] = Field(default_factory=list)
    qualityGrade: QualityGrade = QualityGrade.standard
    createdAt: datetime = Field(default_factory=now_utc)
    updatedAt: Optional[datetime] = None
    isActive: bool = True

    @classmethod
    def from_doc(cls, data: Dict[str, Any]) -> "Crop":
        crop_type = data.get("cropType")
        category = data.get("category")
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            farmerId=data.get("farmerId") or "",
            farmerName=data.get("farmerName") or "",
            location=data.get("location") or "",
            price=to_float(data.get("price"), 0.0),
            quantity=str(data.get("quantity") or ""),
            harvestDate=parse_timestamp(data.get("harvestDate"), now_utc()),
            imageUrl=data.get("imageUrl") or "",
            description=data.get("description") or "",
            isNFT=bool(data.get("isNFT", False)),
            nftTokenId=data.get("nftTokenId"),
            biddingType=coerce_enum(BiddingType, data.get("biddingType"), BiddingType.fixedPrice),
            auctionId=data.get("auctionId"),
            auctionEndTime=parse_timestamp(data.get("auctionEndTime")),
            startingBid=optional_float(data.get("startingBid")),
            reservePrice=optional_float(data.get("reservePrice")),
            cropType=coerce_enum(CropType, crop_type, CropType.wheat) if crop_type is not None else None,
            category=coerce_enum(CropCategory, category, CropCategory.grains) if category is not None else None,
            certifications=list(data.get("certifications") or []),
            qualityGrade=coerce_enum(QualityGrade, data.get("qualityGrade"), QualityGrade.standard),
            createdAt=parse_timestamp(data.get("createdAt"), now_utc()),
            updatedAt=parse_timestamp(data.get("updatedAt")),
            isActive=data.get("isActive", True),
        )

    def to_doc(self) -> Dict[str, Any]:
        return self.model_dump()

# agrichain/models/order_models.py

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

from agrichain.models.common import now_utc, parse_timestamp, to_float

ORDER_STATUSES = ("pending", "confirmed", "shipped", "delivered", "cancelled")
OrderStatus = Literal["pending", "confirmed", "shipped", "delivered", "cancelled"]
LoanStatus = Literal["pending", "approved", "rejected", "repaid"]


class Order(BaseModel):
    id: str = ""
    cropId: str
    cropName: str = ""
    buyerId: str
    buyerName: str = ""
    sellerId: str = ""
    quantity: float = Field(..., gt=0)
    unitPrice: float = Field(..., ge=0)
    totalAmount: float = 0.0
    status: OrderStatus = "pending"
    createdAt: datetime = Field(default_factory=now_utc)
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_doc(cls, data: Dict[str, Any]) -> "Order":
        status = data.get("status")
        return cls(
            id=data.get("id") or "",
            cropId=data.get("cropId") or "",
            cropName=data.get("cropName") or "",
            buyerId=data.get("buyerId") or "",
            buyerName=data.get("buyerName") or "",
            sellerId=data.get("sellerId") or "",
            quantity=to_float(data.get("quantity"), 0.0),
            unitPrice=to_float(data.get("unitPrice"), 0.0),
            totalAmount=to_float(data.get("totalAmount"), 0.0),
            status=status if status in ORDER_STATUSES else "pending",
            createdAt=parse_timestamp(data.get("createdAt"), now_utc()),
            updatedAt=parse_timestamp(data.get("updatedAt")),
        )

    def to_doc(self) -> Dict[str, Any]:
        doc = self.model_dump()
        if not doc["totalAmount"]:
            doc["totalAmount"] = round(self.quantity * self.unitPrice, 2)
        return doc


class Loan(BaseModel):
    id: str = ""
    userId: str
    amount: float = Field(..., gt=0)
    interestRate: float = Field(7.0, ge=0)
    termMonths: int = Field(12, ge=1)
    purpose: str = ""
    status: LoanStatus = "pending"
    createdAt: datetime = Field(default_factory=now_utc)
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_doc(cls, data: Dict[str, Any]) -> "Loan":
        status = data.get("status")
        return cls(
            id=data.get("id") or "",
            userId=data.get("userId") or "",
            amount=to_float(data.get("amount"), 0.0),
            interestRate=to_float(data.get("interestRate"), 7.0),
            termMonths=int(data.get("termMonths") or 12),
            purpose=data.get("purpose") or "",
            status=status if status in ("pending", "approved", "rejected", "repaid") else "pending",
            createdAt=parse_timestamp(data.get("createdAt"), now_utc()),
            updatedAt=parse_timestamp(data.get("updatedAt")),
        )

    def to_doc(self) -> Dict[str, Any]:
        return self.model_dump()

# agrichain/models/user_models.py

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from agrichain.models.common import coerce_enum, now_utc, parse_timestamp, to_float


class UserType(str, Enum):
    farmer = "farmer"
    buyer = "buyer"


@dataclass(frozen=True)
class AuthIdentity:
    """Signed-in account as seen by the auth provider (no profile data)."""
    uid: str
    email: str
    display_name: str = ""


class User(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    authUid: Optional[str] = None
    name: str = ""
    email: str = ""
    phone: Optional[str] = None
    userType: UserType = UserType.farmer
    location: Optional[str] = None
    walletAddress: Optional[str] = None
    walletBalance: float = 0.0
    createdAt: datetime = Field(default_factory=now_utc)
    updatedAt: Optional[datetime] = None
    isActive: bool = True
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_farmer(self) -> bool:
        return self.userType == UserType.farmer

    @classmethod
    def from_doc(cls, data: Dict[str, Any]) -> "User":
        first, last = data.get("firstName"), data.get("lastName")
        name = f"{first} {last}" if first is not None and last is not None else data.get("name") or ""
        return cls(
            id=data.get("id") or "",
            authUid=data.get("authUid"),
            name=name,
            email=data.get("email") or "",
            phone=data.get("phone"),
            userType=coerce_enum(UserType, data.get("userType") or "farmer", UserType.farmer),
            location=data.get("location"),
            walletAddress=data.get("walletAddress"),
            walletBalance=to_float(data.get("walletBalance"), 0.0),
            createdAt=parse_timestamp(data.get("createdAt"), now_utc()),
            updatedAt=parse_timestamp(data.get("updatedAt")),
            isActive=data.get("isActive", True),
            metadata=dict(data.get("metadata") or {}),
        )

    def to_doc(self) -> Dict[str, Any]:
        return self.model_dump()

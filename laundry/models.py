# laundry/models.py
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    # Same shape browsers produce with Date.toISOString()
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(raw: Any) -> Optional[datetime]:
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        dt = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# -------------------
# Users
# -------------------
SECRET_USER_FIELDS = ("password", "salt")


def public_user(record: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if k not in SECRET_USER_FIELDS}


class SignupIn(BaseModel):
    firstName: str = ""
    lastName: str = ""
    email: str = ""
    phone: str = ""
    password: str = ""


class EmailCheck(BaseModel):
    email: EmailStr


class LoginIn(BaseModel):
    email: str = ""
    password: str = ""


class ProfileIn(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[str] = None


class PasswordIn(BaseModel):
    currentPassword: str = ""
    newPassword: str = ""


# -------------------
# Orders
# -------------------
class OrderStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    ready = "ready"
    completed = "completed"

    @property
    def rank(self) -> int:
        return list(OrderStatus).index(self)


class ServiceLine(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    quantity: int = 1
    price: float = 0.0


class CustomerInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = ""
    phone: str = ""
    address: str = ""
    email: str = ""


class PickupInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    date: Optional[str] = None
    timeSlot: Optional[str] = None
    specialInstructions: Optional[str] = None


class OrderIn(BaseModel):
    """Shape check for caller-supplied orders; unknown keys ride along."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    createdAt: Optional[str] = None
    status: Optional[OrderStatus] = None
    statusHistory: Optional[Dict[str, str]] = None
    expectedDelivery: Optional[str] = None
    customer: CustomerInfo = Field(default_factory=CustomerInfo)
    pickup: PickupInfo = Field(default_factory=PickupInfo)
    services: List[ServiceLine] = Field(default_factory=list)

    @field_validator("createdAt", "expectedDelivery")
    @classmethod
    def check_timestamp(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        dt = parse_iso(v)
        if dt is None:
            raise ValueError("must be an ISO-8601 timestamp")
        return to_iso(dt)

    @field_validator("statusHistory")
    @classmethod
    def check_history(cls, v: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        if v is None:
            return None
        out: Dict[str, str] = {}
        for status, stamp in v.items():
            if status not in OrderStatus.__members__:
                raise ValueError(f"unknown status {status!r}")
            dt = parse_iso(stamp)
            if dt is None:
                raise ValueError(f"{status} must be an ISO-8601 timestamp")
            out[status] = to_iso(dt)
        return out


class StatusIn(BaseModel):
    status: str = ""

import re
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from models.common import (
    CashOutStatus, DeliveryStatus, ParcelType, PaymentStatus, TrackingStatus,
)

# Bangladeshi mobile number: +8801XXXXXXXXX or 01XXXXXXXXX, operator digit 3-9
BD_PHONE_PATTERN = re.compile(r"^(?:\+8801|01)[3-9]\d{8}$")


class PartyProfile(BaseModel):
    name:        str = Field(..., min_length=1)
    contact:     str
    region:      str = Field(..., min_length=1)
    center:      str = Field(..., min_length=1)   # service center
    area:        str = Field(..., min_length=1)
    instruction: str = Field(..., min_length=1)   # pickup / delivery instruction

    @field_validator("name", "contact", "region", "center", "area", "instruction", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("contact")
    @classmethod
    def contact_must_be_bd_mobile(cls, v: str) -> str:
        if not BD_PHONE_PATTERN.match(v):
            raise ValueError("Invalid Bangladeshi phone number")
        return v


class TrackingEntry(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    status:  TrackingStatus
    message: str
    date:    datetime


class Parcel(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    parcel_id:         str
    tracking_code:     str        # "PRF-XXX-YYYY"
    type:              ParcelType
    title:             str
    weight:            Optional[float] = None
    sender:            PartyProfile
    receiver:          PartyProfile
    created_by:        str        # owner email, lowercased
    total_cost:        float
    payment_status:    PaymentStatus  = PaymentStatus.UNPAID
    delivery_status:   DeliveryStatus = DeliveryStatus.NOT_COLLECTED
    assigned_rider_id: Optional[str] = None
    cash_out_status:   CashOutStatus  = CashOutStatus.PENDING
    cash_out_at:       Optional[datetime] = None
    picked_at:         Optional[datetime] = None
    delivered_at:      Optional[datetime] = None
    tracking_history:  List[TrackingEntry] = []
    created_at:        datetime
    updated_at:        datetime


class ParcelCreate(BaseModel):
    type:       ParcelType
    title:      str = Field(..., min_length=1)
    weight:     Optional[float] = Field(None, ge=0, le=1000)
    sender:     PartyProfile
    receiver:   PartyProfile
    total_cost: float = Field(..., ge=0)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v


class AssignRiderRequest(BaseModel):
    rider_id: str = Field(..., min_length=1)


class DeliveryStatusUpdate(BaseModel):
    status: DeliveryStatus


class TrackingUpdate(BaseModel):
    status:  Optional[str] = None
    message: Optional[str] = None

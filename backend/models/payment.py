from datetime import datetime
from typing import List
from pydantic import BaseModel, EmailStr, Field, field_validator


class PaymentHistory(BaseModel):
    payment_id:     str
    parcel_id:      str
    email:          str
    amount:         float
    payment_method: List[str]     # ["card"], ["card", "link"], ...
    transaction_id: str
    paid_at:        datetime


class CheckoutRequest(BaseModel):
    amount:    int = Field(..., gt=0, description="Amount in the smallest currency unit")
    parcel_id: str = Field(..., min_length=1)


class PaymentConfirm(BaseModel):
    parcel_id:      str = Field(..., min_length=1)
    email:          EmailStr
    amount:         float = Field(..., gt=0)
    payment_method: List[str] = Field(..., min_length=1)
    transaction_id: str = Field(..., min_length=1)

    @field_validator("parcel_id", "email", "transaction_id", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("payment_method", mode="before")
    @classmethod
    def single_method_as_list(cls, v):
        return [v] if isinstance(v, str) else v

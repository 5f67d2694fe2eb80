from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from models.common import ApplicationStatus, WorkStatus


class Rider(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    rider_id:           str
    uid:                str        # Firebase subject
    email:              str
    name:               str
    age:                str
    nid:                str        # national id card
    contact:            str
    bike_model:         str
    region:             str
    warehouse:          str
    application_at:     datetime
    application_status: ApplicationStatus = ApplicationStatus.PENDING
    work_status:        WorkStatus        = WorkStatus.IDLE
    approve_date:       Optional[datetime] = None
    reject_date:        Optional[datetime] = None
    is_active:          bool = False


class RiderApplicationCreate(BaseModel):
    name:       str = Field(..., min_length=1)
    age:        str = Field(..., min_length=1)
    email:      EmailStr
    nid:        str = Field(..., min_length=1)
    contact:    str = Field(..., min_length=1)
    bike_model: str = Field(..., min_length=1)
    region:     str = Field(..., min_length=1)
    warehouse:  str = Field(..., min_length=1)

    @field_validator("*", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class ApplicationDecision(BaseModel):
    status: Literal["approved", "rejected"]


class ActiveToggle(BaseModel):
    is_active: bool


class WorkStatusUpdate(BaseModel):
    work_status: WorkStatus

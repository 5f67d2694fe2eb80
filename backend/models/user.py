from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict
from models.common import UserRole


class User(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    user_id:    str
    email:      str        # lowercased, identity correlation key
    name:       str
    role:       UserRole = UserRole.USER
    created_at: datetime
    last_login: datetime


class UserUpsert(BaseModel):
    name: Optional[str] = None

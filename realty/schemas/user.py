from pydantic import BaseModel, EmailStr, ConfigDict
from datetime import datetime
from typing import Optional

from realty.models.user import UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: str
    email: EmailStr
    name: Optional[str] = None
    role: UserRole
    active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class Token(BaseModel):
    token: str
    token_type: str
    user: UserResponse
